from __future__ import annotations


class RentalError(RuntimeError):
    pass


class SelfRentalError(RentalError):
    def __init__(self, message: str = "You cannot rent your own equipment."):
        super().__init__(message)


class MissingLocationError(RentalError):
    def __init__(self, message: str = "Please pin your delivery location on the map."):
        super().__init__(message)


class InvalidDateRangeError(RentalError):
    def __init__(self, message: str = "Please select valid rental dates."):
        super().__init__(message)


class ProfileProvisioningError(RentalError):
    pass


class InvalidTransition(RentalError):
    def __init__(self, current: str | None, action: str, actor_role: str | None, reason: str):
        self.current = current
        self.action = action
        self.actor_role = actor_role
        super().__init__(f"Cannot {action} rental in status {current!r} as {actor_role or 'unknown party'}: {reason}")


class PersistenceError(RentalError):
    pass
