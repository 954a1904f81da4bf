from __future__ import annotations

import logging
from typing import Any

from models.rental_models import Profile
from services.record_store import RecordStore
from services.rental_errors import PersistenceError, ProfileProvisioningError

PROFILE_LOGGER = logging.getLogger("medical_rental.profiles")

DEFAULT_ROLE = "both"


def default_display_name(full_name: str | None, email: str | None) -> str:
    name = (full_name or "").strip()
    if name:
        return name
    local_part = (email or "").split("@", 1)[0].strip()
    return local_part or "User"


def ensure_profile(store: RecordStore, account: dict[str, Any]) -> Profile:
    """Return the caller's profile, creating a minimal ``both`` profile when missing."""
    account_id = str(account["accountID"])
    try:
        existing = store.get("profiles", account_id)
        if existing is not None:
            return existing
        profile = store.create(
            "profiles",
            {
                "ProfileID": account_id,
                "Role": DEFAULT_ROLE,
                "FullName": default_display_name(account.get("fullName"), account.get("email")),
                "Verified": False,
            },
        )
    except PersistenceError as exc:
        raise ProfileProvisioningError(f"Failed to create user profile: {exc}") from exc
    PROFILE_LOGGER.info("Provisioned default profile for account %s", account_id)
    return profile


def serialize_profile(profile: Profile) -> dict:
    return {
        "profileID": profile.ProfileID,
        "role": profile.Role,
        "fullName": profile.FullName,
        "hospitalName": profile.HospitalName,
        "phone": profile.Phone,
        "address": profile.Address,
        "city": profile.City,
        "latitude": profile.Latitude,
        "longitude": profile.Longitude,
        "avatarUrl": profile.AvatarUrl,
        "verified": bool(profile.Verified),
        "createdAt": profile.CreatedAt,
        "updatedAt": profile.UpdatedAt,
    }
