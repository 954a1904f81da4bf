from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from models.rental_models import Equipment, Rental
from schemas.rentals import CreateRentalDto, RentalDraft
from services.pricing_service import compute_cost, days_between
from services.rental_errors import (
    InvalidDateRangeError,
    InvalidTransition,
    MissingLocationError,
    SelfRentalError,
)

RENTAL_STATES = {"pending", "approved", "active", "completed", "cancelled", "rejected"}
TERMINAL_STATES = {"completed", "cancelled", "rejected"}

# (current status, action) -> (actors allowed, next status)
RENTAL_TRANSITIONS = {
    ("pending", "approve"): ({"seller"}, "approved"),
    ("pending", "reject"): ({"seller"}, "rejected"),
    ("pending", "cancel"): ({"buyer"}, "cancelled"),
    ("approved", "deliver"): ({"seller"}, "active"),
    ("active", "complete"): ({"buyer", "seller"}, "completed"),
}

# Statuses that hold the listing off the market.
COMMITTED_STATES = ("approved", "active")

# Listing availability written in the same transaction as the status change.
LISTING_AVAILABILITY_ON = {
    "approved": False,
    "completed": True,
}


def validate_and_build_request(
    payload: CreateRentalDto,
    equipment: Equipment,
    requester_id: str,
) -> RentalDraft:
    if str(requester_id) == str(equipment.SellerID):
        raise SelfRentalError()

    if payload.deliveryLatitude is None or payload.deliveryLongitude is None:
        raise MissingLocationError()

    if payload.endDate < payload.startDate:
        raise InvalidDateRangeError("End date must be on or after the start date.")
    days = days_between(payload.startDate, payload.endDate)
    if days <= 0:
        raise InvalidDateRangeError()

    total = compute_cost(equipment.DailyRate, equipment.WeeklyRate, equipment.MonthlyRate, days)
    return RentalDraft(
        equipmentID=equipment.EquipmentID,
        buyerID=str(requester_id),
        sellerID=str(equipment.SellerID),
        startDate=payload.startDate,
        endDate=payload.endDate,
        days=days,
        totalAmount=total,
        deliveryAddress=(payload.deliveryAddress or "").strip() or None,
        deliveryLatitude=payload.deliveryLatitude,
        deliveryLongitude=payload.deliveryLongitude,
        notes=(payload.notes or "").strip() or None,
    )


def resolve_actor_role(rental: Rental, party_id: str | None) -> str | None:
    if not party_id:
        return None
    if str(party_id) == str(rental.SellerID):
        return "seller"
    if str(party_id) == str(rental.BuyerID):
        return "buyer"
    return None


def next_status(current: str | None, action: str, actor_role: str | None) -> str:
    """Status reached by ``action``; raises ``InvalidTransition`` when not allowed."""
    if current in TERMINAL_STATES:
        raise InvalidTransition(current, action, actor_role, "rental is already closed")
    rule = RENTAL_TRANSITIONS.get((current, action))
    if rule is None:
        raise InvalidTransition(current, action, actor_role, "action not available in this status")
    allowed_actors, target = rule
    if actor_role not in allowed_actors:
        raise InvalidTransition(current, action, actor_role, "not permitted for this party")
    return target


def apply_transition(
    rental: Rental,
    action: str,
    actor_role: str | None,
    now: datetime | None = None,
    other_commitments: int = 0,
) -> Rental:
    """Move ``rental`` along the lifecycle.

    ``other_commitments`` counts the listing's other approved or active
    rentals; a listing can only be committed to one rental at a time.
    """
    target = next_status(rental.Status, action, actor_role)
    if target in COMMITTED_STATES and rental.Status not in COMMITTED_STATES and other_commitments:
        raise InvalidTransition(rental.Status, action, actor_role, "equipment is already committed to another rental")
    rental.Status = target
    rental.UpdatedAt = now or datetime.now()
    return rental


def listing_availability_after(rental: Rental, other_commitments: int = 0) -> bool | None:
    """Availability to write on the listing after a transition, or ``None`` to leave it."""
    available = LISTING_AVAILABILITY_ON.get(rental.Status)
    if available and other_commitments:
        return None
    return available


def available_actions(rental: Rental, actor_role: str | None) -> list[str]:
    actions = []
    for (current, action), (allowed_actors, _) in RENTAL_TRANSITIONS.items():
        if current == rental.Status and actor_role in allowed_actors:
            actions.append(action)
    return actions


def _float_or_none(value: Any) -> float | None:
    return float(value) if value is not None else None


def serialize_rental(rental: Rental, viewer_id: str | None = None) -> dict:
    equipment = rental.Equipment
    actor_role = resolve_actor_role(rental, viewer_id)
    return {
        "rentalID": rental.RentalID,
        "equipmentID": rental.EquipmentID,
        "buyerID": rental.BuyerID,
        "sellerID": rental.SellerID,
        "status": rental.Status,
        "startDate": rental.StartDate,
        "endDate": rental.EndDate,
        "days": days_between(rental.StartDate, rental.EndDate),
        "totalAmount": _float_or_none(rental.TotalAmount),
        "deliveryAddress": rental.DeliveryAddress,
        "deliveryLatitude": rental.DeliveryLatitude,
        "deliveryLongitude": rental.DeliveryLongitude,
        "notes": rental.Notes,
        "createdAt": rental.CreatedAt,
        "updatedAt": rental.UpdatedAt,
        "isTerminal": rental.Status in TERMINAL_STATES,
        "viewerRole": actor_role,
        "availableActions": available_actions(rental, actor_role),
        "equipment": {
            "equipmentID": equipment.EquipmentID,
            "name": equipment.Name,
            "city": equipment.City,
        } if equipment else None,
        "buyer": _party_summary(rental.Buyer),
        "seller": _party_summary(rental.Seller),
    }


def _party_summary(profile) -> dict | None:
    if profile is None:
        return None
    return {
        "profileID": profile.ProfileID,
        "fullName": profile.FullName,
        "hospitalName": profile.HospitalName,
    }



def build_dashboard_stats(my_equipment: list, my_rentals: list[Rental], incoming: list[Rental]) -> dict:
    revenue = sum(
        (Decimal(str(rental.TotalAmount or 0)) for rental in incoming if rental.Status == "completed"),
        Decimal("0"),
    )
    return {
        "totalEquipment": len(my_equipment),
        "activeRentals": sum(1 for rental in my_rentals + incoming if rental.Status == "active"),
        "pendingRequests": sum(1 for rental in incoming if rental.Status == "pending"),
        "totalRevenue": float(revenue),
        "completedRentals": sum(1 for rental in my_rentals if rental.Status == "completed"),
    }
