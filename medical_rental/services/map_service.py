from __future__ import annotations

from models.rental_models import Equipment, Rental

MAP_RENTAL_STATES = ("approved", "active")

LEGEND = [
    {"key": "equipment", "label": "Available Equipment", "color": "#14b8a6"},
    {"key": "rental-active", "label": "Active Rental", "color": "#22c55e"},
    {"key": "rental-approved", "label": "Pending Delivery", "color": "#eab308"},
]


def equipment_marker(equipment: Equipment) -> dict | None:
    if equipment.Latitude is None or equipment.Longitude is None:
        return None
    category = equipment.Category
    return {
        "id": equipment.EquipmentID,
        "type": "equipment",
        "legendKey": "equipment",
        "latitude": equipment.Latitude,
        "longitude": equipment.Longitude,
        "title": equipment.Name,
        "category": category.Name if category else None,
        "dailyRate": float(equipment.DailyRate) if equipment.DailyRate is not None else None,
    }


def rental_marker(rental: Rental) -> dict | None:
    if rental.DeliveryLatitude is None or rental.DeliveryLongitude is None:
        return None
    if rental.Status not in MAP_RENTAL_STATES:
        return None
    equipment = rental.Equipment
    return {
        "id": rental.RentalID,
        "type": "rental",
        "legendKey": f"rental-{rental.Status}",
        "latitude": rental.DeliveryLatitude,
        "longitude": rental.DeliveryLongitude,
        "title": equipment.Name if equipment else f"Rental #{rental.RentalID}",
        "status": rental.Status,
    }


def build_map_payload(equipment_rows: list[Equipment], rental_rows: list[Rental]) -> dict:
    markers = [marker for marker in map(equipment_marker, equipment_rows) if marker]
    markers.extend(marker for marker in map(rental_marker, rental_rows) if marker)
    return {"markers": markers, "legend": LEGEND}
