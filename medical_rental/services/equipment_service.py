from __future__ import annotations

import json
from typing import Any

from models.rental_models import Equipment

CONDITION_LABELS = {
    "new": "Brand New",
    "excellent": "Excellent",
    "good": "Good",
    "fair": "Fair",
}

_FIELD_MAP = {
    "name": "Name",
    "description": "Description",
    "categoryID": "CategoryID",
    "brand": "Brand",
    "model": "Model",
    "yearManufactured": "YearManufactured",
    "condition": "Condition",
    "dailyRate": "DailyRate",
    "weeklyRate": "WeeklyRate",
    "monthlyRate": "MonthlyRate",
    "latitude": "Latitude",
    "longitude": "Longitude",
    "city": "City",
}


def map_equipment_fields(values: dict[str, Any]) -> dict[str, Any]:
    """Translate DTO keys into ``Equipment`` column names; JSON columns are encoded."""
    fields: dict[str, Any] = {}
    for key, value in values.items():
        if key in _FIELD_MAP:
            fields[_FIELD_MAP[key]] = value
        elif key == "specifications":
            fields["Specifications"] = json.dumps(value or {}, ensure_ascii=True)
        elif key == "images":
            fields["Images"] = json.dumps(value or [], ensure_ascii=True)
    return fields


def _load_json(raw: str | None, fallback):
    if not raw:
        return fallback
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return fallback
    return parsed if isinstance(parsed, type(fallback)) else fallback


def get_images(equipment: Equipment) -> list[str]:
    return _load_json(equipment.Images, [])


def _money(value) -> float | None:
    return float(value) if value is not None else None


def serialize_equipment(equipment: Equipment) -> dict:
    seller = equipment.Seller
    category = equipment.Category
    return {
        "equipmentID": equipment.EquipmentID,
        "sellerID": equipment.SellerID,
        "categoryID": equipment.CategoryID,
        "name": equipment.Name,
        "description": equipment.Description,
        "brand": equipment.Brand,
        "model": equipment.Model,
        "yearManufactured": equipment.YearManufactured,
        "condition": equipment.Condition,
        "conditionLabel": CONDITION_LABELS.get(equipment.Condition, equipment.Condition),
        "dailyRate": _money(equipment.DailyRate),
        "weeklyRate": _money(equipment.WeeklyRate),
        "monthlyRate": _money(equipment.MonthlyRate),
        "images": get_images(equipment),
        "specifications": _load_json(equipment.Specifications, {}),
        "latitude": equipment.Latitude,
        "longitude": equipment.Longitude,
        "city": equipment.City,
        "available": bool(equipment.Available),
        "featured": bool(equipment.Featured),
        "viewsCount": int(equipment.ViewsCount or 0),
        "createdAt": equipment.CreatedAt,
        "updatedAt": equipment.UpdatedAt,
        "seller": {
            "profileID": seller.ProfileID,
            "fullName": seller.FullName,
            "hospitalName": seller.HospitalName,
            "verified": bool(seller.Verified),
        } if seller else None,
        "category": {
            "categoryID": category.CategoryID,
            "name": category.Name,
            "slug": category.Slug,
        } if category else None,
    }


def serialize_category(category) -> dict:
    return {
        "categoryID": category.CategoryID,
        "name": category.Name,
        "slug": category.Slug,
        "icon": category.Icon,
        "description": category.Description,
    }
