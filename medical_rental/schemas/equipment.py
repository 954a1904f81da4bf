from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

EquipmentCondition = Literal["new", "excellent", "good", "fair"]


class EquipmentCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(min_length=1)
    description: Optional[str] = None
    categoryID: Optional[int] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    yearManufactured: Optional[int] = None
    condition: EquipmentCondition = "good"
    dailyRate: Decimal = Field(gt=0)
    weeklyRate: Optional[Decimal] = Field(default=None, ge=0)
    monthlyRate: Optional[Decimal] = Field(default=None, ge=0)
    specifications: Dict[str, str] = {}
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    city: Optional[str] = None


class EquipmentUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    categoryID: Optional[int] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    yearManufactured: Optional[int] = None
    condition: Optional[EquipmentCondition] = None
    dailyRate: Optional[Decimal] = Field(default=None, gt=0)
    weeklyRate: Optional[Decimal] = Field(default=None, ge=0)
    monthlyRate: Optional[Decimal] = Field(default=None, ge=0)
    specifications: Optional[Dict[str, str]] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    city: Optional[str] = None
    images: Optional[List[str]] = None

    @field_validator("name", "condition", "dailyRate")
    @classmethod
    def _not_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be cleared")
        return value


class AvailabilityRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    available: bool
