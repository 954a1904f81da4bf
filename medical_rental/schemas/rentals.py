from datetime import date
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict


class CreateRentalDto(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    equipmentID: int
    startDate: date
    endDate: date
    deliveryAddress: Optional[str] = None
    deliveryLatitude: Optional[float] = None
    deliveryLongitude: Optional[float] = None
    notes: Optional[str] = None


class RentalDraft(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    equipmentID: int
    buyerID: str
    sellerID: str
    status: Literal["pending"] = "pending"
    startDate: date
    endDate: date
    days: int
    totalAmount: Decimal
    deliveryAddress: Optional[str] = None
    deliveryLatitude: float
    deliveryLongitude: float
    notes: Optional[str] = None

    def to_record(self) -> dict:
        return {
            "EquipmentID": self.equipmentID,
            "BuyerID": self.buyerID,
            "SellerID": self.sellerID,
            "Status": self.status,
            "StartDate": self.startDate,
            "EndDate": self.endDate,
            "TotalAmount": self.totalAmount,
            "DeliveryAddress": self.deliveryAddress,
            "DeliveryLatitude": self.deliveryLatitude,
            "DeliveryLongitude": self.deliveryLongitude,
            "Notes": self.notes,
        }


class QuoteResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    equipmentID: int
    startDate: date
    endDate: date
    days: int
    totalAmount: Optional[Decimal] = None
