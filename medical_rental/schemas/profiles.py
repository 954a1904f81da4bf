from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SignupRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: str = Field(min_length=3)
    password: str = Field(min_length=8)
    fullName: Optional[str] = None
    hospitalName: Optional[str] = None
    role: Literal["buyer", "seller", "both"] = "both"


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: str
    password: str


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    fullName: Optional[str] = Field(default=None, min_length=1)
    hospitalName: Optional[str] = None
    role: Optional[Literal["buyer", "seller", "both"]] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    avatarUrl: Optional[str] = None

    @field_validator("fullName", "role")
    @classmethod
    def _not_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be cleared")
        return value
