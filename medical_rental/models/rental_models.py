from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from db.base import Base


class Account(Base):
    __tablename__ = "Accounts"

    AccountID = Column(String(36), primary_key=True)
    Email = Column(String(255), nullable=False, unique=True)
    FullName = Column(String(255))
    PasswordHash = Column(String(256), nullable=False)
    PasswordSalt = Column(String(64), nullable=False)
    CreatedAt = Column(DateTime, server_default=func.now())


class Profile(Base):
    __tablename__ = "Profiles"

    ProfileID = Column(String(36), ForeignKey("Accounts.AccountID"), primary_key=True)
    Role = Column(String(10), nullable=False, default="both")
    FullName = Column(String(255), nullable=False)
    HospitalName = Column(String(255))
    Phone = Column(String(50))
    Address = Column(String(500))
    City = Column(String(100))
    Latitude = Column(Float)
    Longitude = Column(Float)
    AvatarUrl = Column(String(1000))
    Verified = Column(Boolean, default=False)
    CreatedAt = Column(DateTime, server_default=func.now())
    UpdatedAt = Column(DateTime, server_default=func.now())

    Equipment = relationship("Equipment", back_populates="Seller")


class Category(Base):
    __tablename__ = "Categories"

    CategoryID = Column(Integer, primary_key=True)
    Name = Column(String(100), nullable=False)
    Slug = Column(String(100), nullable=False, unique=True)
    Icon = Column(String(50))
    Description = Column(String(500))
    CreatedAt = Column(DateTime, server_default=func.now())

    Equipment = relationship("Equipment", back_populates="Category")


class Equipment(Base):
    __tablename__ = "Equipment"

    EquipmentID = Column(Integer, primary_key=True)
    SellerID = Column(String(36), ForeignKey("Profiles.ProfileID"), nullable=False)
    CategoryID = Column(Integer, ForeignKey("Categories.CategoryID"))
    Name = Column(String(255), nullable=False)
    Description = Column(String(2000))
    Brand = Column(String(255))
    Model = Column(String(255))
    YearManufactured = Column(Integer)
    Condition = Column(String(20), nullable=False, default="good")
    DailyRate = Column(Numeric(10, 2), nullable=False)
    WeeklyRate = Column(Numeric(10, 2))
    MonthlyRate = Column(Numeric(10, 2))
    Images = Column(Text)
    Specifications = Column(Text)
    Latitude = Column(Float)
    Longitude = Column(Float)
    City = Column(String(100))
    Available = Column(Boolean, default=True)
    Featured = Column(Boolean, default=False)
    ViewsCount = Column(Integer, default=0)
    CreatedAt = Column(DateTime, server_default=func.now())
    UpdatedAt = Column(DateTime, server_default=func.now())

    Seller = relationship("Profile", back_populates="Equipment")
    Category = relationship("Category", back_populates="Equipment")
    Rentals = relationship("Rental", back_populates="Equipment")


class Rental(Base):
    __tablename__ = "Rentals"

    RentalID = Column(Integer, primary_key=True)
    EquipmentID = Column(Integer, ForeignKey("Equipment.EquipmentID"), nullable=False)
    BuyerID = Column(String(36), ForeignKey("Profiles.ProfileID"), nullable=False)
    SellerID = Column(String(36), ForeignKey("Profiles.ProfileID"), nullable=False)
    Status = Column(String(20), nullable=False, default="pending")
    StartDate = Column(Date, nullable=False)
    EndDate = Column(Date, nullable=False)
    TotalAmount = Column(Numeric(12, 2), nullable=False)
    DeliveryAddress = Column(String(500))
    DeliveryLatitude = Column(Float)
    DeliveryLongitude = Column(Float)
    Notes = Column(String(2000))
    CreatedAt = Column(DateTime, server_default=func.now())
    UpdatedAt = Column(DateTime, server_default=func.now())

    Equipment = relationship("Equipment", back_populates="Rentals")
    Buyer = relationship("Profile", foreign_keys=[BuyerID])
    Seller = relationship("Profile", foreign_keys=[SellerID])


class AuditLog(Base):
    __tablename__ = "AuditLogs"

    AuditID = Column(Integer, primary_key=True)
    EntityType = Column(String(50), nullable=False)
    EntityID = Column(String(36), nullable=False)
    Action = Column(String(100), nullable=False)
    Details = Column(String(2000))
    UserID = Column(String(36))
    CreatedAt = Column(DateTime, server_default=func.now())
