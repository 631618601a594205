from pydantic import BaseModel, validator
from typing import Optional
from datetime import datetime
from enum import Enum

from dabus.trips.schemas import Trip

class BookingStatus(str, Enum):
    """Booking status enumeration"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

class PaymentStatus(str, Enum):
    """Payment status enumeration"""
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"

# Statuses an admin may set directly
ADMIN_SETTABLE_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingStatus.COMPLETED)

class BookingCreate(BaseModel):
    """Public booking request"""
    trip_id: str
    full_name: str
    phone: str

    @validator('trip_id', 'full_name', 'phone')
    def not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError('Trip ID, name and phone are required')
        return v.strip()

class BookingStatusUpdate(BaseModel):
    """Admin status change; validated against the allowed set by the service"""
    status: str

class Booking(BaseModel):
    id: str
    trip_id: Optional[str] = None
    user_id: Optional[str] = None
    full_name: str
    phone: str
    status: BookingStatus
    payment_status: PaymentStatus
    payment_link: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    trip: Optional[Trip] = None

    class Config:
        from_attributes = True

class PaymentCheckout(BaseModel):
    checkout_url: Optional[str] = None

class BookingCreated(BaseModel):
    booking: Booking
    payment: PaymentCheckout
