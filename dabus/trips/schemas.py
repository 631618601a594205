from pydantic import BaseModel
from typing import Optional
from datetime import datetime, date, time
from enum import Enum

class TripStatus(str, Enum):
    """Trip status enumeration"""
    SCHEDULED = "scheduled"
    FULL = "full"          # derived: scheduled with no seat left
    COMPLETED = "completed"
    CANCELLED = "cancelled"

# Statuses an operator may store on a trip
STORED_TRIP_STATUSES = (TripStatus.SCHEDULED, TripStatus.COMPLETED, TripStatus.CANCELLED)

class TripCreate(BaseModel):
    """Request to schedule a new trip"""
    origin: str
    destination: str
    departure_date: date
    departure_time: time
    capacity: int
    price: float

class TripUpdate(BaseModel):
    """Partial update of a trip; seat counters are not writable"""
    origin: Optional[str] = None
    destination: Optional[str] = None
    departure_date: Optional[date] = None
    departure_time: Optional[time] = None
    capacity: Optional[int] = None
    price: Optional[float] = None
    status: Optional[TripStatus] = None

    class Config:
        extra = "forbid"

class TripFilters(BaseModel):
    origin: Optional[str] = None
    destination: Optional[str] = None
    departure_date: Optional[date] = None
    status: Optional[TripStatus] = None

class Trip(BaseModel):
    id: str
    origin: str
    destination: str
    departure_date: date
    departure_time: time
    capacity: int
    available_seats: int
    price: float
    status: TripStatus
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
