from pydantic import BaseModel
from typing import List

from dabus.bookings.schemas import Booking

class DashboardStats(BaseModel):
    """Admin dashboard counters"""
    total_users: int
    total_trips: int
    total_bookings: int
    completed_bookings: int
    total_revenue: float
    upcoming_trips: int
    recent_bookings: List[Booking] = []
