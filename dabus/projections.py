"""
Read-side projections over trips and bookings.

Nothing here mutates the store. Bookings are always joined to their trip with
an outer join so a booking whose trip has been deleted is still listed, with
``trip`` set to None.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from dabus.bookings.schemas import BookingStatus, PaymentStatus
from dabus.database import storage_guard
from dabus.exceptions import ValidationError
from dabus.models import Booking, Trip, User
from dabus.trips.schemas import TripStatus

MAX_PAGE_SIZE = 100
RECENT_BOOKINGS_LIMIT = 10


def derive_trip_status(trip: Trip) -> TripStatus:
    """A scheduled trip with no seat left is reported as full"""
    stored = TripStatus(trip.status)
    if stored == TripStatus.SCHEDULED and trip.available_seats <= 0:
        return TripStatus.FULL
    return stored


def trip_to_dict(trip: Trip) -> Dict[str, Any]:
    return {
        "id": trip.id,
        "origin": trip.origin,
        "destination": trip.destination,
        "departure_date": trip.departure_date,
        "departure_time": trip.departure_time,
        "capacity": trip.capacity,
        "available_seats": trip.available_seats,
        "price": float(trip.price),
        "status": derive_trip_status(trip),
        "created_by": trip.created_by,
        "created_at": trip.created_at,
        "updated_at": trip.updated_at,
    }


def booking_to_dict(booking: Booking, trip: Optional[Trip] = None) -> Dict[str, Any]:
    return {
        "id": booking.id,
        "trip_id": booking.trip_id,
        "user_id": booking.user_id,
        "full_name": booking.full_name,
        "phone": booking.phone,
        "status": booking.status,
        "payment_status": booking.payment_status,
        "payment_link": booking.payment_link,
        "created_at": booking.created_at,
        "updated_at": booking.updated_at,
        "trip": trip_to_dict(trip) if trip is not None else None,
    }


def page_window(page: int, limit: int) -> Tuple[int, int]:
    """Return (offset, limit) for a 1-based page"""
    if page < 1:
        raise ValidationError("Page must be at least 1")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")
    return (page - 1) * limit, limit


def _start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


class ProjectionService:
    """Filtered and paginated views for public, requester and admin audiences"""

    def __init__(self, db: Session):
        self.db = db

    def _bookings_with_trips(self):
        return select(Booking, Trip).outerjoin(Trip, Booking.trip_id == Trip.id)

    def get_booking(self, booking_id: str) -> Optional[Dict[str, Any]]:
        with storage_guard(self.db, commit=False):
            row = self.db.execute(
                self._bookings_with_trips().where(Booking.id == booking_id)
            ).first()
        if row is None:
            return None
        return booking_to_dict(row[0], row[1])

    def list_bookings_for_requester(self, user_id: str) -> List[Dict[str, Any]]:
        """Bookings made by one user, newest first"""
        query = (
            self._bookings_with_trips()
            .where(Booking.user_id == user_id)
            .order_by(Booking.created_at.desc(), Booking.id)
        )
        with storage_guard(self.db, commit=False):
            rows = self.db.execute(query).all()
        return [booking_to_dict(booking, trip) for booking, trip in rows]

    def list_all_bookings(
        self,
        status: Optional[BookingStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[Dict[str, Any]], int]:
        """One page of bookings plus the total matching count"""
        offset, limit = page_window(page, limit)

        conditions = []
        if status:
            conditions.append(Booking.status == status.value)
        if date_from:
            conditions.append(Booking.created_at >= _start_of_day(date_from))
        if date_to:
            conditions.append(Booking.created_at < _start_of_day(date_to + timedelta(days=1)))

        with storage_guard(self.db, commit=False):
            total = self.db.execute(
                select(func.count(Booking.id)).where(*conditions)
            ).scalar_one()

            rows = self.db.execute(
                self._bookings_with_trips()
                .where(*conditions)
                .order_by(Booking.created_at.desc(), Booking.id)
                .offset(offset)
                .limit(limit)
            ).all()

        return [booking_to_dict(booking, trip) for booking, trip in rows], total

    def list_admin_trips(self, status: Optional[TripStatus] = None) -> List[Dict[str, Any]]:
        """Every trip regardless of status, by departure"""
        query = select(Trip).order_by(Trip.departure_date.asc(), Trip.departure_time.asc())
        if status:
            query = query.where(*trip_status_conditions(status))
        with storage_guard(self.db, commit=False):
            trips = self.db.execute(query).scalars().all()
        return [trip_to_dict(trip) for trip in trips]

    def dashboard_stats(self, today: Optional[date] = None) -> Dict[str, Any]:
        """Revenue counts paid bookings that were not cancelled afterwards"""
        today = today or datetime.now(timezone.utc).date()

        with storage_guard(self.db, commit=False):
            total_users = self.db.execute(select(func.count(User.id))).scalar_one()
            total_trips = self.db.execute(select(func.count(Trip.id))).scalar_one()
            total_bookings = self.db.execute(select(func.count(Booking.id))).scalar_one()
            completed_bookings = self.db.execute(
                select(func.count(Booking.id)).where(Booking.status == BookingStatus.COMPLETED.value)
            ).scalar_one()
            total_revenue = self.db.execute(
                select(func.coalesce(func.sum(Trip.price), 0))
                .select_from(Booking)
                .join(Trip, Booking.trip_id == Trip.id)
                .where(
                    Booking.payment_status == PaymentStatus.PAID.value,
                    Booking.status != BookingStatus.CANCELLED.value
                )
            ).scalar_one()
            upcoming_trips = self.db.execute(
                select(func.count(Trip.id)).where(
                    Trip.status == TripStatus.SCHEDULED.value,
                    Trip.departure_date >= today
                )
            ).scalar_one()
            recent = self.db.execute(
                self._bookings_with_trips()
                .order_by(Booking.created_at.desc(), Booking.id)
                .limit(RECENT_BOOKINGS_LIMIT)
            ).all()

        return {
            "total_users": total_users,
            "total_trips": total_trips,
            "total_bookings": total_bookings,
            "completed_bookings": completed_bookings,
            "total_revenue": float(total_revenue or 0),
            "upcoming_trips": upcoming_trips,
            "recent_bookings": [booking_to_dict(booking, trip) for booking, trip in recent],
        }

    def export_rows(self) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
        """All trips (by departure) and all bookings (newest first) for spreadsheets"""
        trips = self.list_admin_trips()
        with storage_guard(self.db, commit=False):
            rows = self.db.execute(
                self._bookings_with_trips().order_by(Booking.created_at.desc(), Booking.id)
            ).all()
        return trips, [booking_to_dict(booking, trip) for booking, trip in rows]


def trip_status_conditions(status: TripStatus) -> list:
    """SQL conditions matching the derived trip status"""
    if status == TripStatus.FULL:
        return [Trip.status == TripStatus.SCHEDULED.value, Trip.available_seats <= 0]
    if status == TripStatus.SCHEDULED:
        return [Trip.status == TripStatus.SCHEDULED.value, Trip.available_seats > 0]
    return [Trip.status == status.value]
