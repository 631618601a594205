import logging
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from dabus.bookings.schemas import BookingStatus
from dabus.database import storage_guard
from dabus.exceptions import NotFoundError, TripInUseError, ValidationError
from dabus.models import Booking, Trip, utcnow
from dabus.projections import trip_status_conditions
from dabus.trips.inventory import TripInventory
from dabus.trips.schemas import STORED_TRIP_STATUSES, TripCreate, TripFilters, TripStatus, TripUpdate

logger = logging.getLogger(__name__)

ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)

def _require_text(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field} is required")
    return value.strip()

class TripService:
    """Service for scheduling and administering trips"""

    def __init__(self, db: Session):
        self.db = db
        self.inventory = TripInventory(db)

    def create_trip(self, data: TripCreate, created_by: Optional[str] = None) -> Trip:
        """Create a scheduled trip with every seat available"""
        origin = _require_text(data.origin, "Origin")
        destination = _require_text(data.destination, "Destination")
        if data.capacity is None or data.capacity < 1:
            raise ValidationError("Capacity must be at least 1")
        if data.price is None or data.price < 0:
            raise ValidationError("Price must not be negative")

        trip = Trip(
            origin=origin,
            destination=destination,
            departure_date=data.departure_date,
            departure_time=data.departure_time,
            capacity=data.capacity,
            available_seats=data.capacity,
            price=data.price,
            status=TripStatus.SCHEDULED.value,
            created_by=created_by
        )

        with storage_guard(self.db):
            self.db.add(trip)

        logger.info("Created trip %s %s -> %s (%d seats)", trip.id, origin, destination, trip.capacity)
        return trip

    def get_trip(self, trip_id: str) -> Trip:
        with storage_guard(self.db, commit=False):
            trip = self.db.get(Trip, trip_id)
        if trip is None:
            raise NotFoundError("Trip not found")
        return trip

    def list_trips(self, filters: Optional[TripFilters] = None) -> List[Trip]:
        """
        Public trip search.

        Without a status filter only bookable or full trips are listed;
        completed and cancelled trips stay hidden.
        """
        filters = filters or TripFilters()
        query = select(Trip)

        if filters.origin:
            query = query.where(Trip.origin.icontains(filters.origin, autoescape=True))
        if filters.destination:
            query = query.where(Trip.destination.icontains(filters.destination, autoescape=True))
        if filters.departure_date:
            query = query.where(Trip.departure_date == filters.departure_date)
        if filters.status:
            query = query.where(*trip_status_conditions(filters.status))
        else:
            # scheduled covers both bookable and full trips
            query = query.where(Trip.status == TripStatus.SCHEDULED.value)

        query = query.order_by(Trip.departure_date.asc(), Trip.departure_time.asc())

        with storage_guard(self.db, commit=False):
            return list(self.db.execute(query).scalars().all())

    def update_trip(self, trip_id: str, update_data: TripUpdate) -> Trip:
        """Merge the provided fields into the trip"""
        changes = update_data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No fields to update")

        for field in ("origin", "destination"):
            if field in changes:
                changes[field] = _require_text(changes[field], field.capitalize())
        for field in ("departure_date", "departure_time"):
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be empty")
        if "price" in changes and (changes["price"] is None or changes["price"] < 0):
            raise ValidationError("Price must not be negative")

        new_status = changes.pop("status", None)
        if new_status is not None and new_status not in STORED_TRIP_STATUSES:
            raise ValidationError("Trip status 'full' is derived from seat availability")

        capacity = changes.pop("capacity", None)

        with storage_guard(self.db):
            trip = self.db.get(Trip, trip_id)
            if trip is None:
                raise NotFoundError("Trip not found")

            if capacity is not None:
                trip = self.inventory.resize_capacity(trip_id, capacity)

            for field, value in changes.items():
                setattr(trip, field, value)

            if new_status is not None:
                if new_status == TripStatus.COMPLETED and trip.status != TripStatus.COMPLETED.value:
                    self._complete_confirmed_bookings(trip_id)
                trip.status = new_status.value

            trip.updated_at = utcnow()

        logger.info("Updated trip %s: %s", trip_id, ", ".join(sorted(update_data.model_dump(exclude_unset=True))))
        return trip

    def delete_trip(self, trip_id: str) -> None:
        """
        Delete a trip that no pending or confirmed booking depends on.

        Cancelled and completed bookings are kept and lose their trip link.
        """
        with storage_guard(self.db):
            trip = self.db.get(Trip, trip_id)
            if trip is None:
                raise NotFoundError("Trip not found")

            active = self.db.execute(
                select(func.count(Booking.id)).where(
                    Booking.trip_id == trip_id,
                    Booking.status.in_(ACTIVE_BOOKING_STATUSES)
                )
            ).scalar_one()
            if active:
                raise TripInUseError(f"Trip has {active} active booking(s); cancel them first")

            self.db.delete(trip)

        logger.info("Deleted trip %s", trip_id)

    def _complete_confirmed_bookings(self, trip_id: str) -> int:
        result = self.db.execute(
            update(Booking)
            .where(Booking.trip_id == trip_id, Booking.status == BookingStatus.CONFIRMED.value)
            .values(status=BookingStatus.COMPLETED.value, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info("Completed %d confirmed booking(s) of trip %s", result.rowcount, trip_id)
        return result.rowcount
