"""
Trip seat inventory.

The only code allowed to write ``trips.available_seats``. Every mutation is a
single conditional UPDATE whose WHERE clause encodes the invariant
``0 <= available_seats <= capacity``; a conflict is detected from the row
count of that statement, never from an earlier read. Two confirmations racing
for the last seat therefore resolve in the store: one update matches, the
other matches nothing and fails with InventoryError.

Methods run inside the caller's transaction and do not commit.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from dabus.exceptions import InventoryError, NotFoundError, ValidationError
from dabus.models import Trip, utcnow

logger = logging.getLogger(__name__)


class TripInventory:
    """Atomic seat counter operations against the trips table"""

    def __init__(self, db: Session):
        self.db = db

    def adjust_seats(self, trip_id: str, delta: int) -> Trip:
        """
        Apply ``available_seats += delta`` atomically.

        Raises NotFoundError for an unknown trip and InventoryError when the
        result would leave [0, capacity]. Returns the refreshed trip.
        """
        if delta == 0:
            raise ValidationError("Seat adjustment must be non-zero")

        new_value = Trip.available_seats + delta
        result = self.db.execute(
            update(Trip)
            .where(Trip.id == trip_id, new_value >= 0, new_value <= Trip.capacity)
            .values(available_seats=new_value, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            self._ensure_exists(trip_id)
            logger.warning("Rejected seat adjustment %+d on trip %s", delta, trip_id)
            if delta < 0:
                raise InventoryError("no seats available")
            raise InventoryError("seat count would exceed capacity")

        return self._reload(trip_id)

    def resize_capacity(self, trip_id: str, new_capacity: int) -> Trip:
        """
        Change capacity and shift available_seats by the same amount.

        Fails with InventoryError when more seats are already taken than the
        new capacity allows.
        """
        if new_capacity < 1:
            raise ValidationError("Capacity must be at least 1")

        shifted = Trip.available_seats + (new_capacity - Trip.capacity)
        result = self.db.execute(
            update(Trip)
            .where(Trip.id == trip_id, shifted >= 0)
            .values(capacity=new_capacity, available_seats=shifted, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            self._ensure_exists(trip_id)
            raise InventoryError("Capacity is below the number of seats already booked")

        return self._reload(trip_id)

    def _ensure_exists(self, trip_id: str) -> None:
        found = self.db.execute(select(Trip.id).where(Trip.id == trip_id)).first()
        if found is None:
            raise NotFoundError("Trip not found")

    def _reload(self, trip_id: str) -> Trip:
        return self.db.execute(
            select(Trip)
            .where(Trip.id == trip_id)
            .execution_options(populate_existing=True)
        ).scalar_one()
