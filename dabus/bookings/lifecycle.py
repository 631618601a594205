"""
Booking lifecycle.

State machine over ``pending -> confirmed -> completed`` with ``cancelled``
reachable from any non-terminal state. Every transition is a compare-and-swap
UPDATE on the booking's current status, executed in the same transaction as
its inventory side effect; if the seat adjustment fails the status change is
rolled back with it.

Whether a booking holds a seat is recorded in ``bookings.seat_consumed``. The
compensating seat release on cancellation is issued only when that flag was
set, so cancelling a booking that never took a seat leaves the trip alone.
"""

import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from dabus.bookings.payments import select_payment_link
from dabus.bookings.schemas import ADMIN_SETTABLE_STATUSES, BookingStatus, PaymentStatus
from dabus.config import Settings, settings as default_settings
from dabus.database import storage_guard
from dabus.exceptions import (
    AlreadyCancelledError, CapacityError, InvalidTransitionError, InventoryError,
    NotFoundError, ValidationError
)
from dabus.models import Booking, Trip, utcnow
from dabus.trips.inventory import TripInventory
from dabus.trips.schemas import TripStatus

logger = logging.getLogger(__name__)


class BookingLifecycle:
    """Creates bookings and drives their status transitions"""

    def __init__(self, db: Session, settings: Optional[Settings] = None, inventory: Optional[TripInventory] = None):
        self.db = db
        self.settings = settings or default_settings
        self.inventory = inventory or TripInventory(db)

    @property
    def pending_holds_seat(self) -> bool:
        return self.settings.PENDING_HOLDS_SEAT

    def create_booking(self, trip_id: str, full_name: str, phone: str, user_id: Optional[str] = None) -> Booking:
        """
        Create a pending booking with its payment link attached.

        Seat availability is checked as a visibility gate only; the seat is
        taken at confirmation unless PENDING_HOLDS_SEAT is enabled.
        """
        if not trip_id or not full_name or not phone or not full_name.strip() or not phone.strip():
            raise ValidationError("Trip ID, name and phone are required")

        with storage_guard(self.db):
            trip = self.db.get(Trip, trip_id)
            if trip is None:
                raise NotFoundError("Trip not found")
            if trip.status != TripStatus.SCHEDULED.value:
                raise ValidationError(f"Trip is not open for booking (status: {trip.status})")
            if trip.available_seats <= 0:
                raise CapacityError("No available seats")

            booking = Booking(
                trip_id=trip_id,
                user_id=user_id,
                full_name=full_name.strip(),
                phone=phone.strip(),
                status=BookingStatus.PENDING.value,
                payment_status=PaymentStatus.PENDING.value,
                payment_link=select_payment_link(trip.price, self.settings),
                seat_consumed=False
            )

            if self.pending_holds_seat:
                try:
                    self.inventory.adjust_seats(trip_id, -1)
                except InventoryError:
                    raise CapacityError("No available seats") from None
                booking.seat_consumed = True

            self.db.add(booking)

        logger.info("Created booking %s on trip %s", booking.id, trip_id)
        return booking

    def get_booking(self, booking_id: str) -> Booking:
        with storage_guard(self.db, commit=False):
            return self._load(booking_id)

    def confirm_booking(self, booking_id: str) -> Booking:
        """Payment verified: pending -> confirmed, taking one seat"""
        with storage_guard(self.db):
            booking = self._load(booking_id)
            if booking.status != BookingStatus.PENDING.value:
                raise InvalidTransitionError(f"Booking cannot be confirmed. Status: {booking.status}")

            take_seat = not booking.seat_consumed
            self._swap_status(
                booking,
                BookingStatus.CONFIRMED,
                payment_status=PaymentStatus.PAID.value,
                seat_consumed=True
            )
            if take_seat:
                self.inventory.adjust_seats(booking.trip_id, -1)

            booking = self._load(booking_id)

        logger.info("Confirmed booking %s", booking_id)
        return booking

    def cancel_booking(self, booking_id: str) -> Booking:
        """Cancel a non-terminal booking, releasing its seat if it held one"""
        with storage_guard(self.db):
            booking = self._load(booking_id)
            if booking.status == BookingStatus.CANCELLED.value:
                raise AlreadyCancelledError()
            if booking.status == BookingStatus.COMPLETED.value:
                raise InvalidTransitionError("Completed bookings cannot be cancelled")

            held_seat = bool(booking.seat_consumed)
            self._swap_status(booking, BookingStatus.CANCELLED, seat_consumed=False)
            if held_seat:
                self.inventory.adjust_seats(booking.trip_id, +1)

            booking = self._load(booking_id)

        logger.info("Cancelled booking %s (seat released: %s)", booking_id, held_seat)
        return booking

    def complete_booking(self, booking_id: str) -> Booking:
        """confirmed -> completed; the seat stays consumed"""
        with storage_guard(self.db):
            booking = self._load(booking_id)
            if booking.status != BookingStatus.CONFIRMED.value:
                raise InvalidTransitionError(f"Booking cannot be completed. Status: {booking.status}")

            self._swap_status(booking, BookingStatus.COMPLETED)
            booking = self._load(booking_id)

        logger.info("Completed booking %s", booking_id)
        return booking

    def set_booking_status(self, booking_id: str, new_status: str) -> Booking:
        """Admin entry point for confirmed / cancelled / completed"""
        try:
            status = BookingStatus(new_status)
        except ValueError:
            raise ValidationError("Invalid status")
        if status not in ADMIN_SETTABLE_STATUSES:
            raise ValidationError("Invalid status")

        if status == BookingStatus.CONFIRMED:
            return self.confirm_booking(booking_id)
        if status == BookingStatus.CANCELLED:
            return self.cancel_booking(booking_id)
        return self.complete_booking(booking_id)

    def _load(self, booking_id: str) -> Booking:
        booking = self.db.execute(
            select(Booking)
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking

    def _swap_status(self, booking: Booking, new_status: BookingStatus, **values) -> None:
        """
        Move ``booking`` to ``new_status`` only if its row still has the
        status and seat flag we read; a concurrent transition makes this fail.
        """
        result = self.db.execute(
            update(Booking)
            .where(
                Booking.id == booking.id,
                Booking.status == booking.status,
                Booking.seat_consumed == booking.seat_consumed
            )
            .values(status=new_status.value, updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return

        current = self._load(booking.id)
        if current.status == BookingStatus.CANCELLED.value and new_status == BookingStatus.CANCELLED:
            raise AlreadyCancelledError()
        raise InvalidTransitionError(
            f"Booking changed concurrently (now {current.status}); retry the operation"
        )
