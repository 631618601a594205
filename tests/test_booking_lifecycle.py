from concurrent.futures import ThreadPoolExecutor
from datetime import date, time, timedelta

import pytest
from sqlalchemy import func, select, update
from sqlalchemy.orm import sessionmaker

from dabus.bookings.lifecycle import BookingLifecycle
from dabus.config import Settings
from dabus.database import build_engine, init_db
from dabus.exceptions import (
    AlreadyCancelledError, CapacityError, InvalidTransitionError, InventoryError,
    NotFoundError, ValidationError
)
from dabus.models import Booking, Trip
from dabus.projections import derive_trip_status
from dabus.trips.schemas import TripCreate, TripStatus, TripUpdate
from dabus.trips.service import TripService

WAVE_SETTINGS = Settings(
    WAVE_LINK_2500="https://pay.wave.com/m/dabus-2500",
    WAVE_LINK_3000="https://pay.wave.com/m/dabus-3000",
)


@pytest.fixture
def lifecycle(db):
    return BookingLifecycle(db, settings=WAVE_SETTINGS)


def _book(lifecycle, trip, name="Awa Diop"):
    return lifecycle.create_booking(trip.id, name, "771234567")


def _seats(db, trip_id):
    return db.execute(select(Trip.available_seats).where(Trip.id == trip_id)).scalar_one()


def _consumed(db, trip_id):
    return db.execute(
        select(func.count(Booking.id)).where(Booking.trip_id == trip_id, Booking.seat_consumed.is_(True))
    ).scalar_one()


def test_booking_starts_pending_with_payment_link(db, lifecycle, make_trip):
    trip = make_trip(price=2500)
    booking = _book(lifecycle, trip)

    assert booking.status == "pending"
    assert booking.payment_status == "pending"
    assert booking.payment_link == "https://pay.wave.com/m/dabus-2500"
    assert _seats(db, trip.id) == trip.capacity


def test_other_prices_use_the_3000_link(lifecycle, make_trip):
    booking = _book(lifecycle, make_trip(price=3000))
    assert booking.payment_link == "https://pay.wave.com/m/dabus-3000"


def test_confirm_then_cancel_round_trip(db, lifecycle, make_trip):
    trip = make_trip(capacity=50)
    booking = _book(lifecycle, trip)

    confirmed = lifecycle.confirm_booking(booking.id)
    assert confirmed.status == "confirmed"
    assert confirmed.payment_status == "paid"
    assert _seats(db, trip.id) == 49

    cancelled = lifecycle.cancel_booking(booking.id)
    assert cancelled.status == "cancelled"
    assert _seats(db, trip.id) == 50


def test_cancelling_pending_booking_leaves_seats_alone(db, lifecycle, make_trip):
    trip = make_trip(capacity=5)
    booking = _book(lifecycle, trip)

    lifecycle.cancel_booking(booking.id)

    assert _seats(db, trip.id) == 5


def test_double_cancel_fails_and_releases_once(db, lifecycle, make_trip):
    trip = make_trip(capacity=5)
    booking = _book(lifecycle, trip)
    lifecycle.confirm_booking(booking.id)
    lifecycle.cancel_booking(booking.id)

    with pytest.raises(AlreadyCancelledError):
        lifecycle.cancel_booking(booking.id)

    assert _seats(db, trip.id) == 5


def test_dakar_touba_scenario(db, lifecycle, make_trip):
    trip = make_trip(capacity=2, price=2500, origin="Dakar", destination="Touba")
    first = _book(lifecycle, trip, "Awa Diop")
    second = _book(lifecycle, trip, "Moussa Ndiaye")

    lifecycle.confirm_booking(first.id)
    lifecycle.confirm_booking(second.id)

    trip = db.get(Trip, trip.id)
    db.refresh(trip)
    assert trip.available_seats == 0
    assert derive_trip_status(trip) == TripStatus.FULL

    lifecycle.cancel_booking(first.id)
    db.refresh(trip)
    assert trip.available_seats == 1
    assert derive_trip_status(trip) == TripStatus.SCHEDULED


def test_trip_with_zero_capacity_is_rejected(db):
    with pytest.raises(ValidationError):
        TripService(db).create_trip(TripCreate(
            origin="Dakar",
            destination="Touba",
            departure_date=date.today(),
            departure_time=time(7, 0),
            capacity=0,
            price=2500
        ))


def test_booking_a_full_trip_fails(lifecycle, make_trip):
    trip = make_trip(capacity=1)
    lifecycle.confirm_booking(_book(lifecycle, trip).id)

    with pytest.raises(CapacityError):
        _book(lifecycle, trip, "Fatou Sall")


def test_booking_requires_name_and_phone(lifecycle, make_trip):
    trip = make_trip()
    with pytest.raises(ValidationError):
        lifecycle.create_booking(trip.id, "  ", "771234567")


def test_booking_unknown_trip(lifecycle):
    with pytest.raises(NotFoundError):
        lifecycle.create_booking("missing", "Awa Diop", "771234567")


def test_booking_a_cancelled_trip_fails(db, lifecycle, make_trip):
    trip = make_trip()
    TripService(db).update_trip(trip.id, TripUpdate(status=TripStatus.CANCELLED))

    with pytest.raises(ValidationError):
        _book(lifecycle, trip)


def test_confirming_the_last_seat_twice_fails_for_the_loser(db, lifecycle, make_trip):
    trip = make_trip(capacity=1)
    first = _book(lifecycle, trip)
    second = _book(lifecycle, trip, "Fatou Sall")

    lifecycle.confirm_booking(first.id)
    with pytest.raises(InventoryError, match="no seats available"):
        lifecycle.confirm_booking(second.id)

    # the failed confirmation leaves no partial state behind
    assert lifecycle.get_booking(second.id).status == "pending"
    assert _seats(db, trip.id) == 0


def test_invalid_transitions(lifecycle, make_trip):
    trip = make_trip()
    booking = _book(lifecycle, trip)

    with pytest.raises(InvalidTransitionError):
        lifecycle.complete_booking(booking.id)

    lifecycle.confirm_booking(booking.id)
    with pytest.raises(InvalidTransitionError):
        lifecycle.confirm_booking(booking.id)

    lifecycle.complete_booking(booking.id)
    with pytest.raises(InvalidTransitionError):
        lifecycle.cancel_booking(booking.id)


def test_completed_booking_keeps_its_seat(db, lifecycle, make_trip):
    trip = make_trip(capacity=3)
    booking = _book(lifecycle, trip)
    lifecycle.confirm_booking(booking.id)
    lifecycle.complete_booking(booking.id)

    assert _seats(db, trip.id) == 2
    assert _consumed(db, trip.id) == 1


def test_set_booking_status_rejects_other_values(lifecycle, make_trip):
    booking = _book(lifecycle, make_trip())

    for status in ("pending", "refunded", "nonsense"):
        with pytest.raises(ValidationError, match="Invalid status"):
            lifecycle.set_booking_status(booking.id, status)


def test_set_booking_status_dispatches(db, lifecycle, make_trip):
    trip = make_trip(capacity=4)
    booking = _book(lifecycle, trip)

    assert lifecycle.set_booking_status(booking.id, "confirmed").status == "confirmed"
    assert _seats(db, trip.id) == 3
    assert lifecycle.set_booking_status(booking.id, "completed").status == "completed"


def test_completing_a_trip_completes_confirmed_bookings(db, lifecycle, make_trip):
    trip = make_trip(capacity=4)
    confirmed = _book(lifecycle, trip)
    pending = _book(lifecycle, trip, "Fatou Sall")
    lifecycle.confirm_booking(confirmed.id)

    TripService(db).update_trip(trip.id, TripUpdate(status=TripStatus.COMPLETED))

    assert lifecycle.get_booking(confirmed.id).status == "completed"
    assert lifecycle.get_booking(pending.id).status == "pending"


def test_pending_holds_seat_policy(db, make_trip):
    lifecycle = BookingLifecycle(db, settings=Settings(PENDING_HOLDS_SEAT=True))
    trip = make_trip(capacity=2)

    booking = _book(lifecycle, trip)
    assert booking.seat_consumed is True
    assert _seats(db, trip.id) == 1

    # confirmation does not take a second seat
    lifecycle.confirm_booking(booking.id)
    assert _seats(db, trip.id) == 1

    other = _book(lifecycle, trip, "Fatou Sall")
    assert _seats(db, trip.id) == 0
    lifecycle.cancel_booking(other.id)
    assert _seats(db, trip.id) == 1


def test_seat_lost_while_booking_is_a_capacity_error(db, make_trip):
    lifecycle = BookingLifecycle(db, settings=Settings(PENDING_HOLDS_SEAT=True))
    trip = make_trip(capacity=1)
    assert trip.available_seats == 1

    # the last seat goes after the trip was read
    db.execute(
        update(Trip)
        .where(Trip.id == trip.id)
        .values(available_seats=0)
        .execution_options(synchronize_session=False)
    )

    with pytest.raises(CapacityError, match="No available seats") as excinfo:
        _book(lifecycle, trip)

    assert excinfo.value.__cause__ is None
    assert excinfo.value.__suppress_context__ is True
    assert db.execute(select(func.count(Booking.id))).scalar_one() == 0


def test_seat_count_matches_consuming_bookings(db, lifecycle, make_trip):
    trip = make_trip(capacity=6)
    bookings = [_book(lifecycle, trip, f"Passager {i}") for i in range(5)]
    for booking in bookings[:4]:
        lifecycle.confirm_booking(booking.id)
    lifecycle.cancel_booking(bookings[0].id)
    lifecycle.cancel_booking(bookings[4].id)
    lifecycle.complete_booking(bookings[1].id)

    assert _seats(db, trip.id) == trip.capacity - _consumed(db, trip.id)
    assert _seats(db, trip.id) == 3


def test_concurrent_confirmations_for_last_seat(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'race.db'}", timeout=30)
    init_db(bind=engine)
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    setup = Session()
    trip = TripService(setup).create_trip(TripCreate(
        origin="Dakar",
        destination="Touba",
        departure_date=date.today() + timedelta(days=1),
        departure_time=time(7, 0),
        capacity=1,
        price=2500
    ))
    trip_id = trip.id
    booking_ids = [
        BookingLifecycle(setup).create_booking(trip_id, f"Passager {i}", "771234567").id
        for i in range(8)
    ]
    setup.close()

    def confirm(booking_id):
        session = Session()
        try:
            BookingLifecycle(session).confirm_booking(booking_id)
            return "ok"
        except InventoryError:
            return "conflict"
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(confirm, booking_ids))

    assert outcomes.count("ok") == 1
    assert outcomes.count("conflict") == 7

    check = Session()
    try:
        assert check.execute(select(Trip.available_seats).where(Trip.id == trip_id)).scalar_one() == 0
        confirmed = check.execute(
            select(func.count(Booking.id)).where(Booking.status == "confirmed")
        ).scalar_one()
        assert confirmed == 1
    finally:
        check.close()
        engine.dispose()
