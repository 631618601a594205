from datetime import date, time

import pytest
from sqlalchemy import select, update
from sqlalchemy.orm import sessionmaker

from dabus.database import build_engine, init_db, storage_guard
from dabus.exceptions import InventoryError, NotFoundError, ValidationError
from dabus.models import Trip
from dabus.trips.inventory import TripInventory


def _adjust(db, trip_id, delta):
    with storage_guard(db):
        return TripInventory(db).adjust_seats(trip_id, delta)


def test_new_trip_has_every_seat_available(make_trip):
    trip = make_trip(capacity=50)

    assert trip.available_seats == 50
    assert trip.status == "scheduled"


def test_adjust_seats_round_trip(db, make_trip):
    trip = make_trip(capacity=50)

    assert _adjust(db, trip.id, -1).available_seats == 49
    assert _adjust(db, trip.id, +1).available_seats == 50


def test_adjust_below_zero_is_rejected_without_clamping(db, make_trip):
    trip = make_trip(capacity=1)
    _adjust(db, trip.id, -1)

    with pytest.raises(InventoryError, match="no seats available"):
        _adjust(db, trip.id, -1)

    db.refresh(trip)
    assert trip.available_seats == 0


def test_adjust_above_capacity_is_rejected(db, make_trip):
    trip = make_trip(capacity=3)

    with pytest.raises(InventoryError):
        _adjust(db, trip.id, +1)

    db.refresh(trip)
    assert trip.available_seats == 3


def test_adjust_unknown_trip(db):
    with pytest.raises(NotFoundError):
        _adjust(db, "missing", -1)


def test_zero_delta_is_invalid(db, make_trip):
    trip = make_trip()
    with pytest.raises(ValidationError):
        _adjust(db, trip.id, 0)


def test_resize_capacity_shifts_available_seats(db, make_trip):
    trip = make_trip(capacity=10)
    _adjust(db, trip.id, -4)

    with storage_guard(db):
        resized = TripInventory(db).resize_capacity(trip.id, 20)

    assert resized.capacity == 20
    assert resized.available_seats == 16


def test_resize_capacity_below_taken_seats_fails(db, make_trip):
    trip = make_trip(capacity=10)
    _adjust(db, trip.id, -6)

    with pytest.raises(InventoryError):
        with storage_guard(db):
            TripInventory(db).resize_capacity(trip.id, 5)

    db.refresh(trip)
    assert trip.capacity == 10
    assert trip.available_seats == 4


def test_adjust_checks_the_stored_count_not_the_loaded_one(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'stale.db'}", timeout=5)
    init_db(bind=engine)
    stale = sessionmaker(bind=engine, expire_on_commit=False)()
    other = sessionmaker(bind=engine)()

    try:
        trip = Trip(
            origin="Dakar",
            destination="Touba",
            departure_date=date.today(),
            departure_time=time(7, 0),
            capacity=1,
            available_seats=1,
            price=2500
        )
        stale.add(trip)
        stale.commit()
        trip_id = trip.id
        assert trip.available_seats == 1

        # another session takes the last seat
        other.execute(
            update(Trip)
            .where(Trip.id == trip.id)
            .values(available_seats=0)
            .execution_options(synchronize_session=False)
        )
        other.commit()
        assert stale.get(Trip, trip.id).available_seats == 1

        with pytest.raises(InventoryError, match="no seats available"):
            _adjust(stale, trip.id, -1)

        assert other.execute(select(Trip.available_seats).where(Trip.id == trip_id)).scalar_one() == 0
    finally:
        stale.close()
        other.close()
        engine.dispose()
