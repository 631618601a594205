#!/usr/bin/env python3
"""
Creates sample trips for local development.

Usage:
    python seed_data.py
"""

from datetime import date, time, timedelta

from dabus.database import SessionLocal, init_db
from dabus.models import Trip
from dabus.trips.schemas import TripCreate
from dabus.trips.service import TripService

# (origin, destination, departure time, capacity, price in XOF)
SAMPLE_TRIPS = [
    ("Dakar", "Touba", time(7, 0), 50, 2500),
    ("Dakar", "Touba", time(15, 30), 50, 2500),
    ("Dakar", "Thiès", time(8, 0), 30, 2500),
    ("Dakar", "Saint-Louis", time(6, 30), 45, 3000),
    ("Dakar", "Kaolack", time(9, 0), 40, 3000),
    ("Touba", "Dakar", time(17, 0), 50, 2500),
]

def create_seed_data(days: int = 7):
    init_db()
    db = SessionLocal()

    try:
        print("🚀 Creating sample trips for DaBus...")

        if db.query(Trip).count():
            print("✅ Trips already exist, skipping...")
            return

        service = TripService(db)
        start = date.today() + timedelta(days=1)
        created = 0
        for offset in range(days):
            for origin, destination, departure_time, capacity, price in SAMPLE_TRIPS:
                service.create_trip(TripCreate(
                    origin=origin,
                    destination=destination,
                    departure_date=start + timedelta(days=offset),
                    departure_time=departure_time,
                    capacity=capacity,
                    price=price
                ))
                created += 1

        print(f"✅ Successfully created {created} trips over {days} days")

    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_seed_data()
