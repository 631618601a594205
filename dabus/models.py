import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Date, Time, ForeignKey, Numeric, JSON, CheckConstraint, Index
from sqlalchemy.orm import relationship
from dabus.database import Base


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)

# ================================
# Identity & Users
# ================================
class Identity(Base):
    """Credentials held by the identity provider, keyed by the user id"""
    __tablename__ = "identities"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    user_metadata = Column(JSON, default=dict)
    created_at = Column(DateTime(timezone=True), default=utcnow)

class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)
    role = Column(String(20), nullable=False, default='student', index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    bookings = relationship("Booking", back_populates="user")

# ================================
# Trips
# ================================
class Trip(Base):
    __tablename__ = "trips"
    __table_args__ = (
        CheckConstraint("capacity >= 1", name="ck_trips_capacity_positive"),
        CheckConstraint(
            "available_seats >= 0 AND available_seats <= capacity",
            name="ck_trips_available_seats_range",
        ),
        CheckConstraint("price >= 0", name="ck_trips_price_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    origin = Column(String(255), nullable=False, index=True)
    destination = Column(String(255), nullable=False, index=True)
    departure_date = Column(Date, nullable=False, index=True)
    departure_time = Column(Time, nullable=False)
    capacity = Column(Integer, nullable=False)
    # Only TripInventory writes this column
    available_seats = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    # scheduled / completed / cancelled; "full" is derived, never stored
    status = Column(String(20), nullable=False, default='scheduled', index=True)
    created_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"))
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    bookings = relationship("Booking", back_populates="trip", passive_deletes=True)

# ================================
# Bookings
# ================================
class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_trip_status", "trip_id", "status"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    trip_id = Column(String(36), ForeignKey("trips.id", ondelete="SET NULL"), index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), index=True)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default='pending', index=True)
    payment_status = Column(String(20), nullable=False, default='pending', index=True)
    payment_link = Column(String(500))
    # True while this booking holds one unit of its trip's capacity
    seat_consumed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    trip = relationship("Trip", back_populates="bookings")
    user = relationship("User", back_populates="bookings")
