from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from dabus.auth.dependencies import require_admin
from dabus.database import get_db
from dabus.models import User
from dabus.projections import trip_to_dict
from dabus.schemas import ApiResponse
from dabus.trips.schemas import Trip, TripCreate, TripFilters, TripStatus, TripUpdate
from dabus.trips.service import TripService

router = APIRouter()

@router.get("", response_model=ApiResponse[List[Trip]])
def get_trips(
    origin: Optional[str] = Query(None, description="Origin contains (case-insensitive)"),
    destination: Optional[str] = Query(None, description="Destination contains (case-insensitive)"),
    departure_date: Optional[date] = Query(None, alias="date", description="Exact departure date"),
    status: Optional[TripStatus] = Query(None, description="Trip status; defaults to scheduled and full"),
    db: Session = Depends(get_db)
):
    """Search trips open to the public"""
    filters = TripFilters(origin=origin, destination=destination, departure_date=departure_date, status=status)
    trips = TripService(db).list_trips(filters)
    return ApiResponse(data=[trip_to_dict(trip) for trip in trips])

@router.get("/{trip_id}", response_model=ApiResponse[Trip])
def get_trip(trip_id: str, db: Session = Depends(get_db)):
    """Get trip details by ID"""
    return ApiResponse(data=trip_to_dict(TripService(db).get_trip(trip_id)))

@router.post("", response_model=ApiResponse[Trip], status_code=status.HTTP_201_CREATED)
def create_trip(
    trip_data: TripCreate,
    admin_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Schedule a new trip"""
    trip = TripService(db).create_trip(trip_data, created_by=admin_user.id)
    return ApiResponse(data=trip_to_dict(trip))

@router.put("/{trip_id}", response_model=ApiResponse[Trip])
def update_trip(
    trip_id: str,
    update_data: TripUpdate,
    admin_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Update trip fields; marking it completed completes its confirmed bookings"""
    trip = TripService(db).update_trip(trip_id, update_data)
    return ApiResponse(data=trip_to_dict(trip))

@router.delete("/{trip_id}", response_model=ApiResponse[None])
def delete_trip(
    trip_id: str,
    admin_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a trip without active bookings"""
    TripService(db).delete_trip(trip_id)
    return ApiResponse(message="Trip deleted successfully")
