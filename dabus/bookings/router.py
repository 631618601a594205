from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional

from dabus.auth.dependencies import get_current_user, get_optional_user, is_admin
from dabus.bookings.lifecycle import BookingLifecycle
from dabus.bookings.schemas import Booking, BookingCreate, BookingCreated, PaymentCheckout
from dabus.database import get_db
from dabus.exceptions import ForbiddenError, NotFoundError
from dabus.models import User
from dabus.projections import ProjectionService
from dabus.schemas import ApiResponse

router = APIRouter()

def _ensure_can_access(booking: Dict[str, Any], user: User) -> None:
    """Only the requester who made the booking, or an admin, may act on it"""
    if is_admin(user):
        return
    if booking["user_id"] is None or booking["user_id"] != user.id:
        raise ForbiddenError("You do not have access to this booking")

def _load_booking(db: Session, booking_id: str) -> Dict[str, Any]:
    booking = ProjectionService(db).get_booking(booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")
    return booking

@router.get("", response_model=ApiResponse[List[Booking]])
def get_my_bookings(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Bookings made by the current user, newest first"""
    bookings = ProjectionService(db).list_bookings_for_requester(current_user.id)
    return ApiResponse(data=bookings)

@router.get("/{booking_id}", response_model=ApiResponse[Booking])
def get_booking(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get booking details with its trip"""
    booking = _load_booking(db, booking_id)
    _ensure_can_access(booking, current_user)
    return ApiResponse(data=booking)

@router.post("", response_model=ApiResponse[BookingCreated], status_code=status.HTTP_201_CREATED)
def create_booking(
    request: BookingCreate,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """Create a pending booking and return its payment checkout link"""
    lifecycle = BookingLifecycle(db)
    booking = lifecycle.create_booking(
        trip_id=request.trip_id,
        full_name=request.full_name,
        phone=request.phone,
        user_id=current_user.id if current_user else None
    )

    projected = _load_booking(db, booking.id)
    return ApiResponse(
        data=BookingCreated(
            booking=projected,
            payment=PaymentCheckout(checkout_url=booking.payment_link)
        )
    )

@router.post("/{booking_id}/cancel", response_model=ApiResponse[Booking])
def cancel_booking(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Cancel a booking; a seat is released only if it had been taken"""
    _ensure_can_access(_load_booking(db, booking_id), current_user)

    BookingLifecycle(db).cancel_booking(booking_id)

    return ApiResponse(data=_load_booking(db, booking_id), message="Booking cancelled successfully")
