import io
import logging
import secrets
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from dabus.admin import export_service
from dabus.admin.schemas import DashboardStats
from dabus.auth.dependencies import require_admin
from dabus.auth.schemas import PromoteUserRequest, Role, User
from dabus.auth.service import UserService
from dabus.bookings.lifecycle import BookingLifecycle
from dabus.bookings.schemas import Booking, BookingStatus, BookingStatusUpdate
from dabus.config import settings
from dabus.database import get_db
from dabus.exceptions import AuthError
from dabus.projections import MAX_PAGE_SIZE, ProjectionService
from dabus.schemas import ApiResponse, PaginatedResponse, Pagination
from dabus.trips.schemas import Trip, TripStatus

logger = logging.getLogger(__name__)

# Promotion is authorised by a shared secret, not an admin session
promote_router = APIRouter()

router = APIRouter(dependencies=[Depends(require_admin)])


def _excel_response(filename: str, content: bytes) -> StreamingResponse:
    return StreamingResponse(
        io.BytesIO(content),
        media_type=export_service.EXCEL_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@promote_router.post("/promote-user", response_model=ApiResponse[User])
def promote_user(request: PromoteUserRequest, db: Session = Depends(get_db)):
    """Grant the admin role to a user, authorised by ADMIN_PROMOTE_SECRET"""
    expected = settings.ADMIN_PROMOTE_SECRET
    if not expected or not secrets.compare_digest(request.secret, expected):
        raise AuthError("Invalid secret")

    user = UserService.set_role(db, request.user_id, Role.ADMIN)
    logger.info("User %s promoted to admin", request.user_id)
    return ApiResponse(data=User.model_validate(user), message="User promoted to admin successfully")


@router.get("/stats", response_model=ApiResponse[DashboardStats])
def get_stats(db: Session = Depends(get_db)):
    """Dashboard counters and the latest bookings"""
    return ApiResponse(data=ProjectionService(db).dashboard_stats())


@router.get("/bookings", response_model=PaginatedResponse[List[Booking]])
def get_all_bookings(
    status: Optional[BookingStatus] = Query(None),
    date_from: Optional[date] = Query(None, description="Created on or after"),
    date_to: Optional[date] = Query(None, description="Created on or before"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db)
):
    """All bookings, newest first, one page at a time"""
    bookings, total = ProjectionService(db).list_all_bookings(
        status=status, date_from=date_from, date_to=date_to, page=page, limit=limit
    )
    return PaginatedResponse(
        data=bookings,
        pagination=Pagination(page=page, limit=limit, total=total)
    )


@router.post("/bookings/{booking_id}/status", response_model=ApiResponse[Booking])
def update_booking_status(
    booking_id: str,
    update: BookingStatusUpdate,
    db: Session = Depends(get_db)
):
    """Confirm, cancel or complete a booking"""
    BookingLifecycle(db).set_booking_status(booking_id, update.status)
    return ApiResponse(
        data=ProjectionService(db).get_booking(booking_id),
        message="Booking status updated successfully"
    )


@router.get("/trips", response_model=ApiResponse[List[Trip]])
def get_all_trips(
    status: Optional[TripStatus] = Query(None),
    db: Session = Depends(get_db)
):
    """Every trip whatever its status, by departure"""
    return ApiResponse(data=ProjectionService(db).list_admin_trips(status))


@router.get("/export/trips")
def export_trips(db: Session = Depends(get_db)):
    """Trips as an Excel workbook"""
    trips = ProjectionService(db).list_admin_trips()
    filename, content = export_service.export_trips(trips)
    return _excel_response(filename, content)


@router.get("/export/bookings")
def export_bookings(db: Session = Depends(get_db)):
    """Bookings as an Excel workbook"""
    _, bookings = ProjectionService(db).export_rows()
    filename, content = export_service.export_bookings(bookings)
    return _excel_response(filename, content)


@router.get("/export/report")
def export_report(db: Session = Depends(get_db)):
    """Trips and bookings in one workbook"""
    trips, bookings = ProjectionService(db).export_rows()
    filename, content = export_service.export_full_report(trips, bookings)
    return _excel_response(filename, content)
