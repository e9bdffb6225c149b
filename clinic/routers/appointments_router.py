import re
from typing import Optional
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.responses import JSONResponse
import logging

from ..application.services.appointments_service import AppointmentsService
from ..application.services.booking_service import BookingService
from ..exceptions import ErrorKind, SchedulingError, create_error_response
from ..schemas.common.common import ErrorResponse
from ..schemas.appointments.appointment import (
    AppointmentListItemResponse,
    AppointmentPage,
    AppointmentResponse,
    AppointmentUpdateRequest,
    BookingRequest,
    BookingResponse,
)
from ..utils import is_blank
from .deps import get_appointments_service, get_booking_service, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/appointments", tags=["Appointments"])

_DIGITS_ONLY = re.compile(r"[0-9]+")

BOOKING_ERRORS = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
ADMIN_ERRORS = {
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


def to_appointment_response(a) -> AppointmentResponse:
    return AppointmentResponse(
        id=a.id,
        doctor_id=a.doctor_id,
        patient_id=a.patient_id,
        start_time=a.start_time,
        duration_in_minutes=a.duration_minutes,
        end_time=a.end_time,
    )


def to_list_item_response(item) -> AppointmentListItemResponse:
    return AppointmentListItemResponse(
        id=item.id,
        start_time=item.start_time,
        duration_in_minutes=item.duration_minutes,
        doctor=item.doctor,
        patient=item.patient,
        file_no=item.file_no,
    )


@router.get("", response_model=AppointmentPage)
def list_appointments(
    page: int = Query(1),
    page_size: Optional[int] = Query(None, alias="pageSize"),
    doctor_id: Optional[int] = Query(None, alias="doctorId"),
    patient_name: Optional[str] = Query(None, alias="patientName"),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_dir: Optional[str] = Query(None, alias="sortDir"),
    admin: dict = Depends(require_admin),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        result = appt_service.list(
            page=page,
            page_size=page_size,
            doctor_id=doctor_id,
            patient_name=patient_name,
            date_from=date_from,
            date_to=date_to,
            sort_by=sort_by,
            sort_dir=sort_dir,
        )
        return AppointmentPage(
            items=[to_list_item_response(i) for i in result.items],
            total_count=result.total_count,
            page=result.page,
            page_size=result.page_size,
        )
    except Exception:
        logger.exception("Error retrieving appointments")
        raise HTTPException(status_code=500, detail="Failed to retrieve appointments")


@router.post("", response_model=BookingResponse, status_code=201, responses=BOOKING_ERRORS)
def book_appointment(
    request: BookingRequest,
    booking: BookingService = Depends(get_booking_service),
):
    phone = request.patient.phone if request.patient is not None else None
    if is_blank(phone):
        raise HTTPException(status_code=400, detail="Phone number is required.")
    if not _DIGITS_ONLY.fullmatch(phone):
        raise HTTPException(status_code=400, detail="Phone number must contain digits only (0-9).")

    result = booking.book(request)
    if result.success:
        return BookingResponse(appointment_id=result.appointment_id)

    status_code = 500 if result.error_kind == ErrorKind.FATAL else 400
    return JSONResponse(status_code=status_code, content=create_error_response(result.message, status_code))


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    admin: dict = Depends(require_admin),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        return to_appointment_response(appt_service.get(appointment_id))
    except SchedulingError:
        raise
    except Exception:
        logger.exception(f"Error retrieving appointment {appointment_id}")
        raise HTTPException(status_code=500, detail="Failed to retrieve appointment")


@router.put("/{appointment_id}", response_model=AppointmentResponse, responses=ADMIN_ERRORS)
def update_appointment(
    appointment_id: int,
    body: AppointmentUpdateRequest,
    admin: dict = Depends(require_admin),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        appt = appt_service.update(appointment_id, body)
        logger.info(f"Appointment {appointment_id} updated by {admin.get('sub')}")
        return to_appointment_response(appt)
    except SchedulingError:
        raise
    except Exception:
        logger.exception(f"Error updating appointment {appointment_id}")
        raise HTTPException(status_code=500, detail="Failed to update appointment")


@router.delete("/{appointment_id}", status_code=204, responses=ADMIN_ERRORS)
def delete_appointment(
    appointment_id: int,
    admin: dict = Depends(require_admin),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        appt_service.cancel(appointment_id)
        return Response(status_code=204)
    except SchedulingError:
        raise
    except Exception:
        logger.exception(f"Error cancelling appointment {appointment_id}")
        raise HTTPException(status_code=500, detail="Failed to cancel appointment")
