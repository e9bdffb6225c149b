from typing import List
from fastapi import APIRouter, Depends, HTTPException, Response
import logging

from ..application.services.appointments_service import AppointmentsService
from ..exceptions import SchedulingError
from ..schemas.appointments.appointment import AppointmentListItemResponse
from .appointments_router import to_list_item_response
from .deps import get_appointments_service, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/appointments", tags=["Admin"])


@router.get("", response_model=List[AppointmentListItemResponse])
def get_all_appointments(
    admin: dict = Depends(require_admin),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        return [to_list_item_response(i) for i in appt_service.list_all()]
    except Exception:
        logger.exception("Error retrieving appointments")
        raise HTTPException(status_code=500, detail="Failed to retrieve appointments")


@router.delete("/{appointment_id}", status_code=204)
def delete_appointment(
    appointment_id: int,
    admin: dict = Depends(require_admin),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        appt_service.cancel(appointment_id)
        logger.info(f"Appointment {appointment_id} cancelled by {admin.get('sub')}")
        return Response(status_code=204)
    except SchedulingError:
        raise
    except Exception:
        logger.exception(f"Error cancelling appointment {appointment_id}")
        raise HTTPException(status_code=500, detail="Failed to cancel appointment")
