from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response
import logging

from ..application.services.availability_service import AvailabilityService
from ..application.services.doctor_service import DoctorService
from ..core.config import settings
from ..exceptions import SchedulingError
from ..schemas.appointments.appointment import AvailabilityResponse, SlotResponse
from ..schemas.common.common import ErrorResponse
from ..schemas.doctors.doctor import DoctorCreated, DoctorIn, DoctorPage, DoctorResponse
from .deps import get_availability_service, get_doctor_service, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/doctors", tags=["Doctors"])

DOCTOR_ERRORS = {400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}


def _to_response(d) -> DoctorResponse:
    return DoctorResponse(id=d.id, name=d.name, specialization=d.specialization)


@router.get("", response_model=List[DoctorResponse])
def get_doctors(doctor_service: DoctorService = Depends(get_doctor_service)):
    try:
        return [_to_response(d) for d in doctor_service.list_all()]
    except Exception:
        logger.exception("Error retrieving doctors")
        raise HTTPException(status_code=500, detail="Failed to retrieve doctors")


@router.get("/admin", response_model=DoctorPage)
def search_doctors(
    page: int = Query(1),
    page_size: Optional[int] = Query(None, alias="pageSize"),
    search: Optional[str] = Query(None),
    admin: dict = Depends(require_admin),
    doctor_service: DoctorService = Depends(get_doctor_service),
):
    try:
        result = doctor_service.search(page=page, page_size=page_size, term=search)
        return DoctorPage(
            items=[_to_response(d) for d in result.items],
            total_count=result.total_count,
            page=result.page,
            page_size=result.page_size,
        )
    except Exception:
        logger.exception("Error searching doctors")
        raise HTTPException(status_code=500, detail="Failed to retrieve doctors")


@router.get("/{doctor_id}", response_model=DoctorResponse)
def get_doctor(doctor_id: int, doctor_service: DoctorService = Depends(get_doctor_service)):
    try:
        return _to_response(doctor_service.get(doctor_id))
    except SchedulingError:
        raise
    except Exception:
        logger.exception(f"Error retrieving doctor {doctor_id}")
        raise HTTPException(status_code=500, detail="Failed to retrieve doctor")


@router.post("", response_model=DoctorCreated, status_code=201, responses=DOCTOR_ERRORS)
def create_doctor(
    doctor_data: DoctorIn,
    admin: dict = Depends(require_admin),
    doctor_service: DoctorService = Depends(get_doctor_service),
):
    try:
        d = doctor_service.create(doctor_data.name, doctor_data.specialization)
        logger.info(f"Doctor {d.id} created by {admin.get('sub')}")
        return DoctorCreated(id=d.id)
    except SchedulingError:
        raise
    except Exception:
        logger.exception("Error creating doctor")
        raise HTTPException(status_code=500, detail="Failed to create doctor")


@router.put("/{doctor_id}", status_code=204, responses=DOCTOR_ERRORS)
def update_doctor(
    doctor_id: int,
    doctor_data: DoctorIn,
    admin: dict = Depends(require_admin),
    doctor_service: DoctorService = Depends(get_doctor_service),
):
    try:
        doctor_service.update(doctor_id, doctor_data.name, doctor_data.specialization)
        return Response(status_code=204)
    except SchedulingError:
        raise
    except Exception:
        logger.exception(f"Error updating doctor {doctor_id}")
        raise HTTPException(status_code=500, detail="Failed to update doctor")


@router.delete("/{doctor_id}", status_code=204, responses=DOCTOR_ERRORS)
def delete_doctor(
    doctor_id: int,
    admin: dict = Depends(require_admin),
    doctor_service: DoctorService = Depends(get_doctor_service),
):
    try:
        doctor_service.delete(doctor_id)
        return Response(status_code=204)
    except SchedulingError:
        raise
    except Exception:
        logger.exception(f"Error deleting doctor {doctor_id}")
        raise HTTPException(status_code=500, detail="Failed to delete doctor")


@router.get("/{doctor_id}/availabletimes", response_model=AvailabilityResponse, responses=DOCTOR_ERRORS)
def get_available_times(
    doctor_id: int,
    date: Optional[str] = Query(None),
    slot_minutes: int = Query(settings.DEFAULT_SLOT_MINUTES, alias="slotMinutes"),
    work_start: str = Query(settings.DEFAULT_WORK_START, alias="workStart"),
    work_end: str = Query(settings.DEFAULT_WORK_END, alias="workEnd"),
    availability: AvailabilityService = Depends(get_availability_service),
):
    try:
        result = availability.available_slots(doctor_id, date, slot_minutes, work_start, work_end)
    except SchedulingError:
        raise
    except Exception:
        logger.exception(f"Error computing availability for doctor {doctor_id}")
        raise HTTPException(status_code=500, detail="Failed to compute available times")
    return AvailabilityResponse(
        doctor_id=result.doctor_id,
        date=result.date.strftime("%Y-%m-%d"),
        slot_minutes=result.slot_minutes,
        work_start=result.work_start,
        work_end=result.work_end,
        available_slots=[SlotResponse(iso=s.iso, time=s.time) for s in result.slots],
    )
