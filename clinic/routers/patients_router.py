from fastapi import APIRouter, Depends, HTTPException
import logging

from ..schemas.patients.patient import PatientSummary
from ..infrastructure.persistence.sqlalchemy.repositories.patient_repository_sql import SqlPatientRepository
from .deps import get_patient_repository, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/patients", tags=["Patients"])


@router.get("/{file_no}", response_model=PatientSummary)
def get_patient_by_file_no(
    file_no: str,
    admin: dict = Depends(require_admin),
    patients: SqlPatientRepository = Depends(get_patient_repository),
):
    p = patients.get_by_file_no(file_no.strip())
    if not p:
        raise HTTPException(status_code=404, detail="Patient not found")
    return PatientSummary(id=p.id, name=p.name, phone=p.phone, file_no=p.file_no)
