import logging
from typing import Any, Dict
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session

from ..database import get_session
from ..application.ports.audit_logger import AuditLogger
from ..application.ports.clock import Clock
from ..application.services.appointments_service import AppointmentsService
from ..application.services.availability_service import AvailabilityService
from ..application.services.booking_service import BookingService
from ..application.services.conflict_guard import BookingConflictGuard
from ..application.services.doctor_service import DoctorService
from ..application.services.patient_resolver import PatientIdentityResolver
from ..infrastructure.audit.std_logger import StdAuditLogger
from ..infrastructure.clock.system_clock import SystemClock
from ..infrastructure.persistence.sqlalchemy.repositories.appointments_repository_sql import SqlAppointmentsRepository
from ..infrastructure.persistence.sqlalchemy.repositories.doctor_repository_sql import SqlDoctorRepository
from ..infrastructure.persistence.sqlalchemy.repositories.patient_repository_sql import SqlPatientRepository
from ..utils import decode_jwt_token

logger = logging.getLogger(__name__)

oauth2_scheme = HTTPBearer(auto_error=False)

_audit_logger = StdAuditLogger()


def get_clock() -> Clock:
    return SystemClock()


def get_audit_logger() -> AuditLogger:
    return _audit_logger


def require_admin(credentials: HTTPAuthorizationCredentials = Depends(oauth2_scheme)) -> Dict[str, Any]:
    """Admin capability check; returns the verified token claims."""
    if not credentials or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Authentication required")
    payload = decode_jwt_token(credentials.credentials)
    if not payload:
        logger.warning("JWT token decode failed - invalid or expired token")
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    if payload.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Admin role required")
    return payload


def get_patient_repository(session: Session = Depends(get_session)) -> SqlPatientRepository:
    return SqlPatientRepository(session)


def get_doctor_service(session: Session = Depends(get_session)) -> DoctorService:
    return DoctorService(repo=SqlDoctorRepository(session))


def get_availability_service(session: Session = Depends(get_session)) -> AvailabilityService:
    return AvailabilityService(
        doctors=SqlDoctorRepository(session),
        appointments=SqlAppointmentsRepository(session),
    )


def get_booking_service(
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
    audit: AuditLogger = Depends(get_audit_logger),
) -> BookingService:
    return BookingService(
        doctors=SqlDoctorRepository(session),
        resolver=PatientIdentityResolver(repo=SqlPatientRepository(session)),
        guard=BookingConflictGuard(repo=SqlAppointmentsRepository(session)),
        clock=clock,
        audit=audit,
    )


def get_appointments_service(
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
    audit: AuditLogger = Depends(get_audit_logger),
) -> AppointmentsService:
    appointments = SqlAppointmentsRepository(session)
    return AppointmentsService(
        repo=appointments,
        doctors=SqlDoctorRepository(session),
        patients=SqlPatientRepository(session),
        guard=BookingConflictGuard(repo=appointments),
        clock=clock,
        audit=audit,
    )
