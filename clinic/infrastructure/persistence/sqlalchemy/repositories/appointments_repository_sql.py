import logging
from typing import List, Optional, Tuple
from datetime import datetime, timedelta

from sqlalchemy import DateTime, Integer, delete, func, insert, literal, select as sa_select, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .....db.models import Appointment, Doctor, Patient
from .....application.ports.appointments_repo import (
    AppointmentsRepository,
    AppointmentDto,
    AppointmentListItem,
    AppointmentQuery,
    SortDirection,
    SortKey,
)
from .....utils import utcnow

logger = logging.getLogger(__name__)

_SORT_COLUMNS = {
    SortKey.START_TIME: Appointment.start_time,
    SortKey.DOCTOR: Doctor.name,
    SortKey.PATIENT: Patient.name,
}


class SqlAppointmentsRepository(AppointmentsRepository):
    def __init__(self, session: Session):
        self.session = session

    def _appt_to_dto(self, a: Appointment) -> AppointmentDto:
        return AppointmentDto(
            id=a.id,
            doctor_id=a.doctor_id,
            patient_id=a.patient_id,
            start_time=a.start_time,
            duration_minutes=a.duration_minutes,
            end_time=a.end_time,
            created_at=a.created_at,
        )

    def _row_to_item(self, row) -> AppointmentListItem:
        return AppointmentListItem(
            id=row.id,
            start_time=row.start_time,
            duration_minutes=row.duration_minutes,
            doctor=row.doctor,
            patient=row.patient,
            file_no=row.file_no,
        )

    def get_by_id(self, appointment_id: int) -> Optional[AppointmentDto]:
        a = self.session.exec(select(Appointment).where(Appointment.id == appointment_id)).first()
        return self._appt_to_dto(a) if a else None

    def find_overlapping(self, doctor_id: int, start: datetime, end: datetime, exclude_id: Optional[int] = None) -> List[AppointmentDto]:
        query = (
            select(Appointment)
            .where(Appointment.doctor_id == doctor_id)
            .where(Appointment.start_time < end)
            .where(Appointment.end_time > start)
        )
        if exclude_id is not None:
            query = query.where(Appointment.id != exclude_id)
        rows = self.session.exec(query.order_by(Appointment.start_time)).all()
        return [self._appt_to_dto(r) for r in rows]

    def _lock_doctor(self, doctor_id: int) -> None:
        # Serializes writers per doctor on databases with row locks.
        # SQLite takes its write lock when the guarded statement starts.
        if self.session.get_bind().dialect.name == "sqlite":
            return
        self.session.exec(select(Doctor.id).where(Doctor.id == doctor_id).with_for_update()).first()

    @staticmethod
    def _overlap_exists(doctor_id: int, start: datetime, end: datetime, exclude_id: Optional[int] = None):
        other = Appointment.__table__.alias("other")
        query = (
            sa_select(other.c.id)
            .where(other.c.doctor_id == doctor_id)
            .where(other.c.start_time < end)
            .where(other.c.end_time > start)
        )
        if exclude_id is not None:
            query = query.where(other.c.id != exclude_id)
        return query.exists()

    def insert_if_free(self, doctor_id: int, patient_id: int, start: datetime, duration_minutes: int) -> Optional[AppointmentDto]:
        table = Appointment.__table__
        end = start + timedelta(minutes=duration_minutes)
        guarded_row = sa_select(
            literal(doctor_id, Integer),
            literal(patient_id, Integer),
            literal(start, DateTime),
            literal(duration_minutes, Integer),
            literal(end, DateTime),
            literal(utcnow(), DateTime),
        ).where(~self._overlap_exists(doctor_id, start, end))
        stmt = insert(table).from_select(
            ["doctor_id", "patient_id", "start_time", "duration_minutes", "end_time", "created_at"],
            guarded_row,
        )
        try:
            self._lock_doctor(doctor_id)
            result = self.session.connection().execute(stmt)
            if result.rowcount != 1:
                self.session.rollback()
                return None
            created = self.session.exec(
                select(Appointment)
                .where(Appointment.doctor_id == doctor_id)
                .where(Appointment.start_time == start)
            ).one()
            self.session.commit()
            return self._appt_to_dto(created)
        except IntegrityError as e:
            # unique (doctor_id, start_time) or the overlap exclusion constraint
            self.session.rollback()
            logger.info(f"Appointment insert rejected by constraint: {e.orig}")
            return None
        except Exception:
            self.session.rollback()
            raise

    def reschedule_if_free(self, appointment_id: int, doctor_id: int, start: datetime, duration_minutes: int) -> bool:
        table = Appointment.__table__
        end = start + timedelta(minutes=duration_minutes)
        stmt = (
            update(table)
            .where(table.c.id == appointment_id)
            .where(~self._overlap_exists(doctor_id, start, end, exclude_id=appointment_id))
            .values(doctor_id=doctor_id, start_time=start, duration_minutes=duration_minutes, end_time=end)
        )
        try:
            self._lock_doctor(doctor_id)
            result = self.session.connection().execute(stmt)
            if result.rowcount != 1:
                self.session.rollback()
                return False
            self.session.commit()
            return True
        except IntegrityError as e:
            self.session.rollback()
            logger.info(f"Appointment update rejected by constraint: {e.orig}")
            return False
        except Exception:
            self.session.rollback()
            raise

    def delete(self, appointment_id: int) -> None:
        table = Appointment.__table__
        self.session.connection().execute(delete(table).where(table.c.id == appointment_id))
        self.session.commit()

    def _listing_query(self):
        return (
            select(
                Appointment.id,
                Appointment.start_time,
                Appointment.duration_minutes,
                Doctor.name.label("doctor"),
                Patient.name.label("patient"),
                Patient.file_no,
            )
            .join(Doctor, Doctor.id == Appointment.doctor_id)
            .join(Patient, Patient.id == Appointment.patient_id)
        )

    def list_page(self, query: AppointmentQuery) -> Tuple[List[AppointmentListItem], int]:
        stmt = self._listing_query()
        if query.doctor_id is not None:
            stmt = stmt.where(Appointment.doctor_id == query.doctor_id)
        if query.patient_name:
            stmt = stmt.where(Patient.name.ilike(f"%{query.patient_name}%"))
        if query.date_from is not None:
            stmt = stmt.where(Appointment.start_time >= datetime.combine(query.date_from, datetime.min.time()))
        if query.date_to is not None:
            day_after = datetime.combine(query.date_to, datetime.min.time()) + timedelta(days=1)
            stmt = stmt.where(Appointment.start_time < day_after)

        total = self.session.exec(select(func.count()).select_from(stmt.subquery())).one()

        column = _SORT_COLUMNS[query.sort_key]
        ordering = column.desc() if query.sort_direction == SortDirection.DESC else column.asc()
        rows = self.session.exec(
            stmt.order_by(ordering, Appointment.id).offset(query.offset).limit(query.page_size)
        ).all()
        return [self._row_to_item(r) for r in rows], int(total)

    def list_all(self) -> List[AppointmentListItem]:
        rows = self.session.exec(self._listing_query().order_by(Appointment.start_time, Appointment.id)).all()
        return [self._row_to_item(r) for r in rows]
