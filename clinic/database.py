import logging
from typing import Optional
from sqlalchemy import event, text
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session, select

from .core.config import settings
from .db.models import Doctor
from .utils import name_key

logger = logging.getLogger(__name__)

DEFAULT_DOCTORS = [
    ("Dr. Rajesh Kumar", "General Physician"),
    ("Dr. Meera Rao", "ENT"),
    ("Dr. Anil Verma", "Pediatrics"),
]


def build_engine(db_url: str, echo: bool = False) -> Engine:
    engine_kwargs = {}
    if db_url.startswith("sqlite"):
        # Writers wait on the database lock instead of failing fast
        engine_kwargs.update({
            "connect_args": {"check_same_thread": False, "timeout": settings.SQLITE_BUSY_TIMEOUT}
        })
    else:
        # Better resiliency for managed Postgres
        engine_kwargs.update({
            "pool_pre_ping": True,
            "pool_recycle": 300,
            "pool_size": 5,
            "max_overflow": 10,
        })
    new_engine = create_engine(db_url, echo=echo, **engine_kwargs)
    if db_url.startswith("sqlite"):
        event.listen(new_engine, "connect", _enable_sqlite_foreign_keys)
    return new_engine


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)


def create_db_and_tables(target: Optional[Engine] = None, seed: Optional[bool] = None):
    target = target if target is not None else engine
    if seed is None:
        seed = settings.SEED_DOCTORS
    SQLModel.metadata.create_all(target)
    if target.dialect.name == "postgresql":
        ensure_overlap_exclusion(target)
    if seed:
        seed_doctors(target)


def ensure_overlap_exclusion(target: Engine):
    """Install the interval exclusion constraint on appointments (PostgreSQL only)."""
    with target.begin() as conn:
        exists = conn.execute(
            text("SELECT 1 FROM pg_constraint WHERE conname = 'ex_appointments_doctor_overlap'")
        ).first()
        if exists:
            return
        conn.execute(text("CREATE EXTENSION IF NOT EXISTS btree_gist"))
        conn.execute(text(
            "ALTER TABLE appointments ADD CONSTRAINT ex_appointments_doctor_overlap "
            "EXCLUDE USING gist (doctor_id WITH =, tsrange(start_time, end_time) WITH &&)"
        ))
        logger.info("Installed appointment overlap exclusion constraint")


def seed_doctors(target: Engine):
    with Session(target) as session:
        if session.exec(select(Doctor)).first():
            return
        for name, specialization in DEFAULT_DOCTORS:
            session.add(Doctor(name=name, specialization=specialization, name_key=name_key(name)))
        session.commit()
        logger.info(f"Seeded {len(DEFAULT_DOCTORS)} doctors")


def get_session():
    with Session(engine) as session:
        yield session
