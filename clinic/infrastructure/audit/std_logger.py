import hashlib
import json
import logging
from typing import Optional, Dict, Any

from ...application.ports.audit_logger import AuditLogger
from ...utils import utcnow


class StdAuditLogger(AuditLogger):
    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def log(self, action: str, phone: Optional[str] = None, appointment_id: Optional[int] = None, doctor_id: Optional[int] = None, success: bool = True, details: Optional[Dict[str, Any]] = None) -> None:
        entry = {
            "timestamp": utcnow().isoformat(),
            "action": action,
            "phone_hash": hashlib.sha256(phone.encode()).hexdigest() if phone else None,
            "appointment_id": appointment_id,
            "doctor_id": doctor_id,
            "success": success,
            "details": details or {},
        }
        self._logger.info(f"AUDIT: {json.dumps(entry)}")
