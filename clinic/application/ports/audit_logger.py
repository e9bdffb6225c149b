from typing import Optional, Dict, Any, Protocol


class AuditLogger(Protocol):
    def log(self, action: str, phone: Optional[str] = None, appointment_id: Optional[int] = None, doctor_id: Optional[int] = None, success: bool = True, details: Optional[Dict[str, Any]] = None) -> None:
        ...
