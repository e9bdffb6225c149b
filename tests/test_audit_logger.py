import hashlib
import json
import logging

from clinic.infrastructure.audit.std_logger import StdAuditLogger


def test_audit_line_hashes_phone(caplog):
    with caplog.at_level(logging.INFO, logger="clinic.infrastructure.audit.std_logger"):
        StdAuditLogger().log("appointment.book", phone="9845012345", appointment_id=7, doctor_id=2)

    line = caplog.records[-1].getMessage()
    assert line.startswith("AUDIT: ")
    entry = json.loads(line[len("AUDIT: "):])
    assert entry["phone_hash"] == hashlib.sha256(b"9845012345").hexdigest()
    assert "9845012345" not in line
    assert (entry["action"], entry["appointment_id"], entry["success"]) == ("appointment.book", 7, True)
