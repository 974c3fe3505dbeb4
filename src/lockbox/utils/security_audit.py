from typing import Optional
import json

from lockbox.utils.logger import get_logger

audit_logger = get_logger("lockbox.audit")


def get_client_ip(request) -> str:
    """Peer address of the request, "unknown" when the transport gives none."""
    return request.client.host if request.client else "unknown"


async def log_security_event(
    event_type: str,
    success: bool,
    user_id: Optional[int] = None,
    email_attempted: Optional[str] = None,
    ip_address: Optional[str] = None,
    details: Optional[dict] = None
):
    """Write one security event (login, registration, vault rotation) to the audit log"""
    record = {
        "event": event_type,
        "success": success,
        "user_id": user_id,
        "email_attempted": email_attempted,
        "ip": ip_address,
    }
    if details:
        record["details"] = details

    line = json.dumps(record, default=str)
    if success:
        audit_logger.info(line)
    else:
        audit_logger.warning(line)
