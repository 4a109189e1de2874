import logging
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from fastapi import Request
from typing import Optional, Dict, Any

from .audit_models import AuditLog

logger = logging.getLogger(__name__)

def create_audit_log(
    db: Session,
    action: str,
    user_id: Optional[int] = None,
    request: Optional[Request] = None,
    details: Optional[Dict[str, Any]] = None
) -> Optional[AuditLog]:
    """
    Creates an audit log entry.

    The entry is written in its own commit after the action it describes has
    already been committed, so a failure here is logged and never undoes or
    fails the action itself.

    Args:
        db: The database session.
        action: A string describing the action performed (e.g., 'APPOINTMENT_BOOKED', 'DOCTOR_DEACTIVATED').
        user_id: The ID of the user who performed the action (if applicable).
        request: The FastAPI request object to extract IP address (if available).
        details: A dictionary containing additional context or data related to the action.

    Returns:
        The created AuditLog object, or None if it could not be stored.
    """
    ip_address = None
    if request and request.client:
        ip_address = request.client.host

    audit_entry = AuditLog(
        user_id=user_id,
        action=action,
        ip_address=ip_address,
        details=details
    )
    try:
        db.add(audit_entry)
        db.commit()
        db.refresh(audit_entry)
        return audit_entry
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to write audit log '{action}': {str(e)}")
        return None
