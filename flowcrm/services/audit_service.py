"""
Audit logging service for tracking pre-sale and stock changes.
"""
from flowcrm.models.audit_log import AuditLog, AuditAction
from flowcrm.database import utcnow
from flask import request, has_request_context
import json
import logging

logger = logging.getLogger(__name__)

SYSTEM_USER = 'System'


def current_user_name(default: str = SYSTEM_USER) -> str:
    """User name sent by the caller in the X-User-Name header, if any."""
    if has_request_context():
        name = (request.headers.get('X-User-Name') or '').strip()
        if name:
            return name[:255]
    return default


def log_action(
    session,
    action: AuditAction,
    resource_type: str = None,
    resource_id: str = None,
    details: dict = None,
    user_name: str = None
):
    """
    Log an auditable action to the database.

    Args:
        session: Database session
        action: AuditAction enum value
        resource_type: Type of resource affected (e.g., 'presale', 'product')
        resource_id: ID of the affected resource
        details: Dict with additional details (will be JSON encoded)
        user_name: Acting user; defaults to the request's user or 'System'
    """
    try:
        # Request metadata is only available inside a request
        ip_address = None
        user_agent = None
        if has_request_context():
            ip_address = request.remote_addr
            user_agent = request.headers.get('User-Agent', '')[:255]

        details_json = None
        if details:
            try:
                details_json = json.dumps(details, default=str)
            except (TypeError, ValueError) as e:
                logger.warning(f"Failed to serialize audit details: {e}")
                details_json = str(details)

        audit_entry = AuditLog(
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details_json,
            user_name=user_name or current_user_name(),
            ip_address=ip_address,
            user_agent=user_agent,
            created_at=utcnow()
        )

        session.add(audit_entry)
        # Note: Caller is responsible for committing the session

        logger.info(f"Audit log created: {action.value} on {resource_type} {resource_id}")

    except Exception as e:
        logger.error(f"Failed to create audit log: {e}")
        # Audit failures must not break business logic


def get_audit_logs(
    session,
    limit: int = 100,
    offset: int = 0,
    action_filter: AuditAction = None,
    resource_type_filter: str = None,
    resource_id_filter: str = None
):
    """
    Retrieve audit logs, newest first, with optional filters.

    Returns:
        List of AuditLog objects
    """
    query = session.query(AuditLog)

    if action_filter:
        query = query.filter(AuditLog.action == action_filter)

    if resource_type_filter:
        query = query.filter(AuditLog.resource_type == resource_type_filter)

    if resource_id_filter:
        query = query.filter(AuditLog.resource_id == resource_id_filter)

    query = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    query = query.limit(limit).offset(offset)

    return query.all()
