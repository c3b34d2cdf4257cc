import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from flask import request, has_request_context

logger = logging.getLogger(__name__)


def to_json_safe(value):
    """Convert cleaned request data (Decimals, enums, datetimes) into JSON-storable values"""
    if isinstance(value, dict):
        return {str(k): to_json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_safe(v) for v in value]
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class AuditLogger:
    """Log important actions for audit trail"""

    @staticmethod
    def log_action(
        user_id: str,
        action: str,
        entity_type: str = None,
        entity_id: str = None,
        description: str = None,
        changes: dict = None,
        ip_address: str = None,
        user_agent: str = None
    ):
        """Log an action to audit trail"""
        from gnb_transfer.models import AuditLog
        from gnb_transfer.extensions import db

        if has_request_context():
            ip_address = ip_address or request.remote_addr
            user_agent = user_agent or request.headers.get('User-Agent')

        log = AuditLog(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            changes=to_json_safe(changes) if changes is not None else None,
            ip_address=ip_address,
            user_agent=user_agent
        )

        db.session.add(log)
        db.session.commit()
        logger.info(f"Audit: {action} {entity_type or ''} {entity_id or ''} by {user_id}".strip())
        return log
