import json
import logging

from flask import request
from models import db
from models.audit_log import AuditLog

from security.rate_limit import client_ip

logger = logging.getLogger(__name__)


def log_event(action: str, case_id=None, admin_user_id=None, metadata=None):
    user_agent = request.headers.get("User-Agent", "")

    row = AuditLog(
        action=action,
        case_id=case_id,
        admin_user_id=admin_user_id,
        ip=client_ip(),
        user_agent=user_agent[:255] if user_agent else None,
        metadata_json=json.dumps(metadata) if metadata else None
    )
    db.session.add(row)
    db.session.commit()
    logger.info("audit %s case=%s", action, case_id or "-")
