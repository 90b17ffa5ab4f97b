import json
from flask import request, has_request_context
from models import db
from models.audit_log import AuditLog

def log_event(action: str, account_type=None, account_id=None, entity=None, entity_id=None,
              metadata=None, session=None, commit=True):
    session = session or db.session
    ip = None
    user_agent = None
    if has_request_context():
        ip = request.remote_addr
        user_agent = request.headers.get("User-Agent", "")

    row = AuditLog(
        account_type=account_type,
        account_id=account_id,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        ip=ip,
        user_agent=user_agent[:255] if user_agent else None,
        metadata_json=json.dumps(metadata, default=str) if metadata else None
    )
    session.add(row)
    if commit:
        session.commit()
