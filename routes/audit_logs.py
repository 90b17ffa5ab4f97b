from flask import Blueprint, request
from models.audit_log import AuditLog
from security.rbac import require_roles
from utils.responses import success_response

audit_bp = Blueprint("audit", __name__, url_prefix="/api/admin")


@audit_bp.get("/audit-logs")
@require_roles("super_admin")
def list_audit_logs():

    limit = request.args.get("limit", type=int) or 200
    limit = max(1, min(limit, 500))

    action = request.args.get("action")
    account_type = request.args.get("account_type")
    account_id = request.args.get("account_id", type=int)

    q = AuditLog.query
    if action:
        q = q.filter(AuditLog.action == action)
    if account_type:
        q = q.filter(AuditLog.account_type == account_type)
    if account_id is not None:
        q = q.filter(AuditLog.account_id == account_id)

    rows = q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit).all()

    out = [
        {
            "id": r.id,
            "created_at": r.timestamp.isoformat() if r.timestamp else None,
            "account_type": r.account_type,
            "account_id": r.account_id,
            "action": r.action,
            "entity": r.entity,
            "entity_id": r.entity_id,
            "ip": r.ip,
            "user_agent": r.user_agent,
            "metadata": r.metadata_json,
        }
        for r in rows
    ]
    return success_response("OK", data=out)
