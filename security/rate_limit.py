from datetime import datetime, timedelta
from flask import request, current_app

from models import db
from models.ip_rate_limit import IpRateLimit

_SCOPES = {
    "login": ("LOGIN_RATE_WINDOW_SECONDS", 15 * 60, "LOGIN_RATE_MAX_REQUESTS", 5),
    "recovery": ("RECOVERY_RATE_WINDOW_SECONDS", 60 * 60, "RECOVERY_RATE_MAX_REQUESTS", 3),
    "code": ("CODE_RATE_WINDOW_SECONDS", 15 * 60, "CODE_RATE_MAX_REQUESTS", 10),
}


def client_ip() -> str:
    # ProxyFix rewrites remote_addr when TRUSTED_PROXY_COUNT is set
    return request.remote_addr or "unknown"


def check_and_increment(scope: str) -> tuple[bool, int]:
    """
    Returns (allowed, retry_after_seconds).
    Simple fixed window per IP and scope.
    """
    window_key, window_default, max_key, max_default = _SCOPES[scope]
    ip = client_ip()
    now = datetime.utcnow()

    window_seconds = current_app.config.get(window_key, window_default)
    max_requests = current_app.config.get(max_key, max_default)

    row = IpRateLimit.query.filter_by(ip=ip, scope=scope).first()
    if not row:
        row = IpRateLimit(ip=ip, scope=scope, window_start=now, count=0)
        db.session.add(row)

    window_end = row.window_start + timedelta(seconds=window_seconds)

    # Reset window if expired
    if now >= window_end:
        row.window_start = now
        row.count = 0
        window_end = row.window_start + timedelta(seconds=window_seconds)

    row.count += 1
    db.session.commit()

    if row.count > max_requests:
        retry_after = int((window_end - now).total_seconds())
        return False, max(retry_after, 1)

    return True, 0
