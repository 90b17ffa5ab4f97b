from datetime import datetime
from models.db import db


class LockoutMixin:
    """Columns shared by every account that can log in."""

    password_hash = db.Column(db.String(255), nullable=False)

    login_attempts = db.Column(db.Integer, default=0, nullable=False)
    locked_until = db.Column(db.DateTime, nullable=True)
    # number of lockouts since the last successful login, drives the progressive schedule
    lockout_count = db.Column(db.Integer, default=0, nullable=False)
    last_login = db.Column(db.DateTime, nullable=True)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def is_locked(self, now=None) -> bool:
        now = now or datetime.utcnow()
        return self.locked_until is not None and self.locked_until > now
