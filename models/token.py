from datetime import datetime
from models.db import db

PURPOSE_2FA = "2fa"
PURPOSE_RECOVERY = "recovery"


class SecondFactorToken(db.Model):
    __tablename__ = "tokens"

    id = db.Column(db.Integer, primary_key=True)
    account_type = db.Column(db.String(16), nullable=False)  # patient, admin
    account_id = db.Column(db.Integer, nullable=False, index=True)
    purpose = db.Column(db.String(16), nullable=False)  # 2fa, recovery

    # store only the hashed code (never the raw digits)
    code_hash = db.Column(db.String(128), nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    used = db.Column(db.Boolean, default=False, nullable=False)

    __table_args__ = (
        db.Index("ix_tokens_account_purpose", "account_type", "account_id", "purpose"),
    )
