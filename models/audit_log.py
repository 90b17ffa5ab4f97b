from datetime import datetime
from models.db import db

class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    account_type = db.Column(db.String(16), nullable=True)  # patient, admin; null for anonymous events
    account_id = db.Column(db.Integer, nullable=True)
    action = db.Column(db.String(80), nullable=False)  # e.g. LOGIN_FAIL, PASSWORD_RESET
    entity = db.Column(db.String(80), nullable=True)
    entity_id = db.Column(db.String(80), nullable=True)

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    metadata_json = db.Column(db.Text, nullable=True)

    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
