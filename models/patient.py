from models.db import db
from models.account import LockoutMixin


class Patient(LockoutMixin, db.Model):
    __tablename__ = "patients"

    id = db.Column(db.Integer, primary_key=True)

    cpf = db.Column(db.String(11), unique=True, nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    phone = db.Column(db.String(30), nullable=True)
    birth_date = db.Column(db.Date, nullable=True)

    # LGPD consent
    consent_accepted = db.Column(db.Boolean, default=False, nullable=False)
    consent_date = db.Column(db.DateTime, nullable=True)
