from models.db import db
from models.account import LockoutMixin

ADMIN_ROLES = ("super_admin", "admin", "moderator")


class Admin(LockoutMixin, db.Model):
    __tablename__ = "admins"

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    name = db.Column(db.String(100), nullable=False)
    role = db.Column(db.String(20), default="admin", nullable=False)  # super_admin, admin, moderator
