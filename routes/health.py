from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from models import db
from utils.responses import success_response, error_response

health_bp = Blueprint("health", __name__, url_prefix="/api")


@health_bp.get("/health")
def health():
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error("health check failed: %s", exc)
        return error_response("Banco de dados indisponível", "DB_UNAVAILABLE", 503)
    return success_response("OK", database="ok")
