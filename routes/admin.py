from flask import Blueprint, current_app, g

from models import db
from models.patient import Patient
from services.accounts import adapter_for
from services.auth_service import AuthService
from security.rbac import require_roles
from routes.auth import rate_limited, json_body
from utils.auth_context import login_required
from utils.responses import success_response, error_response, validation_error
from utils.validators import FieldErrors

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.post("/auth/login")
def admin_login():
    limited = rate_limited("login")
    if limited:
        return limited

    data = json_body()
    errors = FieldErrors()
    errors.require(data, "username", "Usuário é obrigatório")
    errors.require(data, "password", "Senha é obrigatória")
    if errors:
        return validation_error(errors.items)

    service = AuthService(db.session, adapter_for("admin"), current_app.config)
    challenge = service.login(data["username"], data["password"])
    return success_response(
        "Login de administrador realizado. Insira o código 2FA.",
        requires2FA=challenge.requires_2fa,
        tempToken=challenge.temp_token,
        user=challenge.user,
    )


@admin_bp.get("/auth/me")
@login_required("admin")
def me():
    return success_response("OK", user=adapter_for("admin").serialize(g.user))


@admin_bp.post("/patients/<int:patient_id>/unlock")
@require_roles("admin")
def unlock_patient(patient_id):
    patient = db.session.get(Patient, patient_id)
    if patient is None:
        return error_response("Paciente não encontrado", "NOT_FOUND", 404)

    service = AuthService(db.session, adapter_for("patient"), current_app.config)
    service.unlock(patient, actor=g.user)
    return success_response("Conta desbloqueada")


@admin_bp.put("/patients/<int:patient_id>/status")
@admin_bp.put("/users/<int:patient_id>/status")
@require_roles("admin")
def set_patient_status(patient_id):
    data = json_body()
    if not isinstance(data.get("ativo"), bool):
        return validation_error([{"field": "ativo", "message": "Campo ativo deve ser verdadeiro ou falso"}])

    patient = db.session.get(Patient, patient_id)
    if patient is None:
        return error_response("Paciente não encontrado", "USER_NOT_FOUND", 404)

    service = AuthService(db.session, adapter_for("patient"), current_app.config)
    revoked = service.set_active(patient, data["ativo"], actor=g.user)
    return success_response(
        "Usuário ativado com sucesso" if data["ativo"] else "Usuário desativado com sucesso",
        revoked_refresh_tokens=revoked,
    )
