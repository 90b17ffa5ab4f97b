from flask import Blueprint, request, current_app, g

from models import db
from security.password_policy import password_strength
from security.rate_limit import check_and_increment
from services.accounts import adapter_for
from services.auth_service import AuthService
from utils.audit import log_event
from utils.auth_context import login_required
from utils.responses import success_response, error_response, validation_error
from utils.validators import (
    FieldErrors,
    clean_cpf,
    is_valid_code,
    is_valid_cpf,
    is_valid_email,
    is_valid_phone,
    parse_date,
)


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _service(account_type: str = "patient") -> AuthService:
    return AuthService(db.session, adapter_for(account_type), current_app.config)


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def rate_limited(scope: str):
    allowed, retry_after = check_and_increment(scope)
    if allowed:
        return None
    log_event("RATE_LIMIT_EXCEEDED", metadata={"scope": scope, "retry_after": retry_after})
    return error_response(
        "Muitas tentativas. Aguarde alguns minutos e tente novamente.",
        "RATE_LIMIT_EXCEEDED",
        429,
        retry_after_seconds=retry_after,
    )


def _check_cpf_shape(data: dict, errors: FieldErrors):
    if errors.require(data, "cpf", "CPF é obrigatório") and len(clean_cpf(data["cpf"])) != 11:
        errors.add("cpf", "CPF inválido")


@auth_bp.post("/login")
def login():
    limited = rate_limited("login")
    if limited:
        return limited

    data = json_body()
    errors = FieldErrors()
    _check_cpf_shape(data, errors)
    errors.require(data, "senha", "Senha é obrigatória")
    if errors:
        return validation_error(errors.items)

    challenge = _service().login(data["cpf"], data["senha"])
    return success_response(
        "Login realizado com sucesso. Insira o código 2FA.",
        requires2FA=challenge.requires_2fa,
        tempToken=challenge.temp_token,
        user=challenge.user,
    )


@auth_bp.post("/verify-2fa")
def verify_2fa():
    limited = rate_limited("code")
    if limited:
        return limited

    data = json_body()
    errors = FieldErrors()
    errors.require(data, "tempToken", "Token temporário é obrigatório")
    if errors.require(data, "token", "Código é obrigatório") and not is_valid_code(data["token"]):
        errors.add("token", "Código deve ter 6 dígitos numéricos")
    if errors:
        return validation_error(errors.items)

    # admins complete their login here too; the temp token says which account it is
    tokens = _service().verify_second_factor(data["tempToken"], data["token"])
    return success_response(
        "Autenticação realizada com sucesso",
        token=tokens.token,
        refreshToken=tokens.refresh_token,
        user=tokens.user,
    )


@auth_bp.post("/forgot-password")
def forgot_password():
    limited = rate_limited("recovery")
    if limited:
        return limited

    data = json_body()
    errors = FieldErrors()
    _check_cpf_shape(data, errors)
    if errors:
        return validation_error(errors.items)

    _service().request_password_recovery(data["cpf"])
    return success_response(
        "Se o CPF estiver cadastrado, um código de recuperação foi enviado para o seu e-mail."
    )


@auth_bp.post("/verify-recovery-token")
def verify_recovery_token():
    limited = rate_limited("code")
    if limited:
        return limited

    data = json_body()
    errors = FieldErrors()
    _check_cpf_shape(data, errors)
    if errors.require(data, "token", "Código é obrigatório") and not is_valid_code(data["token"].strip()):
        errors.add("token", "Código deve ter 6 dígitos numéricos")
    if errors:
        return validation_error(errors.items)

    patient_id = _service().verify_recovery_code(data["cpf"], data["token"].strip())
    return success_response("Token válido", data={"tokenValid": True, "patientId": patient_id})


@auth_bp.post("/reset-password")
def reset_password():
    limited = rate_limited("code")
    if limited:
        return limited

    data = json_body()
    errors = FieldErrors()
    errors.require(data, "token", "Código é obrigatório")
    errors.require(data, "novaSenha", "Nova senha é obrigatória")
    if errors:
        return validation_error(errors.items)

    _service().reset_password(data["token"].strip(), data["novaSenha"])
    return success_response("Senha alterada com sucesso. Você já pode fazer login com a nova senha.")


@auth_bp.post("/register")
def register():
    data = json_body()
    errors = FieldErrors()
    if errors.require(data, "cpf", "CPF é obrigatório") and not is_valid_cpf(data["cpf"]):
        errors.add("cpf", "CPF inválido")
    if errors.require(data, "nome", "Nome é obrigatório") and not 2 <= len(data["nome"].strip()) <= 100:
        errors.add("nome", "Nome deve ter entre 2 e 100 caracteres")
    if errors.require(data, "email", "E-mail é obrigatório") and not is_valid_email(data["email"].strip()):
        errors.add("email", "E-mail inválido")
    errors.require(data, "senha", "Senha é obrigatória")

    phone = data.get("telefone")
    if phone is not None and not is_valid_phone(phone):
        errors.add("telefone", "Telefone deve estar no formato (XX) XXXXX-XXXX")

    birth_date = None
    if data.get("dataNascimento") is not None:
        birth_date = parse_date(data["dataNascimento"])
        if birth_date is None:
            errors.add("dataNascimento", "Data de nascimento inválida")

    if errors:
        return validation_error(errors.items)

    user = _service().register(
        cpf=data["cpf"],
        name=data["nome"],
        email=data["email"],
        password=data["senha"],
        phone=phone,
        birth_date=birth_date,
    )
    return success_response("Usuário registrado com sucesso", 201, user=user)


@auth_bp.post("/refresh")
def refresh():
    data = json_body()
    errors = FieldErrors()
    errors.require(data, "refreshToken", "Refresh token é obrigatório")
    if errors:
        return validation_error(errors.items)

    token = _service().refresh(data["refreshToken"])
    return success_response("Token renovado", data={"token": token})


@auth_bp.post("/logout")
@login_required()
def logout():
    refresh_token = json_body().get("refreshToken")
    if not isinstance(refresh_token, str):
        refresh_token = None
    revoked = _service(g.account_type).logout(g.user, refresh_token)
    return success_response("Logout realizado com sucesso", revoked_refresh_tokens=revoked)


@auth_bp.post("/password-strength")
def check_password_strength():
    password = json_body().get("senha") or ""
    return success_response("OK", data=password_strength(password))


@auth_bp.get("/profile")
@login_required("patient")
def get_profile():
    return success_response("OK", user=adapter_for("patient").serialize(g.user))


@auth_bp.put("/profile")
@login_required("patient")
def update_profile():
    data = json_body()
    errors = FieldErrors()

    name = data.get("nome")
    if name is not None and (not isinstance(name, str) or not 2 <= len(name.strip()) <= 100):
        errors.add("nome", "Nome deve ter entre 2 e 100 caracteres")
    email = data.get("email")
    if email is not None and not is_valid_email(email.strip() if isinstance(email, str) else email):
        errors.add("email", "E-mail inválido")
    phone = data.get("telefone")
    if phone is not None and not is_valid_phone(phone):
        errors.add("telefone", "Telefone deve estar no formato (XX) XXXXX-XXXX")
    if errors:
        return validation_error(errors.items)

    user = _service().update_profile(g.user, name=name, phone=phone, email=email)
    return success_response("Perfil atualizado com sucesso", user=user)


@auth_bp.post("/change-password")
@login_required()
def change_password():
    data = json_body()
    errors = FieldErrors()
    errors.require(data, "senhaAtual", "Senha atual é obrigatória")
    errors.require(data, "novaSenha", "Nova senha é obrigatória")
    if errors:
        return validation_error(errors.items)

    _service(g.account_type).change_password(g.user, data["senhaAtual"], data["novaSenha"])
    return success_response("Senha alterada com sucesso")


@auth_bp.post("/accept-consent")
@auth_bp.post("/consent")
@login_required("patient")
def accept_consent():
    user = _service().accept_consent(g.user)
    return success_response("Consentimento registrado", user=user)
