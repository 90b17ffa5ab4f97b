from functools import wraps
from flask import g, request, current_app

from models import db
from security.tokens import TOKEN_TYPE_ACCESS, TokenError, decode_token
from services.accounts import adapter_for
from utils.responses import error_response


def _bearer_token():
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    return auth.split(" ", 1)[1].strip() or None


def load_current_user():
    g.user = None
    g.account_type = None
    g.auth_error = None

    raw_token = _bearer_token()
    if not raw_token:
        return

    try:
        payload = decode_token(current_app.config, raw_token, TOKEN_TYPE_ACCESS)
        accounts = adapter_for(payload.get("account_type"))
    except TokenError as exc:
        g.auth_error = str(exc)
        return
    except ValueError:
        g.auth_error = "Invalid token"
        return

    account = accounts.get(db.session, payload.get("sub"))
    if account is None:
        g.auth_error = "Usuário não encontrado ou inativo"
        return

    g.user = account
    g.account_type = accounts.account_type


def login_required(*account_types):
    """
    Usage: @login_required() or @login_required("patient")
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if getattr(g, "user", None) is None:
                message = getattr(g, "auth_error", None) or "Token de acesso não fornecido"
                return error_response(message, "AUTH_REQUIRED", 401)
            if account_types and g.account_type not in account_types:
                return error_response("Tipo de token inválido", "FORBIDDEN", 403)
            return fn(*args, **kwargs)
        return wrapper
    return decorator
