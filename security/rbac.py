from functools import wraps
from flask import g

from utils.responses import error_response


def require_roles(*role_names: str):
    """
    Usage: @require_roles("admin")

    Only admin accounts carry roles; super_admin passes every check.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                return error_response("Autenticação necessária", "AUTH_REQUIRED", 401)

            if getattr(g, "account_type", None) != "admin":
                return error_response("Acesso negado", "FORBIDDEN", 403)

            if user.role != "super_admin" and user.role not in role_names:
                return error_response("Permissões insuficientes", "FORBIDDEN", 403)

            return fn(*args, **kwargs)
        return wrapper
    return decorator
