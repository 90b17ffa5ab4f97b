"""JWT issuing/decoding and one-time code helpers."""

import hashlib
import secrets
import uuid
from datetime import datetime, timedelta, timezone

import jwt

TOKEN_TYPE_TEMP = "temp"
TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"


class TokenError(Exception):
    """Raised when a JWT cannot be trusted (bad signature, expired, wrong type)."""


def hash_code(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


def generate_code(length: int = 6) -> str:
    return "".join(str(secrets.randbelow(10)) for _ in range(length))


def encode_token(config, token_type: str, claims: dict, lifetime: timedelta, jti=None) -> str:
    now = datetime.now(timezone.utc)
    payload = dict(claims)
    payload.update({
        "type": token_type,
        "iat": now,
        "exp": now + lifetime,
    })
    if jti:
        payload["jti"] = jti
    return jwt.encode(payload, config["JWT_SECRET"], algorithm=config.get("JWT_ALGORITHM", "HS256"))


def decode_token(config, token: str, expected_type: str) -> dict:
    if not token or not isinstance(token, str):
        raise TokenError("Missing token")
    try:
        payload = jwt.decode(
            token,
            config["JWT_SECRET"],
            algorithms=[config.get("JWT_ALGORITHM", "HS256")],
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenError("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise TokenError("Invalid token") from exc

    if payload.get("type") != expected_type:
        raise TokenError("Unexpected token type")
    return payload


def new_jti() -> str:
    return uuid.uuid4().hex
