import re
from typing import List, Tuple

from flask import current_app

_UPPER = re.compile(r"[A-Z]")
_LOWER = re.compile(r"[a-z]")
_LETTER = re.compile(r"[A-Za-z]")
_DIGIT = re.compile(r"\d")
_SYMBOL = re.compile(r"[^A-Za-z0-9]")

_DEFAULTS = {
    "PASSWORD_MIN_LEN": 8,
    "PASSWORD_MAX_LEN": 128,
    "PASSWORD_REQUIRE_UPPER": False,
    "PASSWORD_REQUIRE_LOWER": False,
    "PASSWORD_REQUIRE_LETTER": True,
    "PASSWORD_REQUIRE_DIGIT": True,
    "PASSWORD_REQUIRE_SYMBOL": False,
}


def _cfg(name: str):
    try:
        return current_app.config.get(name, _DEFAULTS[name])
    except RuntimeError:
        # used outside app context (CLI)
        return _DEFAULTS[name]


def _required_checks():
    checks = []
    if bool(_cfg("PASSWORD_REQUIRE_UPPER")):
        checks.append((_UPPER, "Senha deve conter ao menos 1 letra maiúscula"))
    if bool(_cfg("PASSWORD_REQUIRE_LOWER")):
        checks.append((_LOWER, "Senha deve conter ao menos 1 letra minúscula"))
    if bool(_cfg("PASSWORD_REQUIRE_LETTER")):
        checks.append((_LETTER, "Senha deve conter ao menos 1 letra"))
    if bool(_cfg("PASSWORD_REQUIRE_DIGIT")):
        checks.append((_DIGIT, "Senha deve conter ao menos 1 número"))
    if bool(_cfg("PASSWORD_REQUIRE_SYMBOL")):
        checks.append((_SYMBOL, "Senha deve conter ao menos 1 símbolo"))
    return checks


def validate_password(pw: str) -> Tuple[bool, List[str]]:
    errors: List[str] = []

    if not isinstance(pw, str):
        return False, ["Senha deve ser um texto"]

    min_len = int(_cfg("PASSWORD_MIN_LEN"))
    max_len = int(_cfg("PASSWORD_MAX_LEN"))

    if len(pw) < min_len:
        errors.append(f"Senha deve ter pelo menos {min_len} caracteres")
    if len(pw) > max_len:
        errors.append(f"Senha deve ter no máximo {max_len} caracteres")

    for pattern, message in _required_checks():
        if not pattern.search(pw):
            errors.append(message)

    return (len(errors) == 0), errors


def password_strength(pw: str) -> dict:
    if not isinstance(pw, str):
        return {
            "score": 0,
            "valid": False,
            "feedback": ["Senha deve ser um texto"],
        }

    valid, errors = validate_password(pw)
    length = len(pw)
    min_len = int(_cfg("PASSWORD_MIN_LEN"))

    # variety is measured over every class, not only the required ones
    classes = (_LOWER, _UPPER, _DIGIT, _SYMBOL)
    variety = sum(1 for pat in classes if pat.search(pw))

    score = 0
    if length >= min_len:
        score += 1
    if length >= min_len + 4:
        score += 1
    if variety >= 3:
        score += 1
    if variety == len(classes) and length >= min_len:
        score += 1

    feedback: List[str] = []
    if not valid:
        feedback = errors
    else:
        if length < min_len + 4:
            feedback.append("Use uma senha mais longa para maior segurança")
        if variety < len(classes):
            feedback.append("Misture letras maiúsculas, minúsculas, números e símbolos")

    return {
        "score": min(score, 4),
        "valid": valid,
        "feedback": feedback,
    }
