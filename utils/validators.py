"""Request payload validation: CPF, e-mail, phone and dates."""

import re
from datetime import date, datetime

_NON_DIGIT = re.compile(r"\D")
_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE = re.compile(r"^\(\d{2}\)\s\d{4,5}-\d{4}$")
_CODE = re.compile(r"^\d{6}$")


def clean_cpf(value) -> str:
    if not isinstance(value, str):
        return ""
    return _NON_DIGIT.sub("", value)


def format_cpf(value) -> str:
    digits = clean_cpf(value)
    if len(digits) != 11:
        return digits
    return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"


def _check_digit(digits: str, weight_start: int) -> int:
    total = sum(int(d) * w for d, w in zip(digits, range(weight_start, 1, -1)))
    rest = (total * 10) % 11
    return 0 if rest == 10 else rest


def is_valid_cpf(value) -> bool:
    cpf = clean_cpf(value)
    if len(cpf) != 11 or cpf == cpf[0] * 11:
        return False
    if _check_digit(cpf[:9], 10) != int(cpf[9]):
        return False
    return _check_digit(cpf[:10], 11) == int(cpf[10])


def is_valid_email(value) -> bool:
    return isinstance(value, str) and len(value) <= 255 and bool(_EMAIL.match(value))


def is_valid_phone(value) -> bool:
    return isinstance(value, str) and bool(_PHONE.match(value))


def is_valid_code(value) -> bool:
    return isinstance(value, str) and bool(_CODE.match(value))


def parse_date(value):
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return None


class FieldErrors:
    """Collects field-level messages for a 400 response."""

    def __init__(self):
        self.items = []

    def add(self, field: str, message: str):
        self.items.append({"field": field, "message": message})

    def require(self, data: dict, field: str, message: str) -> bool:
        value = data.get(field)
        if not isinstance(value, str) or not value.strip():
            self.add(field, message)
            return False
        return True

    def __bool__(self):
        return bool(self.items)
