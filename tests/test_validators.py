import pytest

from security.password_policy import password_strength, validate_password
from utils.validators import (
    clean_cpf,
    format_cpf,
    is_valid_code,
    is_valid_cpf,
    is_valid_email,
    is_valid_phone,
    parse_date,
)


class TestCpf:
    @pytest.mark.parametrize("cpf", ["52998224725", "529.982.247-25", "111.444.777-35"])
    def test_valid(self, cpf):
        assert is_valid_cpf(cpf)

    @pytest.mark.parametrize("cpf", ["12345678900", "11111111111", "5299822472", "", None, 52998224725])
    def test_invalid(self, cpf):
        assert not is_valid_cpf(cpf)

    def test_clean_and_format(self):
        assert clean_cpf("529.982.247-25") == "52998224725"
        assert format_cpf("52998224725") == "529.982.247-25"
        assert clean_cpf(None) == ""


def test_email_phone_code_date():
    assert is_valid_email("maria@example.com")
    assert not is_valid_email("maria@example")
    assert is_valid_phone("(11) 99999-1111")
    assert is_valid_phone("(11) 3333-1111")
    assert not is_valid_phone("11999991111")
    assert is_valid_code("012345")
    assert not is_valid_code("12345")
    assert not is_valid_code("12345a")
    assert parse_date("1990-05-17").isoformat() == "1990-05-17"
    assert parse_date("17/05/1990") is None


class TestPasswordPolicy:
    def test_valid_password(self, app):
        ok, problems = validate_password("senha1234")
        assert ok and problems == []

    def test_requires_digit_and_length(self, app):
        ok, problems = validate_password("abc")
        assert not ok
        assert len(problems) == 2

    def test_requires_letter(self, app):
        ok, _ = validate_password("12345678")
        assert not ok

    def test_non_string(self, app):
        assert validate_password(None) == (False, ["Senha deve ser um texto"])

    def test_strength_scores(self, app):
        weak = password_strength("abc")
        strong = password_strength("Sup3r-Secret-Passphrase")
        assert weak["valid"] is False and weak["score"] <= 1
        assert strong["valid"] is True and strong["score"] == 4
