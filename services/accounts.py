"""Patient/admin specifics behind the interface AuthService works against."""

from models.patient import Patient
from models.admin import Admin
from utils.validators import clean_cpf


class AccountAdapter:
    account_type = None
    model = None
    not_found_message = "Usuário não encontrado"

    def normalize_identifier(self, identifier) -> str:
        raise NotImplementedError

    def find_by_identifier(self, session, identifier):
        raise NotImplementedError

    def get(self, session, account_id):
        if account_id is None:
            return None
        account = session.get(self.model, int(account_id))
        if account is None or not account.is_active:
            return None
        return account

    def role(self, account) -> str:
        return self.account_type

    def claims(self, account) -> dict:
        return {
            "sub": str(account.id),
            "account_type": self.account_type,
            "role": self.role(account),
        }

    def serialize(self, account) -> dict:
        raise NotImplementedError


class PatientAccounts(AccountAdapter):
    account_type = "patient"
    model = Patient
    not_found_message = "CPF não encontrado. Verifique e tente novamente."

    def normalize_identifier(self, identifier) -> str:
        return clean_cpf(identifier)

    def find_by_identifier(self, session, identifier):
        cpf = self.normalize_identifier(identifier)
        if not cpf:
            return None
        return (
            session.query(Patient)
            .filter(Patient.cpf == cpf, Patient.is_active.is_(True))
            .first()
        )

    def claims(self, account) -> dict:
        claims = super().claims(account)
        claims["cpf"] = account.cpf
        return claims

    def serialize(self, account) -> dict:
        return {
            "id": account.id,
            "cpf": account.cpf,
            "nome": account.name,
            "email": account.email,
            "telefone": account.phone,
            "dataNascimento": account.birth_date.isoformat() if account.birth_date else None,
            "consentimentoLGPD": account.consent_accepted,
        }


class AdminAccounts(AccountAdapter):
    account_type = "admin"
    model = Admin

    def normalize_identifier(self, identifier) -> str:
        if not isinstance(identifier, str):
            return ""
        return identifier.strip().lower()

    def find_by_identifier(self, session, identifier):
        username = self.normalize_identifier(identifier)
        if not username:
            return None
        return (
            session.query(Admin)
            .filter(Admin.username == username, Admin.is_active.is_(True))
            .first()
        )

    def role(self, account) -> str:
        return account.role

    def serialize(self, account) -> dict:
        return {
            "id": account.id,
            "username": account.username,
            "name": account.name,
            "email": account.email,
            "role": account.role,
        }


_ADAPTERS = {
    PatientAccounts.account_type: PatientAccounts,
    AdminAccounts.account_type: AdminAccounts,
}


def adapter_for(account_type: str) -> AccountAdapter:
    try:
        return _ADAPTERS[account_type]()
    except KeyError:
        raise ValueError(f"Unknown account type: {account_type!r}") from None
