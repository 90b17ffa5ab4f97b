"""Authentication flow shared by patients and admins.

Login is a small state machine::

    ANONYMOUS -> CREDENTIALS_CHECKED -> AWAITING_2FA -> AUTHENTICATED
                        |
                        +-> LOCKED (after MAX_LOGIN_ATTEMPTS failures)

A successful password check never yields a session by itself: it stores a
one-time code and hands back a short-lived temporary JWT that is only good for
``verify_second_factor``. Account specifics (identifier, claims, JSON shape)
come from an ``AccountAdapter``.
"""

import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError

from models.token import SecondFactorToken, PURPOSE_2FA, PURPOSE_RECOVERY
from models.refresh_token import RefreshToken
from models.patient import Patient
from security.password import hash_password, verify_password
from security.password_policy import validate_password
from security.tokens import (
    TOKEN_TYPE_ACCESS,
    TOKEN_TYPE_REFRESH,
    TOKEN_TYPE_TEMP,
    TokenError,
    decode_token,
    encode_token,
    generate_code,
    hash_code,
    new_jti,
)
from services import errors
from services.accounts import AccountAdapter, adapter_for
from services.errors import AuthError
from utils.audit import log_event
from utils.emailer import deliver_code
from utils.validators import clean_cpf

logger = logging.getLogger(__name__)

DEFAULT_LOCKOUT_SCHEDULE = (5, 15, 30, 60, 120)


def lockout_minutes(lockout_count: int, schedule=DEFAULT_LOCKOUT_SCHEDULE) -> int:
    """Minutes of the n-th consecutive lockout (1-based), capped at the last step."""
    schedule = list(schedule) or list(DEFAULT_LOCKOUT_SCHEDULE)
    index = min(max(lockout_count, 1) - 1, len(schedule) - 1)
    return int(schedule[index])


@dataclass
class LoginChallenge:
    temp_token: str
    user: dict
    requires_2fa: bool = True


@dataclass
class SessionTokens:
    token: str
    refresh_token: str
    user: dict


class AuthService:
    def __init__(
        self,
        session,
        accounts: AccountAdapter,
        config,
        notifier: Optional[Callable] = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.session = session
        self.accounts = accounts
        self.config = config
        self.notifier = notifier or deliver_code
        self.now = now or datetime.utcnow

    # ------------------------------------------------------------------
    # Login / 2FA
    # ------------------------------------------------------------------

    def login(self, identifier, password) -> LoginChallenge:
        account = self.accounts.find_by_identifier(self.session, identifier)
        if account is None:
            self._audit("LOGIN_FAIL", metadata={"reason": "not_found"})
            self.session.commit()
            raise AuthError(errors.USER_NOT_FOUND, self.accounts.not_found_message)

        now = self.now()
        if account.is_locked(now):
            seconds_left = max(int((account.locked_until - now).total_seconds()), 1)
            self._audit("LOGIN_LOCKED", account, metadata={"seconds_left": seconds_left})
            self.session.commit()
            raise AuthError(errors.ACCOUNT_LOCKED, retry_after=seconds_left)

        if account.locked_until is not None:
            # lockout window elapsed
            account.login_attempts = 0
            account.locked_until = None

        if not verify_password(password, account.password_hash):
            self._register_failure(account, now)
            raise AuthError(errors.INVALID_PASSWORD)

        account.login_attempts = 0
        account.locked_until = None
        account.lockout_count = 0
        account.last_login = now

        code = self._issue_code(account, PURPOSE_2FA, self.config.get("TWO_FACTOR_TTL_MINUTES", 5), now)
        self._audit("LOGIN_2FA_SENT", account)
        self.session.commit()

        self.notifier(account.email, account.name, code, PURPOSE_2FA)

        temp_token = encode_token(
            self.config,
            TOKEN_TYPE_TEMP,
            self.accounts.claims(account),
            timedelta(minutes=self.config.get("TEMP_TOKEN_TTL_MINUTES", 10)),
        )
        return LoginChallenge(temp_token=temp_token, user=self.accounts.serialize(account))

    def _register_failure(self, account, now):
        account.login_attempts = (account.login_attempts or 0) + 1

        max_attempts = self.config.get("MAX_LOGIN_ATTEMPTS", 5)
        locked_now = False
        if account.login_attempts >= max_attempts:
            account.lockout_count = (account.lockout_count or 0) + 1
            minutes = lockout_minutes(
                account.lockout_count,
                self.config.get("LOCKOUT_SCHEDULE_MINUTES", DEFAULT_LOCKOUT_SCHEDULE),
            )
            account.locked_until = now + timedelta(minutes=minutes)
            locked_now = True

        self._audit(
            "LOGIN_FAIL",
            account,
            metadata={"fail_count": account.login_attempts, "locked_now": locked_now},
        )
        if locked_now:
            self._audit("ACCOUNT_LOCKED", account, metadata={"until": account.locked_until.isoformat()})
            logger.warning(
                "%s %s locked until %s", self.accounts.account_type, account.id, account.locked_until
            )
        self.session.commit()

    def verify_second_factor(self, temp_token, code) -> SessionTokens:
        try:
            payload = decode_token(self.config, temp_token, TOKEN_TYPE_TEMP)
            accounts = adapter_for(payload.get("account_type"))
        except (TokenError, ValueError) as exc:
            raise AuthError(errors.INVALID_TEMP_TOKEN) from exc

        account = accounts.get(self.session, payload.get("sub"))
        if account is None:
            raise AuthError(errors.USER_NOT_FOUND, accounts.not_found_message)

        code = str(code or "")
        bypass = self.config.get("TWO_FACTOR_BYPASS_CODE")
        if bypass and hmac.compare_digest(code.encode("utf-8"), str(bypass).encode("utf-8")):
            logger.warning("2FA bypass code accepted for %s %s", accounts.account_type, account.id)
        else:
            row = self._latest_unused(accounts.account_type, PURPOSE_2FA, code, account_id=account.id)
            if row is None:
                raise AuthError(errors.INVALID_2FA_TOKEN)
            if row.expires_at < self.now():
                raise AuthError(errors.EXPIRED_2FA_TOKEN)
            row.used = True

        tokens = self._issue_session(accounts, account)
        self._audit("LOGIN_SUCCESS", account, account_type=accounts.account_type)
        self.session.commit()
        return tokens

    # ------------------------------------------------------------------
    # Password recovery
    # ------------------------------------------------------------------

    def request_password_recovery(self, identifier) -> Optional[str]:
        """Returns the stored code, or None for unknown accounts.

        Callers must answer the same way in both cases.
        """
        account = self.accounts.find_by_identifier(self.session, identifier)
        if account is None:
            self._audit("PASSWORD_RESET_REQUESTED", metadata={"known": False})
            self.session.commit()
            return None

        now = self.now()
        code = self._issue_code(account, PURPOSE_RECOVERY, self.config.get("RECOVERY_TTL_MINUTES", 15), now)
        self._audit("PASSWORD_RESET_REQUESTED", account, metadata={"known": True})
        self.session.commit()

        self.notifier(account.email, account.name, code, PURPOSE_RECOVERY)
        return code

    def verify_recovery_code(self, identifier, code) -> int:
        """Checks a recovery code for one account without consuming it."""
        account = self.accounts.find_by_identifier(self.session, identifier)
        if account is None:
            raise AuthError(errors.INVALID_RESET_TOKEN)

        row = self._latest_unused(
            self.accounts.account_type, PURPOSE_RECOVERY, str(code or ""), account_id=account.id
        )
        if row is None:
            raise AuthError(errors.INVALID_RESET_TOKEN)
        if row.expires_at < self.now():
            raise AuthError(errors.EXPIRED_RESET_TOKEN)
        return account.id

    def reset_password(self, code, new_password) -> None:
        self._check_policy(new_password)

        row = self._latest_unused(self.accounts.account_type, PURPOSE_RECOVERY, str(code or ""))
        if row is None:
            raise AuthError(errors.INVALID_RESET_TOKEN)
        now = self.now()
        if row.expires_at < now:
            raise AuthError(errors.EXPIRED_RESET_TOKEN)

        account = self.accounts.get(self.session, row.account_id)
        if account is None:
            raise AuthError(errors.INVALID_RESET_TOKEN)

        try:
            account.password_hash = hash_password(new_password)
            account.login_attempts = 0
            account.locked_until = None
            account.lockout_count = 0
            revoked = self._revoke_refresh_tokens(self.accounts.account_type, account.id, now)
            row.used = True
            self._audit("PASSWORD_RESET", account, metadata={"revoked_refresh_tokens": revoked})
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    # ------------------------------------------------------------------
    # Session tokens
    # ------------------------------------------------------------------

    def refresh(self, refresh_token) -> str:
        try:
            payload = decode_token(self.config, refresh_token, TOKEN_TYPE_REFRESH)
            accounts = adapter_for(payload.get("account_type"))
        except (TokenError, ValueError) as exc:
            raise AuthError(errors.INVALID_REFRESH_TOKEN) from exc

        row = (
            self.session.query(RefreshToken)
            .filter_by(jti=payload.get("jti"), is_active=True)
            .first()
        )
        if row is None or row.expires_at < self.now():
            raise AuthError(errors.INVALID_REFRESH_TOKEN)
        if row.account_type != accounts.account_type or str(row.account_id) != str(payload.get("sub")):
            raise AuthError(errors.INVALID_REFRESH_TOKEN)

        account = accounts.get(self.session, row.account_id)
        if account is None:
            raise AuthError(errors.INVALID_REFRESH_TOKEN)

        access = self._access_token(accounts, account)
        self._audit("TOKEN_REFRESH", account, account_type=accounts.account_type)
        self.session.commit()
        return access

    def logout(self, account, refresh_token=None) -> int:
        revoked = 0
        if refresh_token:
            try:
                payload = decode_token(self.config, refresh_token, TOKEN_TYPE_REFRESH)
            except TokenError:
                payload = None
            if payload:
                row = (
                    self.session.query(RefreshToken)
                    .filter_by(
                        jti=payload.get("jti"),
                        account_type=self.accounts.account_type,
                        account_id=account.id,
                        is_active=True,
                    )
                    .first()
                )
                if row is not None:
                    row.is_active = False
                    row.revoked_at = self.now()
                    revoked = 1

        self._audit("LOGOUT", account, metadata={"revoked_refresh_tokens": revoked})
        self.session.commit()
        return revoked

    # ------------------------------------------------------------------
    # Account maintenance
    # ------------------------------------------------------------------

    def register(self, cpf, name, email, password, phone=None, birth_date=None) -> dict:
        cpf = clean_cpf(cpf)
        email = (email or "").strip().lower()

        if self.session.query(Patient.id).filter_by(cpf=cpf).first():
            self._audit("REGISTER_FAIL", metadata={"reason": "duplicate_cpf"})
            self.session.commit()
            raise AuthError(errors.DUPLICATE_CPF)
        if self.session.query(Patient.id).filter_by(email=email).first():
            self._audit("REGISTER_FAIL", metadata={"reason": "duplicate_email"})
            self.session.commit()
            raise AuthError(errors.DUPLICATE_EMAIL)

        self._check_policy(password)

        patient = Patient(
            cpf=cpf,
            name=name.strip(),
            email=email,
            phone=phone,
            birth_date=birth_date,
            password_hash=hash_password(password),
        )
        self.session.add(patient)
        try:
            self.session.flush()
        except IntegrityError as exc:
            # a concurrent registration won the unique index
            self.session.rollback()
            if self.session.query(Patient.id).filter_by(cpf=cpf).first():
                raise AuthError(errors.DUPLICATE_CPF) from exc
            raise AuthError(errors.DUPLICATE_EMAIL) from exc
        self._audit("REGISTER_SUCCESS", patient, account_type="patient")
        self.session.commit()
        return self.accounts.serialize(patient)

    def change_password(self, account, current_password, new_password) -> int:
        if not verify_password(current_password, account.password_hash):
            raise AuthError(errors.INVALID_CURRENT_PASSWORD)
        self._check_policy(new_password)

        try:
            account.password_hash = hash_password(new_password)
            revoked = self._revoke_refresh_tokens(self.accounts.account_type, account.id, self.now())
            self._audit("PASSWORD_CHANGED", account, metadata={"revoked_refresh_tokens": revoked})
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return revoked

    def update_profile(self, account, name=None, phone=None, email=None) -> dict:
        if email is not None:
            email = email.strip().lower()
            taken = (
                self.session.query(self.accounts.model.id)
                .filter(self.accounts.model.email == email, self.accounts.model.id != account.id)
                .first()
            )
            if taken:
                raise AuthError(errors.DUPLICATE_EMAIL, "E-mail já está em uso")
            account.email = email
        if name is not None:
            account.name = name.strip()
        if phone is not None:
            account.phone = phone.strip()

        self._audit("PROFILE_UPDATE", account)
        self.session.commit()
        return self.accounts.serialize(account)

    def accept_consent(self, account) -> dict:
        account.consent_accepted = True
        account.consent_date = self.now()
        self._audit("CONSENT_ACCEPTED", account)
        self.session.commit()
        return self.accounts.serialize(account)

    def unlock(self, account, actor=None) -> None:
        account.login_attempts = 0
        account.locked_until = None
        account.lockout_count = 0
        self._audit(
            "ACCOUNT_UNLOCKED",
            account,
            metadata={"by_admin": actor.id if actor is not None else None},
        )
        self.session.commit()

    def set_active(self, account, active: bool, actor=None) -> int:
        """Activates or deactivates an account; deactivation ends its sessions."""
        account.is_active = bool(active)
        revoked = 0
        if not account.is_active:
            revoked = self._revoke_refresh_tokens(self.accounts.account_type, account.id, self.now())
        self._audit(
            "ACCOUNT_ACTIVATED" if account.is_active else "ACCOUNT_DEACTIVATED",
            account,
            metadata={"by_admin": actor.id if actor is not None else None, "revoked_refresh_tokens": revoked},
        )
        self.session.commit()
        return revoked

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _check_policy(self, password):
        valid, problems = validate_password(password)
        if not valid:
            raise AuthError(errors.WEAK_PASSWORD, details=problems)

    def _issue_code(self, account, purpose, ttl_minutes, now) -> str:
        # only the newest code of a purpose is ever honored
        (
            self.session.query(SecondFactorToken)
            .filter_by(
                account_type=self.accounts.account_type,
                account_id=account.id,
                purpose=purpose,
                used=False,
            )
            .update({"used": True}, synchronize_session=False)
        )

        code = generate_code(self.config.get("OTP_LENGTH", 6))
        self.session.add(SecondFactorToken(
            account_type=self.accounts.account_type,
            account_id=account.id,
            purpose=purpose,
            code_hash=hash_code(code),
            created_at=now,
            expires_at=now + timedelta(minutes=ttl_minutes),
        ))
        return code

    def _latest_unused(self, account_type, purpose, code, account_id=None):
        if not code:
            return None
        q = self.session.query(SecondFactorToken).filter_by(
            account_type=account_type,
            purpose=purpose,
            used=False,
            code_hash=hash_code(code),
        )
        if account_id is not None:
            q = q.filter_by(account_id=account_id)
        return q.order_by(SecondFactorToken.created_at.desc(), SecondFactorToken.id.desc()).first()

    def _access_token(self, accounts, account) -> str:
        return encode_token(
            self.config,
            TOKEN_TYPE_ACCESS,
            accounts.claims(account),
            timedelta(minutes=self.config.get("JWT_ACCESS_TTL_MINUTES", 1440)),
        )

    def _issue_session(self, accounts, account) -> SessionTokens:
        lifetime = timedelta(days=self.config.get("JWT_REFRESH_TTL_DAYS", 7))
        jti = new_jti()
        refresh = encode_token(
            self.config,
            TOKEN_TYPE_REFRESH,
            {"sub": str(account.id), "account_type": accounts.account_type},
            lifetime,
            jti=jti,
        )
        self.session.add(RefreshToken(
            account_type=accounts.account_type,
            account_id=account.id,
            jti=jti,
            expires_at=self.now() + lifetime,
        ))
        return SessionTokens(
            token=self._access_token(accounts, account),
            refresh_token=refresh,
            user=accounts.serialize(account),
        )

    def _revoke_refresh_tokens(self, account_type, account_id, now) -> int:
        return (
            self.session.query(RefreshToken)
            .filter_by(account_type=account_type, account_id=account_id, is_active=True)
            .update({"is_active": False, "revoked_at": now}, synchronize_session=False)
        )

    def _audit(self, action, account=None, account_type=None, metadata=None):
        log_event(
            action,
            account_type=account_type or self.accounts.account_type,
            account_id=account.id if account is not None else None,
            metadata=metadata,
            session=self.session,
            commit=False,
        )
