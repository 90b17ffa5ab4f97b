from .errors import AuthError
from .accounts import AccountAdapter, PatientAccounts, AdminAccounts, adapter_for
from .auth_service import AuthService, LoginChallenge, SessionTokens
