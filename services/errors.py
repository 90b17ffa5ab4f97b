USER_NOT_FOUND = "USER_NOT_FOUND"
INVALID_PASSWORD = "INVALID_PASSWORD"
ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
INVALID_TEMP_TOKEN = "INVALID_TEMP_TOKEN"
INVALID_2FA_TOKEN = "INVALID_2FA_TOKEN"
EXPIRED_2FA_TOKEN = "EXPIRED_2FA_TOKEN"
INVALID_RESET_TOKEN = "INVALID_RESET_TOKEN"
EXPIRED_RESET_TOKEN = "EXPIRED_RESET_TOKEN"
DUPLICATE_CPF = "DUPLICATE_CPF"
DUPLICATE_EMAIL = "DUPLICATE_EMAIL"
INVALID_CURRENT_PASSWORD = "INVALID_CURRENT_PASSWORD"
INVALID_REFRESH_TOKEN = "INVALID_REFRESH_TOKEN"
WEAK_PASSWORD = "WEAK_PASSWORD"

# HTTP status the API answers with for each code
STATUS_BY_CODE = {
    USER_NOT_FOUND: 401,
    INVALID_PASSWORD: 401,
    INVALID_TEMP_TOKEN: 401,
    INVALID_REFRESH_TOKEN: 401,
    ACCOUNT_LOCKED: 423,
    INVALID_2FA_TOKEN: 400,
    EXPIRED_2FA_TOKEN: 400,
    INVALID_RESET_TOKEN: 400,
    EXPIRED_RESET_TOKEN: 400,
    INVALID_CURRENT_PASSWORD: 400,
    WEAK_PASSWORD: 400,
    DUPLICATE_CPF: 409,
    DUPLICATE_EMAIL: 409,
}

DEFAULT_MESSAGES = {
    USER_NOT_FOUND: "CPF não encontrado. Verifique e tente novamente.",
    INVALID_PASSWORD: "Senha inválida. Tente novamente.",
    ACCOUNT_LOCKED: (
        "Conta temporariamente bloqueada devido a múltiplas tentativas de login inválidas. "
        "Tente novamente em alguns minutos."
    ),
    INVALID_TEMP_TOKEN: "Token temporário inválido",
    INVALID_2FA_TOKEN: "O código informado está incorreto.",
    EXPIRED_2FA_TOKEN: "Este código expirou. Solicite um novo para continuar.",
    INVALID_RESET_TOKEN: "O código informado está incorreto ou expirado. Clique em reenviar para gerar um novo.",
    EXPIRED_RESET_TOKEN: "O código informado está incorreto ou expirado. Clique em reenviar para gerar um novo.",
    DUPLICATE_CPF: "CPF já cadastrado",
    DUPLICATE_EMAIL: "E-mail já cadastrado",
    INVALID_CURRENT_PASSWORD: "Senha atual incorreta",
    INVALID_REFRESH_TOKEN: "Refresh token inválido",
    WEAK_PASSWORD: "A senha não atende à política de segurança",
}


class AuthError(Exception):
    """Domain failure of the authentication flow, identified by ``code``."""

    def __init__(self, code: str, message: str = None, details=None, retry_after=None):
        self.code = code
        self.message = message or DEFAULT_MESSAGES.get(code, code)
        self.details = details
        self.retry_after = retry_after
        super().__init__(self.message)

    @property
    def status(self) -> int:
        return STATUS_BY_CODE.get(self.code, 400)
