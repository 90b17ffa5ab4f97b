import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _to_bool(val, default: bool = False) -> bool:
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    ENV_NAME = "base"

    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")
    JWT_SECRET = os.getenv("JWT_SECRET", SECRET_KEY)
    JWT_ALGORITHM = "HS256"

    # SQLite database file stored next to the app as exam_portal.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "exam_portal.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Token lifetimes
    JWT_ACCESS_TTL_MINUTES = int(os.getenv("JWT_ACCESS_TTL_MINUTES", "1440"))  # 24 hours
    JWT_REFRESH_TTL_DAYS = int(os.getenv("JWT_REFRESH_TTL_DAYS", "7"))
    TEMP_TOKEN_TTL_MINUTES = 10

    # One-time codes
    TWO_FACTOR_TTL_MINUTES = 5
    RECOVERY_TTL_MINUTES = 15
    OTP_LENGTH = 6

    # Fixed code accepted at 2FA verification without a stored token.
    # Never set outside development.
    TWO_FACTOR_BYPASS_CODE = None

    # Brute-force protection
    MAX_LOGIN_ATTEMPTS = 5
    LOCKOUT_SCHEDULE_MINUTES = [5, 15, 30, 60, 120]

    # Per-IP fixed windows
    LOGIN_RATE_WINDOW_SECONDS = 15 * 60
    LOGIN_RATE_MAX_REQUESTS = 5
    RECOVERY_RATE_WINDOW_SECONDS = 60 * 60
    RECOVERY_RATE_MAX_REQUESTS = 3
    CODE_RATE_WINDOW_SECONDS = 15 * 60
    CODE_RATE_MAX_REQUESTS = 10

    # Number of reverse proxies in front of the app whose X-Forwarded-For is
    # trusted. 0 keys rate limits on the socket peer address.
    TRUSTED_PROXY_COUNT = int(os.getenv("TRUSTED_PROXY_COUNT", "0"))

    # bcrypt cost
    BCRYPT_ROUNDS = 12

    # Password policy
    PASSWORD_MIN_LEN = int(os.getenv("PASSWORD_MIN_LEN", "8"))
    PASSWORD_MAX_LEN = 128
    PASSWORD_REQUIRE_UPPER = False
    PASSWORD_REQUIRE_LOWER = False
    PASSWORD_REQUIRE_LETTER = True
    PASSWORD_REQUIRE_DIGIT = True
    PASSWORD_REQUIRE_SYMBOL = False

    # Email (SMTP) for 2FA / recovery codes
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = _to_bool(os.getenv("SMTP_USE_TLS"), True)

    # Basic app settings
    DEBUG = False
    TESTING = False


class DevelopmentConfig(Config):
    ENV_NAME = "development"
    DEBUG = True
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

    # opt-in only, e.g. TWO_FACTOR_BYPASS_CODE=123456 for local runs
    TWO_FACTOR_BYPASS_CODE = os.getenv("TWO_FACTOR_BYPASS_CODE") or None

    LOGIN_RATE_WINDOW_SECONDS = 60
    LOGIN_RATE_MAX_REQUESTS = 50


class TestingConfig(Config):
    ENV_NAME = "testing"
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    JWT_SECRET = "test-jwt-secret-with-enough-bytes-for-hs256"
    BCRYPT_ROUNDS = 4

    LOGIN_RATE_MAX_REQUESTS = 1000
    RECOVERY_RATE_MAX_REQUESTS = 1000
    CODE_RATE_MAX_REQUESTS = 1000


class ProductionConfig(Config):
    ENV_NAME = "production"
    SECRET_KEY = os.getenv("SECRET_KEY")
    JWT_SECRET = os.getenv("JWT_SECRET") or os.getenv("SECRET_KEY")
    TWO_FACTOR_BYPASS_CODE = None


CONFIGS = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config(name=None):
    """Config class for ``name`` or ``APP_ENV``; production when neither is set."""
    name = (name or os.getenv("APP_ENV") or "production").strip().lower()
    if name not in CONFIGS:
        raise ValueError(f"Unknown APP_ENV {name!r}; expected one of {sorted(CONFIGS)}")
    return CONFIGS[name]
