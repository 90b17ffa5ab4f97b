from .db import db
from .patient import Patient
from .admin import Admin, ADMIN_ROLES
from .token import SecondFactorToken, PURPOSE_2FA, PURPOSE_RECOVERY
from .refresh_token import RefreshToken
from .audit_log import AuditLog
from .ip_rate_limit import IpRateLimit
