from .account import AccountRepo
from .audit_log import AuditLogRepo
from .credential import CredentialRepo
from .tag import TagRepo

__all__ = [
    "AccountRepo",
    "AuditLogRepo",
    "CredentialRepo",
    "TagRepo",
]
