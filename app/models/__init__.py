from .account import Account
from .audit_log import AuditLog, OperationType, TargetType
from .base import Base
from .credential import Credential
from .tag import Tag, credential_tags

__all__ = [
    "Base",
    "Account",
    "AuditLog",
    "Credential",
    "OperationType",
    "Tag",
    "TargetType",
    "credential_tags",
]
