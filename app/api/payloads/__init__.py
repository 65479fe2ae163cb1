"""
API models package for Pydantic response/request models.
"""

from .auth import LoginData, LoginRequest
from .common import APIResponse, IdListRequest
from .credentials import CredentialCreate, CredentialDetail, CredentialResponse, CredentialUpdate
from .error import APIError
from .messages import CanonicalMessage
from .tags import TagCreate, TagResponse, TagUpdate

__all__ = [
    "APIError",
    "APIResponse",
    "CanonicalMessage",
    "CredentialCreate",
    "CredentialDetail",
    "CredentialResponse",
    "CredentialUpdate",
    "IdListRequest",
    "LoginData",
    "LoginRequest",
    "TagCreate",
    "TagResponse",
    "TagUpdate",
]
