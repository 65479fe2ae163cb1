"""
Pydantic models for authentication endpoints.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    auth_token: str = Field(..., min_length=1)


class OperatorInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str


class LoginData(BaseModel):
    """Response data for a successful login."""

    token: str
    expires_at: datetime
    user: OperatorInfo
