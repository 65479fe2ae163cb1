"""
Response envelope shared by every endpoint.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

DataT = TypeVar("DataT")


class APIResponse(BaseModel, Generic[DataT]):
    """Successful response envelope."""

    success: bool = Field(True, description="Always true for successful responses")
    message: str = Field("", description="Human readable outcome")
    data: DataT | None = None


class IdListRequest(BaseModel):
    """Request model carrying a list of credential identifiers."""

    email_ids: list[int] = Field(..., min_length=1, description="Identifiers of stored credentials")
