from pydantic import BaseModel


class APIError(BaseModel):
    """Error response model rendered by the application exception handlers."""

    success: bool = False
    error: str
    error_description: str | None = None
