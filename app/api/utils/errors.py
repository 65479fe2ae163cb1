from typing import Any

from fastapi.responses import JSONResponse

from app.api.payloads.error import APIError


def create_error_response(error_type: str, message: str | None, status_code: int) -> JSONResponse:
    """
    Create a structured error response.

    Args:
        error_type: Machine readable error kind (e.g., "invalid_data", "gateway_error")
        message: Human-readable error message
        status_code: HTTP status code

    Returns:
        JSONResponse with the error envelope
    """
    error_response = APIError(error=error_type, error_description=message)
    return JSONResponse(status_code=status_code, content=error_response.model_dump())


def error_responses(*status_codes: int) -> dict[int | str, dict[str, Any]]:
    """OpenAPI `responses` entries documenting the error envelope for the given statuses."""
    descriptions = {
        400: "Invalid request or duplicate entity",
        401: "Missing, invalid or expired session token",
        403: "Entity belongs to another account",
        404: "Entity not found",
        502: "Mail gateway returned an error",
        504: "Mail gateway unreachable or timed out",
    }
    return {code: {"model": APIError, "description": descriptions.get(code, "Error")} for code in status_codes}
