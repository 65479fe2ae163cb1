"""
Middleware for automatic database commits at the end of each request.
"""

import logging
from http import HTTPStatus
from typing import Awaitable, Callable

from fastapi import Request, Response
from fastapi_async_sqlalchemy import db
from fastapi_async_sqlalchemy.exceptions import MissingSessionError
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.utils.errors import create_error_response
from app.exceptions import ErrorType

logger = logging.getLogger(__name__)


class AutoCommitMiddleware(BaseHTTPMiddleware):
    """
    Commits the request's database session once the handler has produced a response.

    Handled application errors still produce a response, so audit entries recorded on
    the failure path are committed too. Unhandled exceptions roll the session back.
    A failed commit replaces the handler's response with a persistence error, since
    whatever the handler reported was never stored.
    """

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        try:
            response = await call_next(request)
        except Exception as e:
            await self._rollback(e)
            raise

        try:
            await db.session.commit()
            logger.debug("Database transaction committed successfully")
        except MissingSessionError:
            logger.debug("No database session found for request - skipping commit")
        except SQLAlchemyError as e:
            logger.exception(f"Failed to commit database transaction for {request.method} {request.url.path}")
            await self._rollback(e)
            return create_error_response(
                ErrorType.PERSISTENCE_ERROR.value,
                "Changes could not be saved, nothing was stored",
                HTTPStatus.INTERNAL_SERVER_ERROR,
            )
        return response

    @staticmethod
    async def _rollback(error: Exception) -> None:
        try:
            await db.session.rollback()
            logger.error(f"Database transaction rolled back due to error: {error}")
        except MissingSessionError:
            logger.debug("No database session found for rollback - skipping rollback")
        except Exception as rollback_error:
            logger.warning(f"Failed to rollback database transaction: {rollback_error}")
