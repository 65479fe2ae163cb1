import enum
from http import HTTPStatus
from typing import Any


class ErrorType(enum.Enum):
    EMPTY_RESULT = "empty_result"
    ENTITY_ALREADY_EXISTS = "entity_already_exists"
    ENTITY_IN_USE = "entity_in_use"
    ENTITY_NOT_FOUND = "entity_not_found"
    FORBIDDEN = "forbidden"
    GATEWAY_ERROR = "gateway_error"
    GATEWAY_UNAVAILABLE = "gateway_unavailable"
    INVALID_DATA = "invalid_data"
    PERSISTENCE_ERROR = "persistence_error"
    UNHANDLED_EXCEPTION = "unhandled_exception"
    UNAUTHORIZED_USER = "unauthorized_user"
    UNSPECIFIED = "unspecified"


class BaseError(Exception):
    extra: dict[str, Any]

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.UNSPECIFIED,
        status_code: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.status_code = status_code
        self.extra = {}

        action = kwargs.get("action")
        if action:
            self.extra["action"] = action
        account_id = kwargs.get("account_id")
        if account_id:
            self.extra["account_id"] = account_id

    def __str__(self) -> str:
        return f"error: {self.error_type.value}; description: {self.message}"


class AuthError(BaseError):
    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.UNAUTHORIZED_USER,
        status_code: HTTPStatus = HTTPStatus.UNAUTHORIZED,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_type, status_code, **kwargs)


class ActionForbiddenError(BaseError):
    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.FORBIDDEN,
        status_code: HTTPStatus = HTTPStatus.FORBIDDEN,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_type, status_code, **kwargs)


class EntityAlreadyExistError(BaseError):
    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.ENTITY_ALREADY_EXISTS,
        status_code: HTTPStatus = HTTPStatus.BAD_REQUEST,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_type, status_code, **kwargs)


class EntityInUseError(BaseError):
    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.ENTITY_IN_USE,
        status_code: HTTPStatus = HTTPStatus.BAD_REQUEST,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_type, status_code, **kwargs)


class EntityNotFoundError(BaseError):
    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.ENTITY_NOT_FOUND,
        status_code: HTTPStatus = HTTPStatus.NOT_FOUND,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_type, status_code, **kwargs)


class InvalidDataError(BaseError):
    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.INVALID_DATA,
        status_code: HTTPStatus = HTTPStatus.BAD_REQUEST,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_type, status_code, **kwargs)


class TransactionError(BaseError):
    def __init__(
        self,
        message: str,
        error_type: ErrorType,
        status_code: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_type, status_code, **kwargs)


class PersistenceError(TransactionError):
    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, ErrorType.PERSISTENCE_ERROR, **kwargs)


class ActionError(BaseError):
    """Base class for failures of calls to the remote mail gateway."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.GATEWAY_ERROR,
        status_code: HTTPStatus = HTTPStatus.BAD_GATEWAY,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_type, status_code, **kwargs)

    def annotate(self, prefix: str) -> "ActionError":
        """Prefix the message with extra context, e.g. the mailbox address the call was made for."""
        self.message = f"{prefix}: {self.message}"
        self.args = (self.message,)
        return self


class GatewayError(ActionError):
    """The gateway answered, but with a non-200 status, an unreadable body or an explicit error."""

    def __init__(self, message: str, remote_status: int | None = None, body: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.remote_status = remote_status
        self.body = body
        if remote_status is not None:
            self.extra["remote_status"] = remote_status


class TransportError(ActionError):
    """The gateway could not be reached or did not answer in time."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, ErrorType.GATEWAY_UNAVAILABLE, HTTPStatus.GATEWAY_TIMEOUT, **kwargs)


class EmptyResultError(ActionError):
    """The gateway returned an empty message list where one message was expected."""

    def __init__(self, message: str = "no messages found", **kwargs: Any) -> None:
        super().__init__(message, ErrorType.EMPTY_RESULT, HTTPStatus.NOT_FOUND, **kwargs)
