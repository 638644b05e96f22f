"""Brigade Observer exception hierarchy."""

from typing import Any


class ObserverError(Exception):
    """Base exception for all Observer errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ConfigurationError(ObserverError):
    """Error in Observer configuration."""

    def __init__(self, message: str, variable: str | None = None) -> None:
        super().__init__(message, {"variable": variable} if variable else None)
        self.variable = variable


class WatchError(ObserverError):
    """A pod watch could not be established or was denied."""

    def __init__(self, message: str, selector: str, status: int | None = None) -> None:
        details: dict[str, Any] = {"selector": selector}
        if status is not None:
            details["status"] = status
        super().__init__(message, details)
        self.selector = selector
        self.status = status


class HealthcheckError(ObserverError):
    """A dependency of the Observer failed its healthcheck."""

    def __init__(self, message: str, check: str) -> None:
        super().__init__(message, {"check": check})
        self.check = check


class APIError(ObserverError):
    """Base error for failed Brigade API calls."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code


class APIConnectionError(APIError):
    """The Brigade API server could not be reached."""


class BadRequestError(APIError):
    """The API server rejected the request as invalid."""


class AuthenticationError(APIError):
    """The API server could not authenticate the request."""


class AuthorizationError(APIError):
    """The request is not authorized."""


class NotFoundError(APIError):
    """A resource presumed to exist could not be located."""


class ConflictError(APIError):
    """The request conflicts with the stored state of the resource."""


class InternalServerError(APIError):
    """The API server encountered an unexpected error."""


class NotSupportedError(APIError):
    """The API server explicitly does not support the request."""


API_ERRORS_BY_STATUS: dict[int, type[APIError]] = {
    400: BadRequestError,
    401: AuthenticationError,
    403: AuthorizationError,
    404: NotFoundError,
    409: ConflictError,
    500: InternalServerError,
    501: NotSupportedError,
}
