"""Errors raised by the notification client."""

from __future__ import annotations


class NotificationClientError(RuntimeError):
    """Base class for every error raised by the notification client."""


class ConfigurationError(NotificationClientError):
    """Raised when the configured endpoints cannot be used."""


class TransportUnavailableError(NotificationClientError):
    """Raised when the websocket transport cannot run in the current context."""


class TokenExpiredError(NotificationClientError):
    """Raised when ``connect`` receives a token whose expiry already passed."""


class InvalidTransitionError(NotificationClientError):
    """Raised when the connection state machine receives an illegal event."""

    def __init__(self, status: object, event: object) -> None:
        super().__init__(f"Cannot apply {event!s} while {status!s}")
        self.status = status
        self.event = event


class ApiError(NotificationClientError):
    """Raised when a REST collaborator call fails."""

    def __init__(self, status_code: int | None, detail: str) -> None:
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


__all__ = [
    "NotificationClientError",
    "ConfigurationError",
    "TransportUnavailableError",
    "TokenExpiredError",
    "InvalidTransitionError",
    "ApiError",
]
