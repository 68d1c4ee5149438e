"""Exception taxonomy for mock-runtime."""

from __future__ import annotations


class MockRuntimeError(Exception):
    """Base class for every error raised by mock-runtime."""


class InvalidHandlerError(MockRuntimeError, TypeError):
    """Raised at declaration time when handlers or masks are malformed."""


class UnhandledRequestError(MockRuntimeError):
    """Raised by the ``error`` unhandled-request policy."""

    def __init__(self, method: str, url: str) -> None:
        super().__init__(
            f"Captured a request without a matching request handler: {method} {url}. "
            "Declare a handler for it or change the unhandled request policy."
        )
        self.method = method
        self.url = url


class ConfigError(MockRuntimeError):
    """Raised when a handler configuration file cannot be loaded."""
