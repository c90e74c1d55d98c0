"""
Error types shared across the EchoMind service.
"""


class EchoMindError(Exception):
    """Base class for errors raised by the EchoMind package."""


class ValidationError(EchoMindError, ValueError):
    """User input was empty or otherwise invalid and was not submitted."""


class ExternalServiceError(EchoMindError):
    """The text-generation service failed or returned an unusable response."""


class AuthError(EchoMindError):
    """Sign-up or sign-in was rejected by the identity provider."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
