"""
Exception classes for the expiry notifier.

All exceptions inherit from ExpiryNotifierError and provide structured
error information with codes, messages, and optional details.
"""

from typing import Optional


class ExpiryNotifierError(Exception):
    """Base exception for all expiry notifier errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(ExpiryNotifierError):
    """Raised when a policy, settings document or config file is malformed."""

    pass


class ChannelError(ExpiryNotifierError):
    """
    Raised inside a channel adapter when delivery fails.

    Adapters catch it themselves and report a failed DeliveryResult, so it
    never reaches the dispatcher.
    """

    pass


class PersistenceError(ExpiryNotifierError):
    """Raised when persistence operations fail (file I/O, HMAC validation)."""

    pass


class TamperingError(PersistenceError):
    """Raised when HMAC validation fails, indicating data tampering."""

    pass
