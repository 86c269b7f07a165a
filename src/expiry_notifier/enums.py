"""
Enumeration types for the expiry notifier.

These enums provide type-safe constants for channels, statuses and
configuration options throughout the system.
"""

from enum import Enum


class ChannelTag(Enum):
    """Notification channel identifiers, in canonical resolution order."""

    TELEGRAM = "telegram"
    WECHAT = "wechat"
    QQ = "qq"
    WEBHOOK = "webhook"
    EMAIL = "email"


class Cadence(Enum):
    """Notification interval chosen in the persisted settings."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class CredentialSource(Enum):
    """Where the credentials of an active channel came from."""

    OVERRIDE = "override"
    PERSISTED = "persisted"
    DEFAULT = "default"


class MessageFormat(Enum):
    """Body format of a rendered message."""

    TEXT = "text"
    HTML = "html"


class DispatchStatus(Enum):
    """Outcome of a single channel delivery."""

    SUCCESS = "success"
    FAILURE = "failure"


class DispatchState(Enum):
    """Terminal shape of a dispatch run."""

    DISABLED = "disabled"
    NOTHING_EXPIRING = "nothing_expiring"
    NO_ACTIVE_CHANNELS = "no_active_channels"
    DISPATCHED = "dispatched"


class AuditStatus(Enum):
    """Status attached to an audit event."""

    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
