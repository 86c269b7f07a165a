"""
Expiry Notifier - multi-channel domain expiry alerts.

This package decides which tracked domains are about to expire, resolves the
notification channels a user (or operator) has configured, and fans a single
alert out to all of them concurrently, at most once per day per session.
"""

__version__ = "0.1.0"
__author__ = "Expiry Notifier Team"

from expiry_notifier.exceptions import (
    ExpiryNotifierError,
    ConfigurationError,
    ChannelError,
    PersistenceError,
    TamperingError,
)
from expiry_notifier.enums import (
    ChannelTag,
    Cadence,
    CredentialSource,
    MessageFormat,
    DispatchStatus,
    DispatchState,
    AuditStatus,
    LogLevel,
)
from expiry_notifier.config import (
    TelegramCredentials,
    WeChatCredentials,
    QQCredentials,
    WebhookCredentials,
    EmailCredentials,
    CredentialSet,
    RetryConfig,
    DeliveryConfig,
    SmtpConfig,
    PersistenceConfig,
    LoggingConfig,
    SystemConfig,
    create_default_config,
    load_config_from_file,
    save_config_to_file,
)
from expiry_notifier.models import (
    DomainRecord,
    WarningPolicy,
    ExpiringDomain,
    ActiveChannel,
    RenderedMessage,
    DispatchOutcome,
    DispatchResult,
    CadenceState,
    AuditEvent,
)
from expiry_notifier.classifier import (
    days_until_expiry,
    is_expiring_soon,
    classify,
)
from expiry_notifier.channel_resolver import (
    resolve,
)
from expiry_notifier.rendering import (
    render_message,
    message_format_for,
)
from expiry_notifier.retry_manager import (
    RetryManager,
    RetryResult,
)
from expiry_notifier.notifications import (
    ChannelAdapter,
    DeliveryResult,
    TelegramChannel,
    WeChatChannel,
    QQChannel,
    WebhookChannel,
    EmailChannel,
    create_adapters,
)
from expiry_notifier.audit_logger import (
    AuditLogger,
    LogEntry,
)
from expiry_notifier.cadence import (
    CadenceGate,
)
from expiry_notifier.cadence_store import (
    CadenceFileStore,
    InMemoryCadenceRepository,
)
from expiry_notifier.stores import (
    InMemoryDomainStore,
    InMemorySettingsStore,
    JsonDomainStore,
    JsonSettingsStore,
    EnvironmentOverrideSource,
)
from expiry_notifier.dispatcher import (
    NotificationDispatcher,
)
from expiry_notifier.service import (
    NotificationService,
    ServiceResult,
)
from expiry_notifier.i18n import (
    get_message,
    get_all_message_keys,
    get_missing_translations,
    validate_translations,
    TRANSLATIONS,
    SUPPORTED_LANGUAGES,
    DEFAULT_LANGUAGE,
)
from expiry_notifier.cli import (
    main as cli_main,
    create_parser,
)

__all__ = [
    # Exceptions
    "ExpiryNotifierError",
    "ConfigurationError",
    "ChannelError",
    "PersistenceError",
    "TamperingError",
    # Enums
    "ChannelTag",
    "Cadence",
    "CredentialSource",
    "MessageFormat",
    "DispatchStatus",
    "DispatchState",
    "AuditStatus",
    "LogLevel",
    # Configuration
    "TelegramCredentials",
    "WeChatCredentials",
    "QQCredentials",
    "WebhookCredentials",
    "EmailCredentials",
    "CredentialSet",
    "RetryConfig",
    "DeliveryConfig",
    "SmtpConfig",
    "PersistenceConfig",
    "LoggingConfig",
    "SystemConfig",
    "create_default_config",
    "load_config_from_file",
    "save_config_to_file",
    # Models
    "DomainRecord",
    "WarningPolicy",
    "ExpiringDomain",
    "ActiveChannel",
    "RenderedMessage",
    "DispatchOutcome",
    "DispatchResult",
    "CadenceState",
    "AuditEvent",
    # Classifier
    "days_until_expiry",
    "is_expiring_soon",
    "classify",
    # Channel Resolver
    "resolve",
    # Rendering
    "render_message",
    "message_format_for",
    # Retry Manager
    "RetryManager",
    "RetryResult",
    # Notifications
    "ChannelAdapter",
    "DeliveryResult",
    "TelegramChannel",
    "WeChatChannel",
    "QQChannel",
    "WebhookChannel",
    "EmailChannel",
    "create_adapters",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # Cadence
    "CadenceGate",
    "CadenceFileStore",
    "InMemoryCadenceRepository",
    # Stores
    "InMemoryDomainStore",
    "InMemorySettingsStore",
    "JsonDomainStore",
    "JsonSettingsStore",
    "EnvironmentOverrideSource",
    # Dispatcher
    "NotificationDispatcher",
    "NotificationService",
    "ServiceResult",
    # I18n
    "get_message",
    "get_all_message_keys",
    "get_missing_translations",
    "validate_translations",
    "TRANSLATIONS",
    "SUPPORTED_LANGUAGES",
    "DEFAULT_LANGUAGE",
    # CLI
    "cli_main",
    "create_parser",
]
