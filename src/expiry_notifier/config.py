"""
Configuration dataclasses for the expiry notifier.

This module defines channel credentials, the per-source credential sets that
the channel resolver merges, and the operator-level system configuration
(retry, delivery timeouts, SMTP relay, persistence and logging), together
with JSON file loading and saving.
"""

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional

from .enums import ChannelTag
from .exceptions import ConfigurationError


class _Credentials:
    """Shared completeness checks for channel credentials."""

    channel: ChannelTag

    def missing_fields(self) -> list[str]:
        """Names of required fields that are empty."""
        return [
            f.name
            for f in fields(self)
            if not (getattr(self, f.name) or "").strip()
        ]

    def is_complete(self) -> bool:
        """True when every required field is non-empty."""
        return not self.missing_fields()


@dataclass(frozen=True)
class TelegramCredentials(_Credentials):
    """Telegram bot credentials."""

    bot_token: str = ""
    chat_id: str = ""

    channel = ChannelTag.TELEGRAM


@dataclass(frozen=True)
class WeChatCredentials(_Credentials):
    """ServerChan (WeChat push) credentials."""

    send_key: str = ""

    channel = ChannelTag.WECHAT


@dataclass(frozen=True)
class QQCredentials(_Credentials):
    """Qmsg (QQ push) credentials."""

    key: str = ""
    qq_number: str = ""

    channel = ChannelTag.QQ


@dataclass(frozen=True)
class WebhookCredentials(_Credentials):
    """Generic webhook target."""

    url: str = ""

    channel = ChannelTag.WEBHOOK


@dataclass(frozen=True)
class EmailCredentials(_Credentials):
    """Email recipient."""

    recipient: str = ""

    channel = ChannelTag.EMAIL


@dataclass(frozen=True)
class CredentialSet:
    """
    Channel credentials from a single source (override or persisted).

    Every channel is independently optional. ``methods`` lists the channels
    the persisted settings explicitly name as configured notification
    methods; override sources leave it empty.
    """

    telegram: Optional[TelegramCredentials] = None
    wechat: Optional[WeChatCredentials] = None
    qq: Optional[QQCredentials] = None
    webhook: Optional[WebhookCredentials] = None
    email: Optional[EmailCredentials] = None
    methods: tuple[ChannelTag, ...] = ()

    def get(self, channel: ChannelTag):
        """Return the credentials for a channel, or None."""
        return getattr(self, channel.value)

    def configured_channels(self) -> list[ChannelTag]:
        """Channels that have any credentials object at all."""
        return [tag for tag in ChannelTag if self.get(tag) is not None]


@dataclass
class RetryConfig:
    """Adapter-local retry behavior."""

    max_retries: int = 1
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 8.0
    retryable_status_codes: list[int] = field(
        default_factory=lambda: [429, 500, 502, 503, 504]
    )


@dataclass
class DeliveryConfig:
    """Timeouts for channel delivery."""

    timeout_seconds: float = 10.0
    deadline_seconds: float = 30.0


@dataclass
class SmtpConfig:
    """Operator-level SMTP relay used by the email channel."""

    host: str
    port: int = 587
    username: str = ""
    password: str = ""
    from_address: str = ""
    use_tls: bool = True


@dataclass
class PersistenceConfig:
    """Where per-session cadence state is kept."""

    cadence_file_path: Path
    hmac_secret: str


@dataclass
class LoggingConfig:
    """Logging and audit configuration."""

    output_format: str = "text"  # 'json', 'text', 'both'
    audit_mode: bool = False
    audit_signing_key: Optional[str] = None


@dataclass
class SystemConfig:
    """Main system configuration combining all sub-configurations."""

    retry: RetryConfig
    delivery: DeliveryConfig
    persistence: PersistenceConfig
    logging: LoggingConfig
    smtp: Optional[SmtpConfig] = None
    language: str = "zh"  # 'zh' or 'en'
    simulation_mode: bool = False


DEFAULT_HMAC_SECRET = "default-secret-change-me"

# Adapters make at most one transport-level retry
MAX_TRANSPORT_RETRIES = 1


def default_cadence_path() -> Path:
    return Path.home() / ".expiry_notifier" / "cadence.json"


def create_default_config(
    simulation_mode: bool = False,
    language: str = "zh",
    cadence_file: Optional[Path] = None,
    hmac_secret: str = DEFAULT_HMAC_SECRET,
) -> SystemConfig:
    """
    Create a default system configuration.

    Args:
        simulation_mode: Enable simulation mode (no real deliveries)
        language: Message language ('zh' or 'en')
        cadence_file: Path to the cadence state file
        hmac_secret: Secret for HMAC protection of the cadence file

    Returns:
        SystemConfig with default settings
    """
    return SystemConfig(
        retry=RetryConfig(),
        delivery=DeliveryConfig(),
        persistence=PersistenceConfig(
            cadence_file_path=cadence_file or default_cadence_path(),
            hmac_secret=hmac_secret,
        ),
        logging=LoggingConfig(),
        smtp=None,
        language=language,
        simulation_mode=simulation_mode,
    )


def load_config_from_file(config_path: Path) -> Optional[SystemConfig]:
    """
    Load configuration from a JSON file.

    Args:
        config_path: Path to the configuration file

    Returns:
        SystemConfig if the file exists, None otherwise

    Raises:
        ConfigurationError: If the file exists but cannot be parsed
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except (json.JSONDecodeError, OSError) as e:
        raise ConfigurationError(
            code="config_unreadable",
            message=f"Could not read config file: {e}",
            details={"path": str(config_path)},
        )

    try:
        retry_data = data.get("retry", {})
        retry = RetryConfig(
            max_retries=int(retry_data.get("max_retries", 1)),
            base_delay_seconds=float(retry_data.get("base_delay_seconds", 1.0)),
            max_delay_seconds=float(retry_data.get("max_delay_seconds", 8.0)),
        )

        delivery_data = data.get("delivery", {})
        delivery = DeliveryConfig(
            timeout_seconds=float(delivery_data.get("timeout_seconds", 10.0)),
            deadline_seconds=float(delivery_data.get("deadline_seconds", 30.0)),
        )

        persistence_data = data.get("persistence", {})
        cadence_file_path = persistence_data.get("cadence_file_path")
        persistence = PersistenceConfig(
            cadence_file_path=Path(cadence_file_path) if cadence_file_path else default_cadence_path(),
            hmac_secret=persistence_data.get("hmac_secret", DEFAULT_HMAC_SECRET),
        )

        logging_data = data.get("logging", {})
        logging_config = LoggingConfig(
            output_format=logging_data.get("output_format", "text"),
            audit_mode=bool(logging_data.get("audit_mode", False)),
            audit_signing_key=logging_data.get("audit_signing_key"),
        )

        smtp = None
        smtp_data = data.get("smtp") or {}
        if smtp_data.get("host"):
            smtp = SmtpConfig(
                host=smtp_data["host"],
                port=int(smtp_data.get("port", 587)),
                username=smtp_data.get("username", ""),
                password=smtp_data.get("password", ""),
                from_address=smtp_data.get("from_address", ""),
                use_tls=bool(smtp_data.get("use_tls", True)),
            )
    except (AttributeError, TypeError, ValueError) as e:
        raise ConfigurationError(
            code="config_invalid",
            message=f"Invalid config file: {e}",
            details={"path": str(config_path)},
        )

    language = data.get("language", "zh")
    if language not in ("zh", "en"):
        raise ConfigurationError(
            code="config_invalid",
            message=f"Unsupported language: {language!r}",
            details={"path": str(config_path)},
        )
    if logging_config.output_format not in ("json", "text", "both"):
        raise ConfigurationError(
            code="config_invalid",
            message=f"Invalid logging output_format: {logging_config.output_format!r}",
            details={"path": str(config_path)},
        )
    _check_limits(retry, delivery, config_path)

    return SystemConfig(
        retry=retry,
        delivery=delivery,
        persistence=persistence,
        logging=logging_config,
        smtp=smtp,
        language=language,
        simulation_mode=bool(data.get("simulation_mode", False)),
    )


def save_config_to_file(config: SystemConfig, config_path: Path) -> None:
    """
    Save configuration to a JSON file.

    Args:
        config: SystemConfig to save
        config_path: Path to save the configuration

    Raises:
        ConfigurationError: If the file cannot be written
    """
    data = {
        "retry": {
            "max_retries": config.retry.max_retries,
            "base_delay_seconds": config.retry.base_delay_seconds,
            "max_delay_seconds": config.retry.max_delay_seconds,
        },
        "delivery": {
            "timeout_seconds": config.delivery.timeout_seconds,
            "deadline_seconds": config.delivery.deadline_seconds,
        },
        "persistence": {
            "cadence_file_path": str(config.persistence.cadence_file_path),
            "hmac_secret": config.persistence.hmac_secret,
        },
        "logging": {
            "output_format": config.logging.output_format,
            "audit_mode": config.logging.audit_mode,
            "audit_signing_key": config.logging.audit_signing_key,
        },
        "smtp": {
            "host": config.smtp.host,
            "port": config.smtp.port,
            "username": config.smtp.username,
            "password": config.smtp.password,
            "from_address": config.smtp.from_address,
            "use_tls": config.smtp.use_tls,
        } if config.smtp else None,
        "language": config.language,
        "simulation_mode": config.simulation_mode,
    }

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
    except OSError as e:
        raise ConfigurationError(
            code="config_unwritable",
            message=f"Could not write config file: {e}",
            details={"path": str(config_path)},
        )


def _check_limits(retry: RetryConfig, delivery: DeliveryConfig, config_path: Path) -> None:
    """Reject retry budgets and timings the adapters cannot honor."""
    problems = []
    if not 0 <= retry.max_retries <= MAX_TRANSPORT_RETRIES:
        problems.append(f"retry.max_retries must be between 0 and {MAX_TRANSPORT_RETRIES}")
    if not retry.base_delay_seconds >= 0:
        problems.append("retry.base_delay_seconds must not be negative")
    if not retry.max_delay_seconds >= 0:
        problems.append("retry.max_delay_seconds must not be negative")
    if not delivery.timeout_seconds > 0:
        problems.append("delivery.timeout_seconds must be positive")
    if not delivery.deadline_seconds > 0:
        problems.append("delivery.deadline_seconds must be positive")

    if problems:
        raise ConfigurationError(
            code="config_invalid",
            message=f"Invalid config file: {'; '.join(problems)}",
            details={"path": str(config_path), "problems": problems},
        )
