"""
Reference implementations of the collaborator ports.

The JSON stores read the domain tracker's export and settings documents as
they come out of its API: dates may carry a time part, numbers and booleans
may be strings, and the method list may itself be JSON-encoded.
"""

import json
import os
from datetime import date
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from .config import (
    CredentialSet,
    EmailCredentials,
    QQCredentials,
    TelegramCredentials,
    WebhookCredentials,
    WeChatCredentials,
)
from .enums import Cadence, ChannelTag
from .exceptions import ConfigurationError
from .models import DomainRecord, WarningPolicy

DEFAULT_WARNING_DAYS = 15

# Operator override variables, per channel
ENV_TELEGRAM_BOT_TOKEN = "TG_BOT_TOKEN"
ENV_TELEGRAM_CHAT_ID = "TG_USER_ID"
ENV_WECHAT_SEND_KEY = "WECHAT_SENDKEY"
ENV_QMSG_KEY = "QMSG_KEY"
ENV_QMSG_QQ = "QMSG_QQ"
ENV_WEBHOOK_URL = "WEBHOOK_URL"
ENV_NOTIFY_EMAIL = "NOTIFY_EMAIL"


class InMemoryDomainStore:
    """Domain store backed by a list."""

    def __init__(self, domains: Sequence[DomainRecord] = ()) -> None:
        self._domains = list(domains)

    def list_domains(self) -> list[DomainRecord]:
        return list(self._domains)


class InMemorySettingsStore:
    """Settings store backed by fixed values."""

    def __init__(
        self,
        policy: Optional[WarningPolicy] = None,
        credentials: Optional[CredentialSet] = None,
    ) -> None:
        self._policy = policy or WarningPolicy()
        self._credentials = credentials or CredentialSet()

    def get_warning_policy(self) -> WarningPolicy:
        return self._policy

    def get_persisted_credentials(self) -> CredentialSet:
        return self._credentials


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def parse_date(value: Any, field_name: str) -> date:
    """
    Parse a tracker date ('2025-03-01' or '2025-03-01T00:00:00Z').

    Raises:
        ConfigurationError: If the value is not a calendar date
    """
    if isinstance(value, date):
        return value
    text = _text(value)
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        raise ConfigurationError(
            code="invalid_date",
            message=f"{field_name} is not a valid date: {value!r}",
            details={"field": field_name, "value": repr(value)},
        )


def parse_domain(entry: Mapping[str, Any]) -> DomainRecord:
    """Build a DomainRecord from one exported domain object."""
    if not isinstance(entry, Mapping):
        raise ConfigurationError(
            code="invalid_domain",
            message=f"Domain entry must be an object, got {type(entry).__name__}",
        )
    name = _text(entry.get("domain") or entry.get("name"))
    if not name:
        raise ConfigurationError(
            code="invalid_domain",
            message="Domain entry has no name",
            details={"entry": dict(entry)},
        )

    expires_on = parse_date(entry.get("expire_date"), "expire_date")
    register_raw = entry.get("register_date")
    registered_on = parse_date(register_raw, "register_date") if register_raw else expires_on

    return DomainRecord(
        name=name,
        registrar=_text(entry.get("registrar")),
        registered_on=registered_on,
        expires_on=expires_on,
        renewal_url=_text(entry.get("renewUrl")) or None,
    )


def _parse_bool(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    text = _text(value).lower()
    if text in ("true", "1", "yes", "on"):
        return True
    if text in ("false", "0", "no", "off"):
        return False
    raise ConfigurationError(
        code="invalid_setting",
        message=f"{field_name} must be a boolean, got {value!r}",
        details={"field": field_name},
    )


def _parse_warning_days(value: Any) -> int:
    if value is None or value == "":
        return DEFAULT_WARNING_DAYS
    if isinstance(value, bool):
        raise ConfigurationError(
            code="invalid_setting",
            message=f"warningDays must be an integer, got {value!r}",
            details={"field": "warningDays"},
        )
    try:
        days = int(_text(value))
    except ValueError:
        raise ConfigurationError(
            code="invalid_setting",
            message=f"warningDays must be an integer, got {value!r}",
            details={"field": "warningDays"},
        )
    if days < 0:
        raise ConfigurationError(
            code="invalid_setting",
            message=f"warningDays must be >= 0, got {days}",
            details={"field": "warningDays"},
        )
    return days


def _parse_cadence(value: Any) -> Cadence:
    text = _text(value).lower() or Cadence.DAILY.value
    try:
        return Cadence(text)
    except ValueError:
        raise ConfigurationError(
            code="invalid_setting",
            message=f"notificationInterval must be daily, weekly or monthly, got {value!r}",
            details={"field": "notificationInterval"},
        )


def parse_methods(value: Any) -> tuple[ChannelTag, ...]:
    """
    Parse the configured notification methods.

    Accepts a list or a JSON-encoded list; unknown method names are dropped.
    """
    if value is None or value == "":
        return ()
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            raise ConfigurationError(
                code="invalid_setting",
                message=f"notificationMethods is not valid JSON: {value!r}",
                details={"field": "notificationMethods"},
            )
    if not isinstance(value, list):
        raise ConfigurationError(
            code="invalid_setting",
            message=f"notificationMethods must be a list, got {type(value).__name__}",
            details={"field": "notificationMethods"},
        )

    known = {tag.value: tag for tag in ChannelTag}
    methods = []
    for name in value:
        tag = known.get(_text(name).lower())
        if tag is not None and tag not in methods:
            methods.append(tag)
    return tuple(methods)


def parse_policy(settings: Mapping[str, Any]) -> WarningPolicy:
    """Build the WarningPolicy from a settings document."""
    enabled_raw = settings.get("notificationEnabled")
    return WarningPolicy(
        warning_days=_parse_warning_days(settings.get("warningDays")),
        enabled=True if enabled_raw is None else _parse_bool(enabled_raw, "notificationEnabled"),
        cadence=_parse_cadence(settings.get("notificationInterval")),
    )


def parse_credentials(settings: Mapping[str, Any]) -> CredentialSet:
    """Build the persisted CredentialSet from a settings document."""
    telegram = wechat = qq = webhook = email = None

    bot_token = _text(settings.get("telegramBotToken"))
    chat_id = _text(settings.get("telegramChatId"))
    if bot_token or chat_id:
        telegram = TelegramCredentials(bot_token=bot_token, chat_id=chat_id)

    send_key = _text(settings.get("wechatSendKey"))
    if send_key:
        wechat = WeChatCredentials(send_key=send_key)

    qq_key = _text(settings.get("qqKey"))
    qq_number = _text(settings.get("qqNumber"))
    if qq_key or qq_number:
        qq = QQCredentials(key=qq_key, qq_number=qq_number)

    webhook_url = _text(settings.get("webhookUrl"))
    if webhook_url:
        webhook = WebhookCredentials(url=webhook_url)

    recipient = _text(settings.get("emailConfig"))
    if recipient:
        email = EmailCredentials(recipient=recipient)

    methods = settings.get("notificationMethods", settings.get("notificationMethod"))
    return CredentialSet(
        telegram=telegram,
        wechat=wechat,
        qq=qq,
        webhook=webhook,
        email=email,
        methods=parse_methods(methods),
    )


def _read_json(path: Path, what: str) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            code="parse_error",
            message=f"Failed to parse {what} file: {e}",
            details={"file_path": str(path)},
        )
    except OSError as e:
        raise ConfigurationError(
            code="io_error",
            message=f"Failed to read {what} file: {e}",
            details={"file_path": str(path)},
        )


class JsonDomainStore:
    """Domain store reading the tracker's JSON export."""

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path

    def list_domains(self) -> list[DomainRecord]:
        """
        Read every domain in the export.

        Accepts either a bare list or an object with a ``domains`` list.
        """
        data = _read_json(self._file_path, "domains")
        if isinstance(data, dict):
            data = data.get("domains", [])
        if not isinstance(data, list):
            raise ConfigurationError(
                code="parse_error",
                message="Domains file must contain a list of domains",
                details={"file_path": str(self._file_path)},
            )
        return [parse_domain(entry) for entry in data]


class JsonSettingsStore:
    """
    Settings store reading the tracker's notification settings document.

    A missing file means the user never saved settings; defaults apply.
    """

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path

    def _load(self) -> Mapping[str, Any]:
        if not self._file_path.exists():
            return {}
        data = _read_json(self._file_path, "settings")
        if isinstance(data, dict) and isinstance(data.get("settings"), dict):
            data = data["settings"]
        if not isinstance(data, dict):
            raise ConfigurationError(
                code="parse_error",
                message="Settings file must contain a JSON object",
                details={"file_path": str(self._file_path)},
            )
        return data

    def get_warning_policy(self) -> WarningPolicy:
        return parse_policy(self._load())

    def get_persisted_credentials(self) -> CredentialSet:
        return parse_credentials(self._load())


class EnvironmentOverrideSource:
    """Operator overrides read from environment variables at dispatch time."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        self._environ = environ

    def get_override_credentials(self) -> CredentialSet:
        env = self._environ if self._environ is not None else os.environ

        def var(name: str) -> str:
            return _text(env.get(name))

        telegram = wechat = qq = webhook = email = None
        if var(ENV_TELEGRAM_BOT_TOKEN) or var(ENV_TELEGRAM_CHAT_ID):
            telegram = TelegramCredentials(
                bot_token=var(ENV_TELEGRAM_BOT_TOKEN),
                chat_id=var(ENV_TELEGRAM_CHAT_ID),
            )
        if var(ENV_WECHAT_SEND_KEY):
            wechat = WeChatCredentials(send_key=var(ENV_WECHAT_SEND_KEY))
        if var(ENV_QMSG_KEY) or var(ENV_QMSG_QQ):
            qq = QQCredentials(key=var(ENV_QMSG_KEY), qq_number=var(ENV_QMSG_QQ))
        if var(ENV_WEBHOOK_URL):
            webhook = WebhookCredentials(url=var(ENV_WEBHOOK_URL))
        if var(ENV_NOTIFY_EMAIL):
            email = EmailCredentials(recipient=var(ENV_NOTIFY_EMAIL))

        return CredentialSet(
            telegram=telegram,
            wechat=wechat,
            qq=qq,
            webhook=webhook,
            email=email,
        )
