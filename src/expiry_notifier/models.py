"""
Data models for the expiry notifier.

This module defines the domain records read from the tracker, the warning
policy, the derived expiring-domain view, dispatch outcomes and the
session-scoped cadence state.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Union

from .config import (
    EmailCredentials,
    QQCredentials,
    TelegramCredentials,
    WebhookCredentials,
    WeChatCredentials,
)
from .enums import (
    AuditStatus,
    Cadence,
    ChannelTag,
    CredentialSource,
    DispatchState,
    DispatchStatus,
    MessageFormat,
)
from .exceptions import ConfigurationError
from .i18n import DEFAULT_LANGUAGE, get_message


ChannelCredentials = Union[
    TelegramCredentials,
    WeChatCredentials,
    QQCredentials,
    WebhookCredentials,
    EmailCredentials,
]


@dataclass(frozen=True)
class DomainRecord:
    """A tracked domain as owned by the external domain store."""

    name: str
    registrar: str
    registered_on: date
    expires_on: date
    renewal_url: Optional[str] = None


@dataclass(frozen=True)
class WarningPolicy:
    """How far ahead to warn, and whether to warn at all."""

    warning_days: int = 15
    enabled: bool = True
    cadence: Cadence = Cadence.DAILY

    def validate(self) -> None:
        """
        Check the policy for programmer or settings errors.

        Raises:
            ConfigurationError: If any field has the wrong type or range
        """
        if isinstance(self.warning_days, bool) or not isinstance(self.warning_days, int):
            raise ConfigurationError(
                code="invalid_warning_days",
                message=f"warning_days must be an integer, got {self.warning_days!r}",
                details={"warning_days": repr(self.warning_days)},
            )
        if self.warning_days < 0:
            raise ConfigurationError(
                code="invalid_warning_days",
                message=f"warning_days must be >= 0, got {self.warning_days}",
                details={"warning_days": self.warning_days},
            )
        if not isinstance(self.enabled, bool):
            raise ConfigurationError(
                code="invalid_enabled",
                message=f"enabled must be a bool, got {self.enabled!r}",
            )
        if not isinstance(self.cadence, Cadence):
            raise ConfigurationError(
                code="invalid_cadence",
                message=f"cadence must be a Cadence, got {self.cadence!r}",
            )


@dataclass(frozen=True)
class ExpiringDomain:
    """A domain inside the warning window."""

    domain: DomainRecord
    days_remaining: int


@dataclass(frozen=True)
class ActiveChannel:
    """A channel selected for this dispatch, with its resolved credentials."""

    channel: ChannelTag
    credentials: ChannelCredentials
    source: CredentialSource


@dataclass(frozen=True)
class RenderedMessage:
    """One alert rendered for one channel."""

    channel: ChannelTag
    title: str
    body: str
    format: MessageFormat
    warning_days: int
    domains: tuple[ExpiringDomain, ...] = ()


@dataclass(frozen=True)
class DispatchOutcome:
    """Outcome of one attempted channel."""

    channel: ChannelTag
    status: DispatchStatus
    error_detail: Optional[str] = None
    attempts: int = 1

    @property
    def success(self) -> bool:
        return self.status == DispatchStatus.SUCCESS


@dataclass
class DispatchResult:
    """Aggregated result of one dispatch run."""

    attempted: list[DispatchOutcome]
    expiring_count: int
    timestamp: str
    state: DispatchState
    expiring: list[ExpiringDomain] = field(default_factory=list)

    @property
    def succeeded(self) -> list[DispatchOutcome]:
        """Outcomes that were delivered."""
        return [o for o in self.attempted if o.success]

    @property
    def failed(self) -> list[DispatchOutcome]:
        """Outcomes that failed."""
        return [o for o in self.attempted if not o.success]

    @property
    def all_succeeded(self) -> bool:
        """True when every attempted channel succeeded (vacuously for no-ops)."""
        return not self.failed

    def summary_lines(self, language: str = DEFAULT_LANGUAGE) -> list[str]:
        """
        Per-channel status lines for display.

        Args:
            language: 'zh' or 'en'

        Returns:
            One line per attempted channel, or a single line describing
            why nothing was attempted
        """
        if not self.attempted:
            return [get_message(f"dispatch.state.{self.state.value}", language,
                                count=self.expiring_count)]

        lines = []
        for outcome in self.attempted:
            if outcome.success:
                lines.append(get_message(
                    "dispatch.channel_sent", language, channel=outcome.channel.value,
                ))
            else:
                lines.append(get_message(
                    "dispatch.channel_failed", language,
                    channel=outcome.channel.value,
                    error=outcome.error_detail or "",
                ))
        return lines


@dataclass(frozen=True)
class CadenceState:
    """Per-session record of when we last notified and any snooze."""

    last_dispatch_date: Optional[date] = None
    suppress_until_date: Optional[date] = None


@dataclass(frozen=True)
class AuditEvent:
    """A single event handed to the audit sink."""

    action: str
    detail: str
    status: AuditStatus = AuditStatus.INFO
    channel: Optional[str] = None
    domain: Optional[str] = None
    error_detail: Optional[str] = None
