"""
Notification Dispatcher for expiry alerts.

Coordinates one end-to-end dispatch:
- Policy check and expiry classification
- Channel resolution (override credentials over persisted ones)
- Per-channel rendering and concurrent adapter invocation
- Per-channel outcome aggregation under an overall deadline
- Audit reporting that can never fail the dispatch
"""

import asyncio
import sys
from datetime import date, datetime, timezone
from typing import Mapping, Optional, Sequence, TextIO

from .channel_resolver import ActiveChannelSet, resolve
from .classifier import AsOf, classify
from .config import CredentialSet, SystemConfig
from .enums import AuditStatus, ChannelTag, DispatchState, DispatchStatus
from .i18n import DEFAULT_LANGUAGE
from .interfaces import AuditSink
from .models import (
    ActiveChannel,
    AuditEvent,
    DispatchOutcome,
    DispatchResult,
    DomainRecord,
    ExpiringDomain,
    WarningPolicy,
)
from .notifications import TIMEOUT_DETAIL, ChannelAdapter, create_adapters, describe_error
from .rendering import render_message


class NotificationDispatcher:
    """
    Fans one expiry alert out to every active channel.

    A failing channel never stops the others: every active channel yields
    exactly one DispatchOutcome. Only programmer errors such as a malformed
    policy are raised.
    """

    def __init__(
        self,
        adapters: Optional[Mapping[ChannelTag, ChannelAdapter]] = None,
        audit_sink: Optional[AuditSink] = None,
        language: str = DEFAULT_LANGUAGE,
        deadline_seconds: Optional[float] = 30.0,
        error_stream: Optional[TextIO] = None,
    ) -> None:
        """
        Initialize the dispatcher.

        Args:
            adapters: Adapter per channel tag
            audit_sink: Optional audit trail for dispatch events
            language: Message language ('zh' or 'en')
            deadline_seconds: Overall deadline for the adapter fan-out;
                              None waits for every adapter
            error_stream: Where audit sink failures are reported
                          (defaults to sys.stderr)
        """
        self._adapters = dict(adapters or {})
        self._audit_sink = audit_sink
        self._language = language
        self._deadline_seconds = deadline_seconds
        self._error_stream = error_stream or sys.stderr

    @classmethod
    def from_config(
        cls,
        config: SystemConfig,
        audit_sink: Optional[AuditSink] = None,
        transport=None,
    ) -> "NotificationDispatcher":
        """Build a dispatcher with the default adapters for a configuration."""
        return cls(
            adapters=create_adapters(config, transport=transport),
            audit_sink=audit_sink,
            language=config.language,
            deadline_seconds=config.delivery.deadline_seconds,
        )

    @property
    def adapters(self) -> dict[ChannelTag, ChannelAdapter]:
        return dict(self._adapters)

    def register_adapter(self, channel: ChannelTag, adapter: ChannelAdapter) -> None:
        """Register or replace the adapter for a channel."""
        self._adapters[channel] = adapter

    async def dispatch(
        self,
        domains: Sequence[DomainRecord],
        policy: WarningPolicy,
        override: CredentialSet,
        persisted: CredentialSet,
        as_of: Optional[AsOf] = None,
    ) -> DispatchResult:
        """
        Run one dispatch.

        Args:
            domains: Every tracked domain
            policy: Warning policy from the settings store
            override: Operator-level credentials
            persisted: User-editable credentials
            as_of: Reference date (defaults to today)

        Returns:
            DispatchResult whose ``state`` tells the no-op shapes apart

        Raises:
            ConfigurationError: If the policy is malformed
        """
        policy.validate()
        as_of = as_of if as_of is not None else date.today()

        if not policy.enabled:
            self._audit(AuditEvent(
                action="NOTIFY_DISABLED",
                detail="notifications are disabled",
            ))
            return self._result([], [], DispatchState.DISABLED)

        expiring = classify(domains, policy.warning_days, as_of)
        self._audit(AuditEvent(
            action="EXPIRING_CHECK",
            detail=(
                f"{len(expiring)} of {len(domains)} domain(s) expire within "
                f"{policy.warning_days} days"
            ),
        ))
        if not expiring:
            return self._result([], [], DispatchState.NOTHING_EXPIRING)

        active = resolve(override, persisted)
        if not active:
            self._audit(AuditEvent(
                action="NO_ACTIVE_CHANNELS",
                detail=f"{len(expiring)} domain(s) expiring but no channel is configured",
                status=AuditStatus.WARNING,
            ))
            return self._result([], expiring, DispatchState.NO_ACTIVE_CHANNELS)

        self._audit(AuditEvent(
            action="CHANNELS_RESOLVED",
            detail=", ".join(f"{a.channel.value} ({a.source.value})" for a in active),
        ))

        outcomes = await self._fan_out(active, expiring, policy.warning_days)

        for outcome in outcomes:
            self._audit_outcome(outcome, expiring)

        succeeded = sum(1 for o in outcomes if o.success)
        self._audit(AuditEvent(
            action="NOTIFY_COMPLETE",
            detail=f"succeeded: {succeeded}, failed: {len(outcomes) - succeeded}",
            status=AuditStatus.SUCCESS if succeeded == len(outcomes) else AuditStatus.WARNING,
        ))

        return self._result(outcomes, expiring, DispatchState.DISPATCHED)

    def dispatch_sync(self, *args, **kwargs) -> DispatchResult:
        """Synchronous wrapper around dispatch()."""
        return asyncio.run(self.dispatch(*args, **kwargs))

    async def _fan_out(
        self,
        active: ActiveChannelSet,
        expiring: list[ExpiringDomain],
        warning_days: int,
    ) -> list[DispatchOutcome]:
        tasks = {
            item.channel: asyncio.create_task(
                self._deliver(item, expiring, warning_days),
                name=f"notify-{item.channel.value}",
            )
            for item in active
        }

        _, pending = await asyncio.wait(
            tasks.values(), timeout=self._deadline_seconds
        )
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        outcomes = []
        for channel, task in tasks.items():
            if task in pending:
                outcomes.append(DispatchOutcome(
                    channel=channel,
                    status=DispatchStatus.FAILURE,
                    error_detail=TIMEOUT_DETAIL,
                ))
            else:
                outcomes.append(task.result())
        return outcomes

    async def _deliver(
        self,
        item: ActiveChannel,
        expiring: list[ExpiringDomain],
        warning_days: int,
    ) -> DispatchOutcome:
        adapter = self._adapters.get(item.channel)
        if adapter is None:
            return DispatchOutcome(
                channel=item.channel,
                status=DispatchStatus.FAILURE,
                error_detail="unsupported channel",
                attempts=0,
            )

        message = render_message(item.channel, expiring, warning_days, self._language)
        try:
            delivery = await adapter.send(message, item.credentials)
        except Exception as e:
            # Adapters are not supposed to raise; keep sibling channels isolated anyway
            return DispatchOutcome(
                channel=item.channel,
                status=DispatchStatus.FAILURE,
                error_detail=describe_error(e),
            )

        return DispatchOutcome(
            channel=item.channel,
            status=DispatchStatus.SUCCESS if delivery.success else DispatchStatus.FAILURE,
            error_detail=None if delivery.success else (delivery.error or "delivery failed"),
            attempts=delivery.attempts,
        )

    def _audit_outcome(self, outcome: DispatchOutcome, expiring: list[ExpiringDomain]) -> None:
        channel = outcome.channel.value
        if outcome.success:
            self._audit(AuditEvent(
                action="NOTIFY_SENT",
                detail=f"{channel} notification sent",
                status=AuditStatus.SUCCESS,
                channel=channel,
            ))
        else:
            self._audit(AuditEvent(
                action="NOTIFY_ERROR",
                detail=f"{channel} notification failed: {outcome.error_detail}",
                status=AuditStatus.ERROR,
                channel=channel,
                error_detail=outcome.error_detail,
            ))

        for item in expiring:
            self._audit(AuditEvent(
                action="NOTIFY_LOG" if outcome.success else "NOTIFY_LOG_FAILED",
                detail=f"{item.domain.name} ({item.days_remaining}d) via {channel}",
                status=AuditStatus.SUCCESS if outcome.success else AuditStatus.ERROR,
                channel=channel,
                domain=item.domain.name,
                error_detail=outcome.error_detail,
            ))

    def _audit(self, event: AuditEvent) -> None:
        if self._audit_sink is None:
            return
        try:
            self._audit_sink.record(event)
        except Exception as e:
            print(
                f"Warning: could not record audit event {event.action}: {e}",
                file=self._error_stream,
            )

    @staticmethod
    def _result(
        outcomes: list[DispatchOutcome],
        expiring: list[ExpiringDomain],
        state: DispatchState,
    ) -> DispatchResult:
        return DispatchResult(
            attempted=outcomes,
            expiring_count=len(expiring),
            timestamp=datetime.now(timezone.utc).isoformat(),
            state=state,
            expiring=list(expiring),
        )
