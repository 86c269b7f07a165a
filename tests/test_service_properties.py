"""
Tests for the notification service: cadence gating around dispatches.
"""

import asyncio
from datetime import date, timedelta

from hypothesis import given, settings
from hypothesis import strategies as st

from expiry_notifier.cadence_store import InMemoryCadenceRepository
from expiry_notifier.config import CredentialSet, WebhookCredentials
from expiry_notifier.dispatcher import NotificationDispatcher
from expiry_notifier.enums import ChannelTag, DispatchState
from expiry_notifier.models import CadenceState, DomainRecord, WarningPolicy
from expiry_notifier.notifications import DeliveryResult
from expiry_notifier.service import NotificationService
from expiry_notifier.stores import (
    EnvironmentOverrideSource,
    InMemoryDomainStore,
    InMemorySettingsStore,
)


TODAY = date(2025, 3, 1)


class CountingAdapter:
    """Adapter counting deliveries, optionally slow or failing."""

    def __init__(self, delay_seconds: float = 0.0, succeed: bool = True) -> None:
        self.calls = 0
        self._delay = delay_seconds
        self._succeed = succeed

    async def send(self, message, credentials) -> DeliveryResult:
        self.calls += 1
        if self._delay:
            await asyncio.sleep(self._delay)
        if not self._succeed:
            return DeliveryResult(channel="webhook", success=False, error="HTTP 503: unavailable")
        return DeliveryResult(channel="webhook", success=True)

    def get_name(self) -> str:
        return "webhook"


def make_service(adapter: CountingAdapter, days_left: int = 10, repo=None, policy=None, credentials=None):
    expires_on = TODAY + timedelta(days=days_left)
    domains = InMemoryDomainStore([
        DomainRecord("a.com", "Namecheap", expires_on - timedelta(days=365), expires_on),
    ])
    settings_store = InMemorySettingsStore(
        policy=policy or WarningPolicy(),
        credentials=credentials or CredentialSet(webhook=WebhookCredentials("https://hooks.example.com/x")),
    )
    return NotificationService(
        domain_store=domains,
        settings_store=settings_store,
        override_source=EnvironmentOverrideSource(environ={}),
        cadence_repository=repo or InMemoryCadenceRepository(),
        dispatcher=NotificationDispatcher(adapters={ChannelTag.WEBHOOK: adapter}),
    )


class TestOncePerDayProperty:
    """A session is notified at most once per calendar day."""

    @given(triggers=st.integers(min_value=1, max_value=10))
    @settings(max_examples=30, deadline=None)
    def test_repeated_triggers_dispatch_once(self, triggers: int) -> None:
        adapter = CountingAdapter()
        service = make_service(adapter)

        async def run_all():
            return [await service.run("session-1", today=TODAY) for _ in range(triggers)]

        results = asyncio.run(run_all())

        assert adapter.calls == 1
        assert not results[0].skipped
        assert all(r.skipped for r in results[1:])

    def test_concurrent_triggers_dispatch_once(self) -> None:
        adapter = CountingAdapter(delay_seconds=0.01)
        service = make_service(adapter)

        async def run_concurrently():
            return await asyncio.gather(*(
                service.run("session-1", today=TODAY) for _ in range(5)
            ))

        results = asyncio.run(run_concurrently())

        assert adapter.calls == 1
        assert sum(1 for r in results if not r.skipped) == 1

    def test_sessions_are_independent(self) -> None:
        adapter = CountingAdapter()
        service = make_service(adapter)

        async def run_two():
            await service.run("alice", today=TODAY)
            await service.run("bob", today=TODAY)

        asyncio.run(run_two())

        assert adapter.calls == 2

    def test_next_day_dispatches_again(self) -> None:
        adapter = CountingAdapter()
        service = make_service(adapter)

        async def two_days():
            await service.run("s", today=TODAY)
            return await service.run("s", today=TODAY + timedelta(days=1))

        result = asyncio.run(two_days())

        assert adapter.calls == 2
        assert result.cadence.last_dispatch_date == TODAY + timedelta(days=1)


class TestServiceScenarios:
    """Snooze, force and no-op dispatches."""

    def test_snooze_suppresses_today(self) -> None:
        adapter = CountingAdapter()
        repo = InMemoryCadenceRepository()
        service = make_service(adapter, repo=repo)

        async def snooze_then_run():
            await service.snooze("s", today=TODAY)
            return await service.run("s", today=TODAY)

        result = asyncio.run(snooze_then_run())

        assert result.skipped
        assert adapter.calls == 0
        assert repo.get("s").suppress_until_date == TODAY

    def test_force_ignores_gate(self) -> None:
        adapter = CountingAdapter()
        service = make_service(adapter)

        async def run_twice():
            await service.run("s", today=TODAY)
            return await service.run("s", today=TODAY, force=True)

        result = asyncio.run(run_twice())

        assert not result.skipped
        assert adapter.calls == 2

    def test_nothing_expiring_is_not_recorded(self) -> None:
        adapter = CountingAdapter()
        repo = InMemoryCadenceRepository()
        service = make_service(adapter, days_left=90, repo=repo)

        result = asyncio.run(service.run("s", today=TODAY))

        assert result.dispatch.state == DispatchState.NOTHING_EXPIRING
        assert repo.get("s") == CadenceState()

    def test_disabled_policy_is_not_recorded(self) -> None:
        adapter = CountingAdapter()
        repo = InMemoryCadenceRepository()
        service = make_service(adapter, repo=repo, policy=WarningPolicy(enabled=False))

        result = asyncio.run(service.run("s", today=TODAY))

        assert result.dispatch.state == DispatchState.DISABLED
        assert adapter.calls == 0
        assert repo.get("s") == CadenceState()

    def test_acknowledge_with_snooze(self) -> None:
        adapter = CountingAdapter()
        repo = InMemoryCadenceRepository()
        service = make_service(adapter, repo=repo)

        state = asyncio.run(service.acknowledge("s", today=TODAY, snooze=True))

        assert state == CadenceState(last_dispatch_date=TODAY, suppress_until_date=TODAY)
        assert repo.get("s") == state

    def test_failed_dispatch_still_counts_for_today(self) -> None:
        adapter = CountingAdapter(succeed=False)
        repo = InMemoryCadenceRepository()
        service = make_service(adapter, repo=repo)

        async def run_twice():
            first = await service.run("s", today=TODAY)
            second = await service.run("s", today=TODAY)
            return first, second

        first, second = asyncio.run(run_twice())

        assert first.dispatch.state == DispatchState.DISPATCHED
        assert not first.dispatch.all_succeeded
        assert repo.get("s") == CadenceState(last_dispatch_date=TODAY)
        assert second.skipped
        assert adapter.calls == 1

    def test_no_active_channels_is_not_recorded(self) -> None:
        adapter = CountingAdapter()
        repo = InMemoryCadenceRepository()
        service = make_service(adapter, repo=repo, credentials=CredentialSet())

        result = asyncio.run(service.run("s", today=TODAY))

        assert result.dispatch.state == DispatchState.NO_ACTIVE_CHANNELS
        assert result.dispatch.attempted == []
        assert adapter.calls == 0
        assert repo.get("s") == CadenceState()

    def test_unrecorded_run_leaves_the_day_open(self) -> None:
        adapter = CountingAdapter()
        repo = InMemoryCadenceRepository()
        service = make_service(adapter, repo=repo)

        async def dry_then_real():
            dry = await service.run("s", today=TODAY, record=False)
            real = await service.run("s", today=TODAY)
            return dry, real

        dry, real = asyncio.run(dry_then_real())

        assert dry.dispatch.state == DispatchState.DISPATCHED
        assert dry.cadence == CadenceState()
        assert not real.skipped
        assert adapter.calls == 2
        assert repo.get("s") == CadenceState(last_dispatch_date=TODAY)


class TestSessionLocks:
    """Per-session locks exist only while a session has work in flight."""

    @given(sessions=st.lists(st.text(min_size=1, max_size=8), min_size=1, max_size=10))
    @settings(max_examples=30, deadline=None)
    def test_locks_are_released_after_runs(self, sessions: list[str]) -> None:
        service = make_service(CountingAdapter())

        async def run_all():
            await asyncio.gather(*(service.run(key, today=TODAY) for key in sessions))
            await service.snooze(sessions[0], today=TODAY)

        asyncio.run(run_all())

        assert service._locks == {}

    def test_lock_is_shared_while_callers_wait(self) -> None:
        adapter = CountingAdapter(delay_seconds=0.02)
        service = make_service(adapter)

        async def observe():
            tasks = [asyncio.ensure_future(service.run("s", today=TODAY)) for _ in range(3)]
            await asyncio.sleep(0.005)
            lock, users = service._locks["s"]
            await asyncio.gather(*tasks)
            return lock, users

        lock, users = asyncio.run(observe())

        assert users == 3
        assert not lock.locked()
        assert service._locks == {}
        assert adapter.calls == 1
