"""
Notification service.

Ties the collaborators together for one triggering event (page load, CLI
run): consult the cadence gate for the session, read domains, settings and
overrides, dispatch, and record the dispatch. Work for one session key is
serialized so two concurrent triggers cannot both notify on the same day.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date
from typing import Optional

from .cadence import CadenceGate
from .dispatcher import NotificationDispatcher
from .enums import DispatchState
from .interfaces import CadenceRepository, DomainStore, OverrideSource, SettingsStore
from .models import CadenceState, DispatchResult


@dataclass
class ServiceResult:
    """What happened for one session trigger."""

    skipped: bool
    cadence: CadenceState
    dispatch: Optional[DispatchResult] = None


class NotificationService:
    """Gate, dispatch and record for one session at a time."""

    def __init__(
        self,
        domain_store: DomainStore,
        settings_store: SettingsStore,
        override_source: OverrideSource,
        cadence_repository: CadenceRepository,
        dispatcher: NotificationDispatcher,
        gate: Optional[CadenceGate] = None,
    ) -> None:
        self._domain_store = domain_store
        self._settings_store = settings_store
        self._override_source = override_source
        self._cadence = cadence_repository
        self._dispatcher = dispatcher
        self._gate = gate or CadenceGate()
        # session key -> (lock, number of callers holding or awaiting it)
        self._locks: dict[str, tuple[asyncio.Lock, int]] = {}

    @asynccontextmanager
    async def _session(self, session_key: str):
        """Serialize work for one session; the lock is dropped once idle."""
        lock, users = self._locks.get(session_key, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._locks[session_key] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[session_key]
            if users == 1:
                del self._locks[session_key]
            else:
                self._locks[session_key] = (lock, users - 1)

    async def run(
        self,
        session_key: str,
        today: Optional[date] = None,
        force: bool = False,
        record: bool = True,
    ) -> ServiceResult:
        """
        Handle one trigger for a session.

        Args:
            session_key: Client session (or tenant) identifier
            today: The session's calendar date (defaults to today)
            force: Ignore the cadence gate (explicit user action)
            record: Save the dispatch to the cadence state; dry runs pass False

        Returns:
            ServiceResult; ``skipped`` is True when the gate denied the run
        """
        today = today or date.today()
        async with self._session(session_key):
            state = self._cadence.get(session_key)
            if not force and not self._gate.should_dispatch_today(state, today):
                return ServiceResult(skipped=True, cadence=state)

            result = await self._dispatcher.dispatch(
                self._domain_store.list_domains(),
                self._settings_store.get_warning_policy(),
                self._override_source.get_override_credentials(),
                self._settings_store.get_persisted_credentials(),
                as_of=today,
            )

            if record and result.state == DispatchState.DISPATCHED:
                state = self._gate.record_dispatch(state, today)
                self._cadence.put(session_key, state)

            return ServiceResult(skipped=False, cadence=state, dispatch=result)

    async def snooze(self, session_key: str, today: Optional[date] = None) -> CadenceState:
        """Snooze the session for the rest of the day."""
        today = today or date.today()
        async with self._session(session_key):
            state = self._gate.snooze_until_tomorrow(self._cadence.get(session_key), today)
            self._cadence.put(session_key, state)
            return state

    async def acknowledge(
        self,
        session_key: str,
        today: Optional[date] = None,
        snooze: bool = False,
    ) -> CadenceState:
        """The user dismissed today's alert, optionally snoozing."""
        today = today or date.today()
        async with self._session(session_key):
            state = self._gate.acknowledge(self._cadence.get(session_key), today, snooze)
            self._cadence.put(session_key, state)
            return state
