"""
Cadence gate.

Keeps expiry alerts to at most one dispatch per calendar day per client
session, and lets the user snooze alerts for the rest of the day. The gate
works on immutable CadenceState values: every operation returns a new state.
"""

from dataclasses import replace
from datetime import date

from .models import CadenceState


class CadenceGate:
    """Stateless decision logic over CadenceState values."""

    def should_dispatch_today(self, state: CadenceState, today: date) -> bool:
        """
        Decide whether a dispatch may run today.

        Args:
            state: The session's cadence state
            today: The session's current calendar date

        Returns:
            False iff the session is snoozed for today or already
            dispatched today
        """
        if state.suppress_until_date == today:
            return False
        if state.last_dispatch_date == today:
            return False
        return True

    def record_dispatch(self, state: CadenceState, today: date) -> CadenceState:
        """
        Mark today as dispatched.

        Called once a dispatch was attempted, whether or not any channel
        succeeded, so failing channels are not retried within the day.
        """
        return replace(self.prune(state, today), last_dispatch_date=today)

    def snooze_until_tomorrow(self, state: CadenceState, today: date) -> CadenceState:
        """Suppress further alerts for the rest of ``today``."""
        return replace(state, suppress_until_date=today)

    def acknowledge(
        self, state: CadenceState, today: date, snooze: bool = False
    ) -> CadenceState:
        """
        The user dismissed today's alert.

        Today counts as notified; with ``snooze`` the session is also
        suppressed for the rest of the day.
        """
        state = self.record_dispatch(state, today)
        if snooze:
            state = self.snooze_until_tomorrow(state, today)
        return state

    def prune(self, state: CadenceState, today: date) -> CadenceState:
        """Drop a snooze that no longer applies."""
        if state.suppress_until_date is not None and state.suppress_until_date < today:
            return replace(state, suppress_until_date=None)
        return state
