"""
Property-based tests for the cadence gate and the cadence state store.

Uses Hypothesis to verify the once-per-day rule, snoozing, persistence
round trips and HMAC tamper detection.
"""

import json
import tempfile
from datetime import date, timedelta
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from expiry_notifier.cadence import CadenceGate
from expiry_notifier.cadence_store import CadenceFileStore, InMemoryCadenceRepository
from expiry_notifier.exceptions import PersistenceError, TamperingError
from expiry_notifier.models import CadenceState


# Strategies for generating valid test data

date_strategy = st.dates(min_value=date(2020, 1, 1), max_value=date(2030, 12, 31))


@st.composite
def cadence_state_strategy(draw) -> CadenceState:
    """Generate CadenceState values with optional dates."""
    return CadenceState(
        last_dispatch_date=draw(st.one_of(st.none(), date_strategy)),
        suppress_until_date=draw(st.one_of(st.none(), date_strategy)),
    )


@st.composite
def session_key_strategy(draw) -> str:
    """Generate session keys."""
    return draw(st.text(
        alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789-_"),
        min_size=1,
        max_size=32,
    ))


class TestCadenceGateProperty:
    """At most one dispatch per calendar day per session."""

    @given(state=cadence_state_strategy(), today=date_strategy)
    @settings(max_examples=200)
    def test_gate_matches_definition(self, state: CadenceState, today: date) -> None:
        gate = CadenceGate()

        expected = not (
            state.suppress_until_date == today or state.last_dispatch_date == today
        )
        assert gate.should_dispatch_today(state, today) == expected

    @given(state=cadence_state_strategy(), today=date_strategy)
    @settings(max_examples=200)
    def test_recorded_dispatch_blocks_rest_of_day(self, state: CadenceState, today: date) -> None:
        gate = CadenceGate()

        after = gate.record_dispatch(state, today)

        assert after.last_dispatch_date == today
        assert not gate.should_dispatch_today(after, today)

    @given(state=cadence_state_strategy(), today=date_strategy)
    @settings(max_examples=200)
    def test_next_day_is_allowed_again(self, state: CadenceState, today: date) -> None:
        gate = CadenceGate()

        after = gate.snooze_until_tomorrow(gate.record_dispatch(state, today), today)

        assert gate.should_dispatch_today(after, today + timedelta(days=1))

    @given(state=cadence_state_strategy(), today=date_strategy)
    @settings(max_examples=200)
    def test_snooze_suppresses_today(self, state: CadenceState, today: date) -> None:
        gate = CadenceGate()

        after = gate.snooze_until_tomorrow(state, today)

        assert after.suppress_until_date == today
        assert after.last_dispatch_date == state.last_dispatch_date
        assert not gate.should_dispatch_today(after, today)

    @given(state=cadence_state_strategy(), today=date_strategy)
    @settings(max_examples=100)
    def test_prune_drops_only_past_snoozes(self, state: CadenceState, today: date) -> None:
        pruned = CadenceGate().prune(state, today)

        if state.suppress_until_date is not None and state.suppress_until_date < today:
            assert pruned.suppress_until_date is None
        else:
            assert pruned.suppress_until_date == state.suppress_until_date
        assert pruned.last_dispatch_date == state.last_dispatch_date

    def test_acknowledge_with_snooze(self) -> None:
        today = date(2025, 3, 1)

        state = CadenceGate().acknowledge(CadenceState(), today, snooze=True)

        assert state == CadenceState(last_dispatch_date=today, suppress_until_date=today)

    def test_acknowledge_without_snooze(self) -> None:
        today = date(2025, 3, 1)

        state = CadenceGate().acknowledge(CadenceState(), today)

        assert state == CadenceState(last_dispatch_date=today, suppress_until_date=None)


class TestCadenceStoreRoundTripProperty:
    """Persisted states load back unchanged."""

    @given(states=st.dictionaries(session_key_strategy(), cadence_state_strategy(), max_size=10))
    @settings(max_examples=50)
    def test_round_trip_preserves_states(self, states: dict[str, CadenceState]) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "cadence.json"
            store = CadenceFileStore(path, "test-secret")
            for key, state in states.items():
                store.put(key, state)

            loaded = CadenceFileStore(path, "test-secret").load()

        assert loaded == states

    def test_missing_file_is_empty(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = CadenceFileStore(Path(tmpdir) / "missing.json", "test-secret")

            assert store.get("anyone") == CadenceState()

    def test_in_memory_repository(self) -> None:
        repo = InMemoryCadenceRepository()
        state = CadenceState(last_dispatch_date=date(2025, 3, 1))

        assert repo.get("s") == CadenceState()
        repo.put("s", state)
        assert repo.get("s") == state


class TestCadenceTamperingProperty:
    """Hand-edited cadence files are rejected."""

    @given(
        key=session_key_strategy(),
        day=date_strategy,
        shift=st.integers(min_value=1, max_value=30),
    )
    @settings(max_examples=50)
    def test_modified_date_is_detected(self, key: str, day: date, shift: int) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "cadence.json"
            CadenceFileStore(path, "test-secret").put(key, CadenceState(last_dispatch_date=day))

            data = json.loads(path.read_text(encoding="utf-8"))
            data["sessions"][key]["last_dispatch_date"] = (day + timedelta(days=shift)).isoformat()
            path.write_text(json.dumps(data), encoding="utf-8")

            with pytest.raises(TamperingError):
                CadenceFileStore(path, "test-secret").load()

    def test_wrong_secret_is_detected(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "cadence.json"
            CadenceFileStore(path, "secret-a").put("s", CadenceState(last_dispatch_date=date(2025, 3, 1)))

            with pytest.raises(TamperingError):
                CadenceFileStore(path, "secret-b").get("s")

    @pytest.mark.parametrize("content", ["not json", "[1, 2, 3]"])
    def test_unreadable_file_is_persistence_error(self, content: str) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "cadence.json"
            path.write_text(content, encoding="utf-8")

            with pytest.raises(PersistenceError):
                CadenceFileStore(path, "test-secret").load()

    def test_tampering_error_is_persistence_error(self) -> None:
        assert issubclass(TamperingError, PersistenceError)
