"""
Cadence State Store.

Keeps per-session CadenceState values between CLI invocations. The file is
HMAC-protected so a hand-edited "already notified" date is detected rather
than silently trusted.
"""

import hashlib
import hmac
import json
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional

from .exceptions import PersistenceError, TamperingError
from .models import CadenceState


class InMemoryCadenceRepository:
    """Cadence states held for the lifetime of the process."""

    def __init__(self) -> None:
        self._states: dict[str, CadenceState] = {}

    def get(self, session_key: str) -> CadenceState:
        return self._states.get(session_key, CadenceState())

    def put(self, session_key: str, state: CadenceState) -> None:
        self._states[session_key] = state


def _date_or_none(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _iso_or_none(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


class CadenceFileStore:
    """
    Persistent cadence storage with HMAC protection.

    Sessions are loaded lazily on first access and every ``put`` writes the
    whole file back.
    """

    VERSION = 1

    def __init__(self, file_path: Path, hmac_secret: str) -> None:
        """
        Initialize the cadence store.

        Args:
            file_path: Path to the state file (JSON format)
            hmac_secret: Secret key for HMAC computation
        """
        self._file_path = file_path
        self._hmac_secret = hmac_secret.encode("utf-8")
        self._sessions: Optional[dict[str, CadenceState]] = None

    def load(self) -> dict[str, CadenceState]:
        """
        Load sessions from file and validate HMAC.

        Returns:
            Mapping of session key to CadenceState (empty if no file yet)

        Raises:
            TamperingError: If HMAC validation fails
            PersistenceError: If file cannot be read or parsed
        """
        if not self._file_path.exists():
            self._sessions = {}
            return dict(self._sessions)

        try:
            with open(self._file_path, "r", encoding="utf-8") as f:
                raw_data = json.load(f)
        except json.JSONDecodeError as e:
            raise PersistenceError(
                code="parse_error",
                message=f"Failed to parse cadence file: {e}",
                details={"file_path": str(self._file_path)},
            )
        except OSError as e:
            raise PersistenceError(
                code="io_error",
                message=f"Failed to read cadence file: {e}",
                details={"file_path": str(self._file_path)},
            )

        if not isinstance(raw_data, dict):
            raise PersistenceError(
                code="parse_error",
                message="Cadence file does not contain a JSON object",
                details={"file_path": str(self._file_path)},
            )

        stored_hmac = str(raw_data.get("hmac", ""))
        data_for_hmac = {
            "version": raw_data.get("version"),
            "sessions": raw_data.get("sessions", {}),
            "last_updated": raw_data.get("last_updated"),
        }
        computed_hmac = self.compute_hmac(data_for_hmac)

        if not self.validate_hmac(stored_hmac, computed_hmac):
            raise TamperingError(
                code="hmac_mismatch",
                message="HMAC validation failed - cadence data may have been tampered with",
                details={"file_path": str(self._file_path)},
            )

        try:
            self._sessions = {
                key: CadenceState(
                    last_dispatch_date=_date_or_none(entry.get("last_dispatch_date")),
                    suppress_until_date=_date_or_none(entry.get("suppress_until_date")),
                )
                for key, entry in raw_data.get("sessions", {}).items()
            }
        except (AttributeError, TypeError, ValueError) as e:
            raise PersistenceError(
                code="parse_error",
                message=f"Invalid cadence entry: {e}",
                details={"file_path": str(self._file_path)},
            )

        return dict(self._sessions)

    def save(self) -> None:
        """
        Save all sessions with HMAC protection.

        Raises:
            PersistenceError: If file cannot be written
        """
        sessions = self._sessions or {}
        now = datetime.now(timezone.utc).isoformat()

        sessions_dict = {
            key: {
                "last_dispatch_date": _iso_or_none(state.last_dispatch_date),
                "suppress_until_date": _iso_or_none(state.suppress_until_date),
            }
            for key, state in sessions.items()
        }

        data_for_hmac = {
            "version": self.VERSION,
            "sessions": sessions_dict,
            "last_updated": now,
        }
        output_data = dict(data_for_hmac, hmac=self.compute_hmac(data_for_hmac))

        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._file_path, "w", encoding="utf-8") as f:
                json.dump(output_data, f, indent=2, sort_keys=True)
        except OSError as e:
            raise PersistenceError(
                code="io_error",
                message=f"Failed to write cadence file: {e}",
                details={"file_path": str(self._file_path)},
            )

    def get(self, session_key: str) -> CadenceState:
        """Get the state for a session, empty if never seen."""
        if self._sessions is None:
            self.load()
        return self._sessions.get(session_key, CadenceState())

    def put(self, session_key: str, state: CadenceState) -> None:
        """Store the state for a session and write the file."""
        if self._sessions is None:
            self.load()
        self._sessions[session_key] = state
        self.save()

    def compute_hmac(self, data: dict) -> str:
        """
        Compute HMAC-SHA256 over serialized data.

        Args:
            data: Dictionary to compute HMAC over

        Returns:
            Hexadecimal HMAC string
        """
        serialized = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return hmac.new(
            self._hmac_secret,
            serialized.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def validate_hmac(self, stored_hmac: str, computed_hmac: str) -> bool:
        """Validate HMAC using constant-time comparison."""
        return hmac.compare_digest(stored_hmac, computed_hmac)

    @property
    def file_path(self) -> Path:
        """Get the cadence file path."""
        return self._file_path
