"""
Audit Logger module for the expiry notifier.

Writes dispatch audit events and operational messages as JSON lines,
human-readable text, or both. Channel secrets are masked before an entry is
stored, and audit mode signs every entry with HMAC-SHA256 so a saved trail
can be checked later.
"""

import hmac
import hashlib
import json
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

from expiry_notifier.enums import AuditStatus, LogLevel
from expiry_notifier.models import AuditEvent


OUTPUT_FORMATS = ("json", "text", "both")

AUDIT_LEVELS = {
    AuditStatus.SUCCESS: LogLevel.INFO,
    AuditStatus.INFO: LogLevel.INFO,
    AuditStatus.WARNING: LogLevel.WARN,
    AuditStatus.ERROR: LogLevel.ERROR,
}


@dataclass
class LogEntry:
    """A single log line with its metadata and optional signature."""

    timestamp: str
    level: LogLevel
    component: str
    message: str
    data: dict = field(default_factory=dict)
    signature: Optional[str] = None

    def payload(self) -> dict:
        """The signed portion of the entry."""
        return {
            "timestamp": self.timestamp,
            "level": self.level.value,
            "component": self.component,
            "message": self.message,
            "data": self.data,
        }

    def as_json(self) -> str:
        body = self.payload()
        if self.signature:
            body["signature"] = self.signature
        return json.dumps(body, ensure_ascii=False)

    def as_text(self) -> str:
        # [TIMESTAMP] LEVEL [COMPONENT] MESSAGE {data} [sig:...]
        line = f"[{self.timestamp}] {self.level.value.upper()} [{self.component}] {self.message}"
        if self.data:
            line += " " + json.dumps(self.data, ensure_ascii=False)
        if self.signature:
            line += f" [sig:{self.signature[:16]}...]"
        return line


def _is_sensitive(key: str, patterns: frozenset) -> bool:
    lowered = key.lower()
    return any(pattern in lowered for pattern in patterns)


def _mask(value: Any, patterns: frozenset, mask: str) -> Any:
    if isinstance(value, dict):
        return {
            key: mask if _is_sensitive(str(key), patterns) else _mask(item, patterns, mask)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_mask(item, patterns, mask) for item in value]
    return value


class AuditLogger:
    """
    Structured logger for dispatch audit trails.

    Implements the dispatcher's audit sink through `record`, so it can be
    handed to a NotificationDispatcher directly.
    """

    # Substrings of keys whose values never reach the output
    SENSITIVE_KEYS = frozenset({
        'token', 'secret', 'password', 'api_key', 'auth',
        'credential', 'private_key', 'webhook_url',
        'send_key', 'sendkey', 'qq_key', 'qmsg_key', 'signing_key',
    })

    MASK_VALUE = "***MASKED***"

    AUDIT_COMPONENT = "audit"

    def __init__(
        self,
        output_format: str = "both",
        output_stream: Optional[TextIO] = None,
    ):
        """
        Initialize the audit logger.

        Args:
            output_format: 'json', 'text', or 'both'
            output_stream: Destination for log lines (defaults to sys.stderr)
        """
        if output_format not in OUTPUT_FORMATS:
            raise ValueError(f"Invalid output_format: {output_format}")

        self._output_format = output_format
        self._output_stream = output_stream or sys.stderr
        self._signing_key: Optional[bytes] = None
        self._entries: list[LogEntry] = []

    @property
    def output_format(self) -> str:
        return self._output_format

    @property
    def audit_mode(self) -> bool:
        return self._signing_key is not None

    @property
    def entries(self) -> list[LogEntry]:
        """Entries logged so far, oldest first."""
        return list(self._entries)

    def enable_audit_mode(self, signing_key: str) -> None:
        """Sign every subsequent entry with the given key."""
        if not signing_key:
            raise ValueError("Signing key cannot be empty")
        self._signing_key = signing_key.encode('utf-8')

    def log(
        self,
        level: LogLevel,
        component: str,
        message: str,
        data: Optional[dict] = None,
    ) -> LogEntry:
        """
        Write one entry in the configured format(s).

        Args:
            level: Severity
            component: Name of the emitting component
            message: Human-readable message
            data: Extra fields; sensitive keys are masked

        Returns:
            The stored LogEntry
        """
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=level,
            component=component,
            message=message,
            data=self.mask_sensitive_data(data or {}),
        )
        if self._signing_key is not None:
            entry.signature = self._signature(entry)

        self._entries.append(entry)
        self._write(entry)
        return entry

    def record(self, event: AuditEvent) -> LogEntry:
        """Record a dispatch audit event under the audit component."""
        data = {"action": event.action, "status": event.status.value}
        optional = {
            "channel": event.channel,
            "domain": event.domain,
            "error_detail": event.error_detail,
        }
        data.update({key: value for key, value in optional.items() if value is not None})

        return self.log(
            AUDIT_LEVELS[event.status],
            self.AUDIT_COMPONENT,
            f"{event.action}: {event.detail}",
            data,
        )

    def log_error(
        self,
        component: str,
        message: str,
        error: Optional[Exception] = None,
        additional_data: Optional[dict] = None,
    ) -> LogEntry:
        """Log at ERROR level, attaching the exception's type and message."""
        data = dict(additional_data or {})
        if error is not None:
            data["error_message"] = str(error)
            data["error_type"] = type(error).__name__
        return self.log(LogLevel.ERROR, component, message, data)

    def mask_sensitive_data(self, data: dict) -> dict:
        """Return a copy of data with sensitive values replaced, at any depth."""
        if not isinstance(data, dict):
            return data
        return _mask(data, self.SENSITIVE_KEYS, self.MASK_VALUE)

    def verify_signature(self, entry: LogEntry) -> bool:
        """True if the entry carries a signature matching its current content."""
        if not entry.signature or self._signing_key is None:
            return False
        return hmac.compare_digest(entry.signature, self._signature(entry))

    def _signature(self, entry: LogEntry) -> str:
        content = json.dumps(entry.payload(), sort_keys=True, ensure_ascii=False)
        return hmac.new(self._signing_key, content.encode('utf-8'), hashlib.sha256).hexdigest()

    def _write(self, entry: LogEntry) -> None:
        if self._output_format in ("json", "both"):
            self._output_stream.write(entry.as_json() + "\n")
        if self._output_format in ("text", "both"):
            self._output_stream.write(entry.as_text() + "\n")
        self._output_stream.flush()
