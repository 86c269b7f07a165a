"""
Collaborator ports.

The notification engine reads domains, settings and operator overrides, and
writes audit events and cadence state, only through these protocols.
"""

from abc import abstractmethod
from typing import Protocol, runtime_checkable

from .config import CredentialSet
from .models import AuditEvent, CadenceState, DomainRecord, WarningPolicy


@runtime_checkable
class DomainStore(Protocol):
    """Read-only view of the tracked domains."""

    @abstractmethod
    def list_domains(self) -> list[DomainRecord]:
        ...


@runtime_checkable
class SettingsStore(Protocol):
    """User-editable notification settings."""

    @abstractmethod
    def get_warning_policy(self) -> WarningPolicy:
        ...

    @abstractmethod
    def get_persisted_credentials(self) -> CredentialSet:
        ...


@runtime_checkable
class OverrideSource(Protocol):
    """Operator-level channel configuration, read at dispatch time."""

    @abstractmethod
    def get_override_credentials(self) -> CredentialSet:
        ...


@runtime_checkable
class AuditSink(Protocol):
    """
    Fire-and-forget audit trail.

    A failing sink must never fail a dispatch; callers guard every call.
    """

    @abstractmethod
    def record(self, event: AuditEvent) -> object:
        ...


@runtime_checkable
class CadenceRepository(Protocol):
    """Per-session cadence state."""

    @abstractmethod
    def get(self, session_key: str) -> CadenceState:
        ...

    @abstractmethod
    def put(self, session_key: str, state: CadenceState) -> None:
        ...
