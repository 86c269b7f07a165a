"""
Channel resolver.

Merges override (operator) and persisted (user) credentials into the set of
channels a dispatch will notify through. Resolution is a pure function of its
two inputs and performs no I/O.

Precedence, per channel: complete override credentials, then complete
persisted credentials, otherwise the channel stays inactive. When nothing is
active, the default-channel policy may still activate Telegram.
"""

from typing import Optional

from .config import CredentialSet, TelegramCredentials
from .enums import ChannelTag, CredentialSource
from .models import ActiveChannel, ChannelCredentials

DEFAULT_CHANNEL = ChannelTag.TELEGRAM

ActiveChannelSet = tuple[ActiveChannel, ...]


def _complete(credentials: Optional[ChannelCredentials]) -> bool:
    return credentials is not None and credentials.is_complete()


def _resolve_channel(
    channel: ChannelTag,
    override: CredentialSet,
    persisted: CredentialSet,
) -> Optional[ActiveChannel]:
    override_creds = override.get(channel)
    if _complete(override_creds):
        return ActiveChannel(channel, override_creds, CredentialSource.OVERRIDE)

    persisted_creds = persisted.get(channel)
    if _complete(persisted_creds):
        return ActiveChannel(channel, persisted_creds, CredentialSource.PERSISTED)

    return None


def _default_channel(
    override: CredentialSet,
    persisted: CredentialSet,
) -> Optional[ActiveChannel]:
    """
    Default-channel policy.

    Telegram is activated only when the persisted settings name it among the
    configured methods. Whatever partial credentials exist are carried along
    so the adapter can report what is missing.
    """
    if DEFAULT_CHANNEL not in persisted.methods:
        return None

    credentials = (
        override.get(DEFAULT_CHANNEL)
        or persisted.get(DEFAULT_CHANNEL)
        or TelegramCredentials()
    )
    return ActiveChannel(DEFAULT_CHANNEL, credentials, CredentialSource.DEFAULT)


def resolve(override: CredentialSet, persisted: CredentialSet) -> ActiveChannelSet:
    """
    Resolve the active channel set.

    Args:
        override: Operator-level credentials (environment, secrets)
        persisted: User-editable credentials from the settings store

    Returns:
        Active channels in canonical channel order, without duplicates.
        An empty tuple means there is nothing to notify through.
    """
    active = [
        resolved
        for resolved in (
            _resolve_channel(channel, override, persisted) for channel in ChannelTag
        )
        if resolved is not None
    ]

    if not active:
        fallback = _default_channel(override, persisted)
        if fallback is not None:
            active.append(fallback)

    return tuple(active)
