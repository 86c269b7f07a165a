"""
Message rendering for expiry alerts.

One shared template lists every expiring domain in a single message.
Telegram gets HTML markup; every other channel gets plain text.
"""

import html
from typing import Sequence

from .enums import ChannelTag, MessageFormat
from .i18n import DEFAULT_LANGUAGE, get_message
from .models import ExpiringDomain, RenderedMessage

HTML_CHANNELS = frozenset({ChannelTag.TELEGRAM})


def message_format_for(channel: ChannelTag) -> MessageFormat:
    return MessageFormat.HTML if channel in HTML_CHANNELS else MessageFormat.TEXT


def _domain_block(item: ExpiringDomain, fmt: MessageFormat, language: str) -> list[str]:
    record = item.domain
    days = get_message("alert.days_value", language, days=item.days_remaining)
    expires = record.expires_on.isoformat()

    if fmt == MessageFormat.HTML:
        lines = [
            f"<b>{html.escape(record.name)}</b>",
            f"   {get_message('alert.registrar', language)}: {html.escape(record.registrar)}",
            f"   {get_message('alert.expires_on', language)}: {expires}",
            f"   {get_message('alert.days_remaining', language)}: {days}",
        ]
        if record.renewal_url:
            url = html.escape(record.renewal_url, quote=True)
            label = get_message("alert.renewal_url", language)
            lines.append(f'   <a href="{url}">{label}</a>')
        return lines

    lines = [
        f"{get_message('alert.domain', language)}: {record.name}",
        f"{get_message('alert.registrar', language)}: {record.registrar}",
        f"{get_message('alert.expires_on', language)}: {expires}",
        f"{get_message('alert.days_remaining', language)}: {days}",
    ]
    if record.renewal_url:
        lines.append(f"{get_message('alert.renewal_url', language)}: {record.renewal_url}")
    return lines


def render_message(
    channel: ChannelTag,
    expiring: Sequence[ExpiringDomain],
    warning_days: int,
    language: str = DEFAULT_LANGUAGE,
) -> RenderedMessage:
    """
    Render the expiry alert for one channel.

    Args:
        channel: Target channel, which decides the markup
        expiring: Every qualifying domain
        warning_days: The configured warning window
        language: 'zh' or 'en'

    Returns:
        RenderedMessage carrying both the rendered text and the structured
        domain list (the webhook channel forwards the latter)
    """
    fmt = message_format_for(channel)
    title = get_message("alert.title", language)
    intro = get_message("alert.intro", language, days=warning_days)

    if fmt == MessageFormat.HTML:
        lines = [f"⚠️ <b>{html.escape(title)}</b>", "", html.escape(intro), ""]
    else:
        lines = [intro, ""]

    for item in expiring:
        lines.extend(_domain_block(item, fmt, language))
        lines.append("")

    footer = get_message("alert.footer", language)
    lines.append(html.escape(footer) if fmt == MessageFormat.HTML else footer)

    return RenderedMessage(
        channel=channel,
        title=title,
        body="\n".join(lines),
        format=fmt,
        warning_days=warning_days,
        domains=tuple(expiring),
    )
