"""
Internationalization (i18n) module for the expiry notifier.

Provides translations for all user-facing messages in Chinese (zh) and
English (en). Chinese is the default, matching the tracker's UI.
"""

# Supported languages
SUPPORTED_LANGUAGES = frozenset({"zh", "en"})
DEFAULT_LANGUAGE = "zh"


# Structure: {message_key: {language_code: translated_message}}
TRANSLATIONS: dict[str, dict[str, str]] = {
    # Alert template
    "alert.title": {
        "zh": "域名到期提醒",
        "en": "Domain expiry reminder",
    },
    "alert.intro": {
        "zh": "以下域名将在{days}天内到期：",
        "en": "The following domains expire within {days} days:",
    },
    "alert.domain": {
        "zh": "域名",
        "en": "Domain",
    },
    "alert.registrar": {
        "zh": "注册商",
        "en": "Registrar",
    },
    "alert.expires_on": {
        "zh": "到期时间",
        "en": "Expires on",
    },
    "alert.days_remaining": {
        "zh": "剩余天数",
        "en": "Days remaining",
    },
    "alert.days_value": {
        "zh": "{days}天",
        "en": "{days} days",
    },
    "alert.renewal_url": {
        "zh": "续费链接",
        "en": "Renewal link",
    },
    "alert.footer": {
        "zh": "请及时续费以避免域名过期！",
        "en": "Please renew in time to avoid losing these domains!",
    },

    # Dispatch summaries
    "dispatch.channel_sent": {
        "zh": "{channel}: 已发送",
        "en": "{channel}: sent",
    },
    "dispatch.channel_failed": {
        "zh": "{channel}: 发送失败: {error}",
        "en": "{channel}: failed: {error}",
    },
    "dispatch.state.disabled": {
        "zh": "通知已关闭",
        "en": "Notifications are disabled",
    },
    "dispatch.state.nothing_expiring": {
        "zh": "没有即将到期的域名",
        "en": "No domains are expiring soon",
    },
    "dispatch.state.no_active_channels": {
        "zh": "有 {count} 个域名即将到期，但未配置任何通知方式",
        "en": "{count} domain(s) expiring soon, but no notification channel is configured",
    },
    "dispatch.state.dispatched": {
        "zh": "通知已发送",
        "en": "Notifications dispatched",
    },

    # CLI messages
    "cli.skipped": {
        "zh": "今天已经提醒过（或已选择今日不再提醒），跳过。",
        "en": "Already notified today (or snoozed for today), skipping.",
    },
    "cli.snoozed": {
        "zh": "今日不再提醒。",
        "en": "Snoozed until tomorrow.",
    },
    "cli.no_expiring": {
        "zh": "没有即将到期的域名。",
        "en": "No domains are expiring soon.",
    },
    "cli.expiring_header": {
        "zh": "{count} 个域名将在 {days} 天内到期：",
        "en": "{count} domain(s) expire within {days} days:",
    },
    "cli.no_channels": {
        "zh": "未配置任何通知方式。",
        "en": "No notification channel is configured.",
    },
    "cli.channels_header": {
        "zh": "已启用的通知方式：",
        "en": "Active notification channels:",
    },
    "simulation.enabled": {
        "zh": "模拟模式：不会真正发送任何通知",
        "en": "Simulation mode: no notification is actually sent",
    },
}


def get_message(key: str, language: str = DEFAULT_LANGUAGE, **kwargs) -> str:
    """
    Look up a message and fill in its placeholders.

    Unsupported languages fall back to Chinese; unknown keys come back
    unchanged. A template whose placeholders are not all supplied is
    returned as-is.
    """
    translations = TRANSLATIONS.get(key, {})
    if language not in SUPPORTED_LANGUAGES:
        language = DEFAULT_LANGUAGE
    template = translations.get(language) or translations.get(DEFAULT_LANGUAGE)
    if template is None:
        return key
    try:
        return template.format(**kwargs) if kwargs else template
    except KeyError:
        return template


def get_all_message_keys() -> set[str]:
    return set(TRANSLATIONS)


def get_missing_translations(language: str) -> set[str]:
    """Message keys with no entry for the given language."""
    return {key for key, entries in TRANSLATIONS.items() if language not in entries}


def validate_translations() -> dict[str, set[str]]:
    """Missing keys per supported language; all sets empty when complete."""
    return {language: get_missing_translations(language) for language in SUPPORTED_LANGUAGES}
