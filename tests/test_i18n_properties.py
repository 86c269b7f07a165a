"""
Property-based tests for internationalization (i18n) module.

Uses Hypothesis to verify that every message exists in both Chinese and
English and that lookups fall back sensibly.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from expiry_notifier.enums import DispatchState
from expiry_notifier.i18n import (
    TRANSLATIONS,
    SUPPORTED_LANGUAGES,
    DEFAULT_LANGUAGE,
    get_message,
    get_all_message_keys,
    get_missing_translations,
    validate_translations,
)


class TestTranslationCoverageProperty:
    """Both languages have all message translations."""

    def test_all_languages_have_all_translations(self) -> None:
        assert len(get_all_message_keys()) > 0, "No translations defined"

        for language in SUPPORTED_LANGUAGES:
            missing = get_missing_translations(language)
            assert len(missing) == 0, (
                f"Language '{language}' is missing translations for: {missing}"
            )

    @given(key=st.sampled_from(list(TRANSLATIONS.keys())))
    @settings(max_examples=100)
    def test_translations_are_non_empty(self, key: str) -> None:
        for language in SUPPORTED_LANGUAGES:
            assert TRANSLATIONS[key][language].strip()

    @given(
        key=st.sampled_from(list(TRANSLATIONS.keys())),
        language=st.sampled_from(list(SUPPORTED_LANGUAGES)),
    )
    @settings(max_examples=100)
    def test_get_message_returns_string(self, key: str, language: str) -> None:
        message = get_message(key, language, days=15, count=2, channel="qq", error="timeout")

        assert isinstance(message, str)
        assert "{" not in message

    def test_validate_translations_returns_empty_sets(self) -> None:
        assert validate_translations() == {language: set() for language in SUPPORTED_LANGUAGES}

    def test_every_dispatch_state_has_a_message(self) -> None:
        for state in DispatchState:
            assert f"dispatch.state.{state.value}" in TRANSLATIONS


class TestGetMessageFunction:
    """Lookup and fallback behavior."""

    def test_default_language_is_chinese(self) -> None:
        assert DEFAULT_LANGUAGE == "zh"
        assert get_message("alert.title") == "域名到期提醒"

    def test_invalid_language_uses_default(self) -> None:
        assert get_message("alert.title", "de") == get_message("alert.title", "zh")

    def test_unknown_key_returns_key(self) -> None:
        assert get_message("no.such.key", "en") == "no.such.key"

    def test_format_args(self) -> None:
        assert get_message("alert.intro", "en", days=7) == "The following domains expire within 7 days:"
        assert get_message("alert.days_value", "zh", days=3) == "3天"

    def test_missing_format_args_leave_template(self) -> None:
        assert get_message("alert.intro", "en", other=1) == TRANSLATIONS["alert.intro"]["en"]
