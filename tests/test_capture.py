"""Tests for the quick-capture parser."""

from datetime import datetime, timedelta

import pytest

from focus.core.capture import parse, resolve_date_keyword


@pytest.fixture
def now():
    # A Wednesday
    return datetime(2025, 1, 15, 10, 0)


class TestParse:
    def test_full_example(self, now):
        draft = parse("Buy milk @errands #tomorrow !flag", now)
        assert draft.title == "Buy milk"
        assert draft.context_names == ["errands"]
        assert draft.flagged is True
        assert draft.defer_at == now + timedelta(days=1)

    def test_plain_title(self, now):
        draft = parse("Call mom", now)
        assert draft.title == "Call mom"
        assert draft.context_names == []
        assert draft.flagged is False
        assert draft.defer_at is None

    def test_order_independent(self, now):
        draft = parse("!flag @home Fix #today the sink", now)
        assert draft.title == "Fix the sink"
        assert draft.context_names == ["home"]
        assert draft.defer_at == now

    def test_bare_bang_flags(self, now):
        assert parse("Pay rent !", now).flagged is True

    def test_bang_inside_word_is_title(self, now):
        draft = parse("Wow! great", now)
        assert draft.title == "Wow! great"
        assert draft.flagged is False

    def test_multiple_contexts_deduplicated(self, now):
        draft = parse("Plan trip @home @phone @home", now)
        assert draft.context_names == ["home", "phone"]

    def test_only_first_at_is_the_marker(self, now):
        draft = parse("Reply @@team", now)
        assert draft.title == "Reply"
        assert draft.context_names == ["@team"]

    def test_double_at_is_a_context(self, now):
        draft = parse("Email @@", now)
        assert draft.title == "Email"
        assert draft.context_names == ["@"]

    def test_lone_at_sign_is_title(self, now):
        assert parse("Meet @ noon", now).title == "Meet @ noon"

    def test_unknown_hash_keyword_is_title(self, now):
        draft = parse("Fix bug #123", now)
        assert draft.title == "Fix bug #123"
        assert draft.defer_at is None

    def test_keyword_case_insensitive(self, now):
        assert parse("Stretch #Tomorrow", now).defer_at == now + timedelta(days=1)

    def test_only_keywords_falls_back_to_input(self, now):
        draft = parse("  @errands !flag ", now)
        assert draft.title == "@errands !flag"
        assert draft.context_names == ["errands"]
        assert draft.flagged is True

    def test_collapses_whitespace(self, now):
        assert parse("Buy   milk", now).title == "Buy milk"

    @pytest.mark.parametrize("text", ["", "   "])
    def test_blank_rejected(self, text, now):
        with pytest.raises(ValueError):
            parse(text, now)


class TestDateKeywords:
    def test_today(self, now):
        assert resolve_date_keyword("today", now) == now

    def test_tomorrow(self, now):
        assert resolve_date_keyword("tomorrow", now) == datetime(2025, 1, 16, 10, 0)

    def test_weekend_is_next_saturday(self, now):
        assert resolve_date_keyword("weekend", now) == datetime(2025, 1, 18, 10, 0)

    def test_weekend_on_saturday_is_following_week(self):
        saturday = datetime(2025, 1, 18, 9, 0)
        assert resolve_date_keyword("weekend", saturday) == datetime(2025, 1, 25, 9, 0)

    def test_weekend_on_sunday(self):
        sunday = datetime(2025, 1, 19, 9, 0)
        assert resolve_date_keyword("weekend", sunday) == datetime(2025, 1, 25, 9, 0)

    def test_unknown(self, now):
        assert resolve_date_keyword("someday", now) is None
