"""
Tests for number coercion, formatting and the per-user TTL cache.
"""
import pytest

from shopwise.utils.cache import _MISS, clear_for_user, get_cached, set_cached
from shopwise.utils.helpers import format_currency, format_number, to_number


class TestToNumber:

    @pytest.mark.parametrize("value,expected", [
        ("12.5", 12.5),
        (7, 7.0),
        (None, 0.0),
        ("", 0.0),
        ("abc", 0.0),
        ("nan", 0.0),
        ("inf", 0.0),
        ("1e400", 0.0),
        (10 ** 400, 0.0),
    ])
    def test_coercion(self, value, expected):
        assert to_number(value) == expected

    def test_custom_default(self):
        assert to_number("-inf", default=-1.0) == -1.0


class TestFormatting:

    @pytest.mark.parametrize("amount,text", [
        (1500, "1,500"),
        (1234.5, "1,234.5"),
        (1234.5678, "1,234.568"),
        (0, "0"),
        (-0.0001, "0"),
    ])
    def test_format_number(self, amount, text):
        assert format_number(amount) == text

    def test_format_currency(self):
        assert format_currency(2500000) == "₹2,500,000"


class TestUserCache:

    def test_clear_only_touches_that_user(self):
        set_cached("dashboard_summary|a", "A", 60, user_id="a")
        set_cached("dashboard_summary|b|a", "B", 60, user_id="b|a")

        clear_for_user("a")

        assert get_cached("dashboard_summary|a") is _MISS
        assert get_cached("dashboard_summary|b|a") == "B"
        clear_for_user("b|a")

    def test_expired_entry_is_a_miss(self):
        set_cached("dashboard_summary|expired", "old", -1, user_id="expired")
        assert get_cached("dashboard_summary|expired") is _MISS
