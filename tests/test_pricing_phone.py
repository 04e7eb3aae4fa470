"""Distribution / printing prices and French phone numbers."""

import pytest

from distri.services.phone import format_french_phone, is_valid_french_phone
from distri.services.pricing import distribution_cost, printing_cost


class TestPricing:
    def test_distribution_cost(self):
        assert distribution_cost(5000) == 500.0
        assert distribution_cost(5000.5) == 500.1
        assert distribution_cost(0) == 0.0

    @pytest.mark.parametrize(
        "fmt,quantity,price",
        [
            ("A6", 500, 117.0),
            ("A6", 1000, 117.0),
            ("A6", 1001, 135.0),
            ("A6", 5000, 150.0),
            ("A6", 5900, 222.0),
            ("A6", 250000, 4965.0),
            ("A5", 2500, 72.0),
            ("a5", 100000, 1143.0),
        ],
    )
    def test_printing_tiers(self, fmt, quantity, price):
        assert printing_cost(fmt, quantity) == price

    def test_printing_unknown_format_or_empty(self):
        assert printing_cost("A4", 5000) is None
        assert printing_cost("A5", 0) is None


class TestPhone:
    @pytest.mark.parametrize(
        "phone",
        ["06 12 34 56 78", "0612345678", "+33612345678", "0033 6 12 34 56 78", "612345678", "(06).12-34-56-78"],
    )
    def test_valid(self, phone):
        assert is_valid_french_phone(phone)

    @pytest.mark.parametrize("phone", ["0012345678", "12345", "+3361234567", "abcdefghij", "", "061234567890"])
    def test_invalid(self, phone):
        assert not is_valid_french_phone(phone)

    def test_format(self):
        assert format_french_phone("+33612345678") == "06 12 34 56 78"
        assert format_french_phone("0033612345678") == "06 12 34 56 78"
        assert format_french_phone("612345678") == "06 12 34 56 78"
        assert format_french_phone("06.12.34.56.78") == "06 12 34 56 78"

    def test_format_leaves_unknown_input(self):
        assert format_french_phone("12345") == "12345"
