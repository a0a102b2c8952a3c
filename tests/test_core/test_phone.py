"""Tests for phone number normalization."""

import pytest

from salestrack.core.exceptions import ValidationError
from salestrack.core.phone import normalize_phone


class TestNormalizePhone:
    """Test normalize_phone."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("0700111222", "0700111222"),
            ("0700 111-222", "0700111222"),
            ("(0700) 111.222", "0700111222"),
            ("+256 700 111 222", "+256700111222"),
            ("  0700/111/222  ", "0700111222"),
        ],
    )
    def test_strips_separators(self, raw, expected):
        """Separators go, digits and a leading plus stay."""
        assert normalize_phone(raw) == expected

    def test_keeps_leading_zero(self):
        """Local numbers keep their trunk prefix."""
        assert normalize_phone("0712345678").startswith("0")

    @pytest.mark.parametrize("raw", ["", "   ", "---", None])
    def test_no_digits_raises(self, raw):
        """Nothing dialable is rejected."""
        with pytest.raises(ValidationError):
            normalize_phone(raw)

    def test_letters_raise(self):
        """Vanity letters are not translated."""
        with pytest.raises(ValidationError):
            normalize_phone("0800-FLOWERS")
