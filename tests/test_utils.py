"""Tests for import parsing helpers."""

from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from bonustrack.utils import parse_amount, parse_bool, parse_date, read_file


class TestParseDate:
    """Tests for parse_date."""

    def test_mm_dd_yyyy_slash(self) -> None:
        """Test MM/DD/YYYY format."""
        assert parse_date("01/30/2026") == date(2026, 1, 30)
        assert parse_date("12/01/2025") == date(2025, 12, 1)

    def test_dd_mmm_yyyy(self) -> None:
        """Test DD MMM YYYY format."""
        assert parse_date("30 Jan 2026") == date(2026, 1, 30)
        assert parse_date("1 December 2025") == date(2025, 12, 1)

    def test_mmm_dd_yyyy(self) -> None:
        """Test MMM DD, YYYY format."""
        assert parse_date("Jan 30, 2026") == date(2026, 1, 30)

    def test_yyyy_mm_dd(self) -> None:
        """Test YYYY-MM-DD format."""
        assert parse_date("2026-01-30") == date(2026, 1, 30)

    def test_iso_timestamp(self) -> None:
        """Test the time part of an ISO timestamp is dropped."""
        assert parse_date("2026-01-30T00:00:00.000Z") == date(2026, 1, 30)

    def test_quoted_date(self) -> None:
        """Test a quoted CSV cell."""
        assert parse_date('"01/30/2026"') == date(2026, 1, 30)

    def test_empty_string(self) -> None:
        """Test blank input gives None."""
        assert parse_date("") is None
        assert parse_date("   ") is None

    def test_invalid_date(self) -> None:
        """Test unparseable dates give None."""
        assert parse_date("next tuesday") is None
        assert parse_date("13/32/2026") is None


class TestParseAmount:
    """Tests for parse_amount."""

    def test_simple_amount(self) -> None:
        """Test plain numbers."""
        assert parse_amount("300.50") == Decimal("300.50")
        assert parse_amount("60000") == Decimal("60000")

    def test_negative_amount(self) -> None:
        """Test a leading minus sign."""
        assert parse_amount("-25.00") == Decimal("-25.00")

    def test_thousands_separator(self) -> None:
        """Test commas between thousands."""
        assert parse_amount("1,234.56") == Decimal("1234.56")
        assert parse_amount("60,000") == Decimal("60000")

    def test_currency_symbol(self) -> None:
        """Test dollar signs and USD prefixes."""
        assert parse_amount("USD 123.45") == Decimal("123.45")
        assert parse_amount("$123.45") == Decimal("123.45")

    def test_quoted_amount(self) -> None:
        """Test values wrapped in quotes."""
        assert parse_amount('"1,234.56"') == Decimal("1234.56")

    def test_parentheses_negative(self) -> None:
        """Test accounting-style negatives."""
        assert parse_amount("($123.45)") == Decimal("-123.45")

    def test_empty_string(self) -> None:
        """Test blank input gives None."""
        assert parse_amount("") is None
        assert parse_amount("   ") is None

    def test_invalid_amount(self) -> None:
        """Test junk and non-finite values give None."""
        assert parse_amount("lots") is None
        assert parse_amount("NaN") is None
        assert parse_amount("Infinity") is None


class TestParseBool:
    """Tests for parse_bool."""

    def test_true_values(self) -> None:
        """Test recognised true values."""
        for value in ("yes", "Y", "true", "TRUE", "1", "1.0"):
            assert parse_bool(value) is True

    def test_false_values(self) -> None:
        """Test recognised false values."""
        for value in ("no", "N", "false", "0", "0.0"):
            assert parse_bool(value, default=True) is False

    def test_empty_uses_default(self) -> None:
        """Test empty values give the default."""
        assert parse_bool("") is False
        assert parse_bool("  ", default=True) is True

    def test_invalid(self) -> None:
        """Test unrecognised values raise."""
        with pytest.raises(ValueError):
            parse_bool("maybe")


class TestReadFile:
    """Tests for read_file."""

    def test_reads_utf8_with_bom(self, tmp_path: Path) -> None:
        """Test the BOM is stripped from UTF-8 files."""
        path = tmp_path / "bonuses.csv"
        path.write_bytes("\ufeffinstitution,amount\nChase,300\n".encode())
        assert read_file(path).startswith("institution,amount")

    def test_reads_latin1(self, tmp_path: Path) -> None:
        """Test falling back to latin-1."""
        path = tmp_path / "bonuses.csv"
        path.write_bytes("institution\nBanco Espa\xf1ol\n".encode("latin-1"))
        assert "Banco Español" in read_file(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test a missing file raises ValueError."""
        with pytest.raises(ValueError, match="Could not read file"):
            read_file(tmp_path / "missing.csv")
