"""Utility functions for bonustrack."""

from bonustrack.utils.parsing import (
    parse_amount,
    parse_bool,
    parse_date,
    read_file,
)

__all__ = ["parse_date", "parse_amount", "parse_bool", "read_file"]
