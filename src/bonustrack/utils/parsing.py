"""Parsing helpers for bonus import files and CLI arguments."""

import csv
import io
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path

# Accepted date layouts, tried in order
DATE_FORMATS = (
    "%Y-%m-%d",  # 2026-01-30
    "%m/%d/%Y",  # 01/30/2026
    "%d %b %Y",  # 30 Jan 2026
    "%d %B %Y",  # 30 January 2026
    "%b %d, %Y",  # Jan 30, 2026
)

TRUE_VALUES = frozenset({"1", "1.0", "true", "yes", "y", "t"})
FALSE_VALUES = frozenset({"0", "0.0", "false", "no", "n", "f"})

# OLE2 compound document header, used by legacy .xls workbooks
_OLE2_MAGIC = b"\xd0\xcf\x11\xe0"

_ISO_TIMESTAMP = re.compile(r"^(\d{4}-\d{2}-\d{2})T")
_CURRENCY = re.compile(r"USD|[$\s,]")


def _unquote(value: str) -> str:
    return value.strip().strip('"').strip()


def parse_date(date_str: str) -> date | None:
    """
    Parse a deadline or received date.

    ISO timestamps as sent by the dashboard API are cut down to their
    date part. See DATE_FORMATS for the other accepted layouts.

    Args:
        date_str: Date string to parse

    Returns:
        date object if successful, None otherwise
    """
    text = _unquote(date_str)
    if not text:
        return None

    match = _ISO_TIMESTAMP.match(text)
    if match:
        text = match.group(1)

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            pass
    return None


def parse_amount(amount_str: str) -> Decimal | None:
    """
    Parse a dollar amount, spend figure or points balance.

    Accepts "$1,234.56", "USD 300", "-20" and accounting-style "(20)".
    NaN and infinities are rejected.

    Args:
        amount_str: Amount string to parse

    Returns:
        Decimal if successful, None otherwise
    """
    text = _unquote(amount_str or "")
    negative = text.startswith("(") and text.endswith(")")
    if negative:
        text = text[1:-1]

    text = _CURRENCY.sub("", text)
    if text.startswith("-"):
        negative = True
        text = text[1:]
    if not text:
        return None

    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return -value if negative else value


def parse_bool(value: str, default: bool = False) -> bool:
    """
    Parse a yes/no column such as "Is Taxable" or "Form 1099 Received".

    Args:
        value: Raw cell value
        default: Returned for empty cells

    Returns:
        Parsed boolean

    Raises:
        ValueError: If the value is not a recognised flag
    """
    text = _unquote(value).lower()
    if not text:
        return default
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ValueError(f"Not a yes/no value: {text!r}")


def read_file(filepath: Path) -> str:
    """
    Read an import file as text.

    Legacy Excel workbooks are detected by extension or header bytes and
    converted to CSV text from their first sheet.

    Args:
        filepath: Path to the file

    Returns:
        File content as string

    Raises:
        ValueError: If the file cannot be read
    """
    try:
        with open(filepath, "rb") as f:
            header = f.read(len(_OLE2_MAGIC))
    except OSError as e:
        raise ValueError(f"Could not read file {filepath}: {e}") from e

    if header == _OLE2_MAGIC or filepath.suffix.lower() == ".xls":
        return _read_excel(filepath)
    return _read_text(filepath)


def _read_text(filepath: Path) -> str:
    """Decode a text file, trying common spreadsheet export encodings."""
    try:
        return filepath.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError:
        # latin-1 decodes any byte sequence
        return filepath.read_text(encoding="latin-1")


def _read_excel(filepath: Path) -> str:
    """Convert the first sheet of an .xls workbook to CSV text."""
    try:
        import xlrd  # type: ignore[import-untyped]
    except ImportError as err:
        raise ValueError(
            "xlrd is required to import .xls files. Install with: pip install xlrd"
        ) from err

    try:
        book = xlrd.open_workbook(str(filepath))
    except xlrd.XLRDError as e:
        raise ValueError(f"Could not read Excel file {filepath}: {e}") from e

    sheet = book.sheet_by_index(0)
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    for row in range(sheet.nrows):
        cells = []
        for cell in sheet.row(row):
            if cell.ctype == xlrd.XL_CELL_DATE:
                value = xlrd.xldate_as_datetime(cell.value, book.datemode)
                cells.append(value.date().isoformat())
            elif cell.ctype == xlrd.XL_CELL_NUMBER and float(cell.value).is_integer():
                cells.append(str(int(cell.value)))
            else:
                cells.append(str(cell.value))
        writer.writerow(cells)
    return out.getvalue()
