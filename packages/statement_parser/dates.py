"""Date normalization to ISO ``YYYY-MM-DD``.

Never fails: anything that cannot be resolved becomes today's date, and the
returned ``NormalizedDate`` says so through ``was_defaulted``.
"""

import re
from datetime import date, datetime, timedelta
from typing import Any

import pandas as pd

from .models import NormalizedDate

DATE_TOKEN = re.compile(r"\d{1,2}[-/.]\d{1,2}[-/.]\d{2,4}")

# Spreadsheet serial day 0 (the 1900 leap-year bug is folded into the epoch)
EXCEL_EPOCH = date(1899, 12, 30)

_NON_DATE_CHARS = re.compile(r"[^\d\-/]")
_SPREADSHEET_CHARS = re.compile(r"[^\d\-/\s]")
_SEPARATORS = re.compile(r"[-/]")
_EXCEL_SERIAL = re.compile(r"^\d{5}$")
_DAY_FIRST = re.compile(r"^\d{1,2}[-/]\d{1,2}[-/]\d{2,4}$")
_YEAR_FIRST = re.compile(r"^\d{4}[-/]\d{1,2}[-/]\d{1,2}$")


def today_iso() -> str:
    return date.today().isoformat()


def _default() -> NormalizedDate:
    return NormalizedDate(today_iso(), True)


def _from_parts(parts) -> NormalizedDate:
    if len(parts) == 3:
        first, second, third = parts
        if len(third) == 4:
            return NormalizedDate(f"{third}-{second.zfill(2)}-{first.zfill(2)}", False)
        if len(first) == 4:
            return NormalizedDate(f"{first}-{second.zfill(2)}-{third.zfill(2)}", False)
    return _default()


def _normalize_spreadsheet(text: str) -> NormalizedDate:
    cleaned = _SPREADSHEET_CHARS.sub("", text).strip()

    if _EXCEL_SERIAL.match(cleaned):
        return NormalizedDate((EXCEL_EPOCH + timedelta(days=int(cleaned))).isoformat(), False)

    if _DAY_FIRST.match(cleaned):
        day, month, year = _SEPARATORS.split(cleaned)
        if len(year) == 2:
            year = ("19" if int(year) > 50 else "20") + year
        return NormalizedDate(f"{year}-{month.zfill(2)}-{day.zfill(2)}", False)

    if _YEAR_FIRST.match(cleaned):
        year, month, day = _SEPARATORS.split(cleaned)
        return NormalizedDate(f"{year}-{month.zfill(2)}-{day.zfill(2)}", False)

    return _default()


def normalize_date(raw: Any, spreadsheet: bool = False) -> NormalizedDate:
    """Canonicalize a statement date.

    Args:
        raw: Date text (DD-MM-YYYY, DD/MM/YYYY, YYYY-MM-DD, ...) or a
             date/datetime/Timestamp object.
        spreadsheet: Also accept Excel serial numbers and two-digit years,
                     as spreadsheet cells often carry them.

    Returns:
        NormalizedDate with the ISO value and the defaulted flag.
    """
    if raw is None:
        return _default()
    if isinstance(raw, (datetime, pd.Timestamp)):
        if pd.isna(raw):
            return _default()
        return NormalizedDate(raw.date().isoformat(), False)
    if isinstance(raw, date):
        return NormalizedDate(raw.isoformat(), False)

    text = str(raw)
    if not text.strip():
        return _default()

    if spreadsheet:
        return _normalize_spreadsheet(text)

    cleaned = _NON_DATE_CHARS.sub("", text)
    return _from_parts(_SEPARATORS.split(cleaned))


def normalize(raw: Any) -> str:
    """Return only the ISO value of :func:`normalize_date`."""
    return normalize_date(raw).value
