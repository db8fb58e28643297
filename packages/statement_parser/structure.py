"""Column structure detection for recovered statement text.

Tries, in order: a known header template, a table-like header line, column
labels inferred from the first data-looking line, and finally a default
layout. Always returns a structure.
"""

import logging
import re
from typing import List, Optional, Sequence, Tuple

from .dates import DATE_TOKEN
from .models import ColumnStructure

logger = logging.getLogger(__name__)

HEADER_SCAN_LINES = 50
INFERENCE_SCAN_LINES = 100

# Known bank statement header layouts
HEADER_TEMPLATES: Tuple[Tuple[str, ...], ...] = (
    ("Date", "Particulars", "Withdrawals", "Deposits", "Balance"),
    ("Date", "Description", "Debit", "Credit", "Balance"),
    ("Transaction Date", "Details", "Amount", "Balance"),
    ("Date", "Narration", "Dr", "Cr", "Balance"),
    ("Date", "Transaction Details", "Withdrawal", "Deposit", "Running Balance"),
    ("Txn Date", "Description", "Dr/Withdrawal", "Cr/Deposit", "Balance"),
    ("Value Date", "Description", "Debit Amount", "Credit Amount", "Available Balance"),
)

DEFAULT_HEADERS = ("Date", "Description", "Amount", "Balance")

COLUMN_SPLIT = re.compile(r"\s{2,}|\t")
LINE_SPLIT = re.compile(r"[\n\r]+")

_DATE_LABEL = re.compile(r"date|txn|value", re.IGNORECASE)
_AMOUNT_LABEL = re.compile(
    r"amount|balance|debit|credit|withdrawal|deposit|dr|cr", re.IGNORECASE
)
AMOUNT_TOKEN = re.compile(r"\d{1,3}(?:,\d{3})*(?:\.\d{2})?")
# Whole-cell amounts; ungrouped figures need their paise to count
AMOUNT_CELL = re.compile(r"^(?:\d{1,3}(?:,\d{3})*(?:\.\d{2})?|\d+\.\d{2})$")
_HAS_LETTER = re.compile(r"[A-Za-z]")


def split_lines(text: str) -> List[str]:
    return LINE_SPLIT.split(text or "")


def split_columns(line: str) -> List[str]:
    return COLUMN_SPLIT.split(line)


def _match_template(lines: Sequence[str]) -> Optional[ColumnStructure]:
    for index, line in enumerate(lines[:HEADER_SCAN_LINES]):
        lowered = line.strip().lower()
        for template in HEADER_TEMPLATES:
            if all(label.lower() in lowered for label in template):
                logger.debug(f"Exact header match at line {index}: {template}")
                return ColumnStructure(headers=template, header_line_index=index)
    return None


def _match_table_header(lines: Sequence[str]) -> Optional[ColumnStructure]:
    for index, line in enumerate(lines[:HEADER_SCAN_LINES]):
        columns = split_columns(line.strip())
        if len(columns) < 3:
            continue

        has_date = any(_DATE_LABEL.search(col) for col in columns)
        has_amount = any(_AMOUNT_LABEL.search(col) for col in columns)
        if has_date and has_amount:
            headers = tuple(col.strip() for col in columns)
            logger.debug(f"Partial header match at line {index}: {headers}")
            return ColumnStructure(headers=headers, header_line_index=index)
    return None


def infer_headers(columns: Sequence[str]) -> Tuple[str, ...]:
    """Label columns of a data row by what their contents look like.

    The first amount-shaped column is "Amount" and every later one "Balance",
    regardless of position.
    """
    labels: List[str] = []
    for index, column in enumerate(columns):
        cell = column.strip()
        if DATE_TOKEN.search(cell):
            labels.append("Date")
        elif AMOUNT_CELL.match(cell):
            labels.append("Balance" if "Amount" in labels else "Amount")
        elif _HAS_LETTER.search(cell):
            labels.append("Description")
        else:
            labels.append(f"Column {index + 1}")
    return tuple(labels)


def _infer_from_data(lines: Sequence[str]) -> Optional[ColumnStructure]:
    for index, line in enumerate(lines[:INFERENCE_SCAN_LINES]):
        stripped = line.strip()
        columns = split_columns(stripped)
        if len(columns) < 3:
            continue

        if DATE_TOKEN.search(stripped) and AMOUNT_TOKEN.search(stripped):
            headers = infer_headers(columns)
            logger.debug(f"Inferred headers from data line {index}: {headers}")
            return ColumnStructure(headers=headers, header_line_index=-1)
    return None


def detect_structure(text: str) -> ColumnStructure:
    """Infer the column layout of a statement's text."""
    lines = split_lines(text)

    for method in (_match_template, _match_table_header, _infer_from_data):
        structure = method(lines)
        if structure is not None:
            return structure

    logger.debug("No header or data pattern found, using default structure")
    return ColumnStructure(headers=DEFAULT_HEADERS, header_line_index=-1)
