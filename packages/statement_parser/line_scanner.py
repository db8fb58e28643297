"""Keyword line scanning for statement text without a usable table layout.

Used when the structured pass finds nothing: every line carrying a payment
rail tag or a date followed by figures is read as one transaction, and as a
last resort any three consecutive tokens holding a date and an amount are.
"""

import logging
import re
from typing import List, Optional, Sequence

from .dates import normalize_date
from .models import (
    UNKNOWN_CUSTOMER,
    TransactionRecord,
    TransactionType,
    classify_transaction,
)
from .name_extractor import extract_name
from .row_parser import WITHDRAWAL_HINTS

logger = logging.getLogger(__name__)

MAX_REASONABLE_AMOUNT = 10_000_000
NEARBY_DATE_LINES = 5
RAIL_TAGS = ("MPAY", "UPI", "TRANSFER", "NEFT", "RTGS")

_LINE_SPLIT = re.compile(r"[\n\r\f\t]+")
_TOKEN_SPLIT = re.compile(r"\s+")
_DATE = re.compile(r"(\d{1,2}[-/]\d{1,2}[-/]\d{2,4})")
_AMOUNT = re.compile(r"\d{1,3}(?:,\d{3})*(?:\.\d{2})?")
_DATED_FIGURES = re.compile(r"\d{2}[-/]\d{2}[-/]\d{4}.*\d+\.?\d*")
_LEADING_SERIAL = re.compile(r"^\s*\d+\s+")


def is_transaction_line(line: str) -> bool:
    return any(tag in line for tag in RAIL_TAGS) or bool(_DATED_FIGURES.search(line))


def _find_date(lines: Sequence[str], index: int) -> Optional[str]:
    match = _DATE.search(lines[index])
    if match:
        return match.group(1)

    start = max(0, index - NEARBY_DATE_LINES)
    stop = min(len(lines) - 1, index + NEARBY_DATE_LINES)
    for nearby in range(start, stop + 1):
        match = _DATE.search(lines[nearby])
        if match:
            return match.group(1)
    return None


def _main_amount(line: str) -> float:
    """Largest plausible figure outside the line's dates, else the last figure."""
    undated = _DATE.sub(" ", line)
    figures = [float(token.replace(",", "")) for token in _AMOUNT.findall(undated)]
    if not figures:
        return 0.0

    plausible = [value for value in figures if 0 < value < MAX_REASONABLE_AMOUNT]
    if plausible:
        return max(plausible)
    return figures[-1]


def parse_line(lines: Sequence[str], index: int) -> Optional[TransactionRecord]:
    """Read ``lines[index]`` as one transaction, or None if it has no amount."""
    line = lines[index].strip()

    amount = _main_amount(line)
    if amount == 0 or amount > MAX_REASONABLE_AMOUNT:
        logger.debug(f"Rejecting line with amount {amount}: {line[:50]}")
        return None

    raw_date = _find_date(lines, index)
    date, date_defaulted = normalize_date(raw_date)

    lowered = line.lower()
    is_withdrawal = any(hint in lowered for hint in WITHDRAWAL_HINTS)

    return TransactionRecord(
        date=date,
        particulars=_LEADING_SERIAL.sub("", line).strip(),
        depositor=extract_name(line),
        withdrawals=amount if is_withdrawal else 0.0,
        deposits=0.0 if is_withdrawal else amount,
        type=classify_transaction(line),
        date_defaulted=date_defaulted,
    )


def scan_statement_lines(text: str) -> List[TransactionRecord]:
    """Parse every rail-tagged or dated line of ``text``."""
    lines = _LINE_SPLIT.split(text or "")
    records = []

    for index, raw in enumerate(lines):
        line = raw.strip()
        if not line or not is_transaction_line(line):
            continue
        record = parse_line(lines, index)
        if record is not None:
            records.append(record)

    logger.info(f"Line scan found {len(records)} transactions in {len(lines)} lines")
    return records


def scan_windows(text: str) -> List[TransactionRecord]:
    """Slide a three-token window over the text looking for date + amount."""
    tokens = [token for token in _TOKEN_SPLIT.split(text or "") if token]
    records = []

    for index in range(len(tokens) - 2):
        window = " ".join(tokens[index : index + 3])
        date_match = _DATE.search(window)
        if not date_match:
            continue
        # digits of any date in the window do not count as the amount
        amount_match = _AMOUNT.search(_DATE.sub(" ", window))
        if not amount_match:
            continue

        date, date_defaulted = normalize_date(date_match.group(1))
        records.append(
            TransactionRecord(
                date=date,
                particulars=window,
                depositor=UNKNOWN_CUSTOMER,
                deposits=float(amount_match.group().replace(",", "")),
                type=TransactionType.OTHER,
                date_defaulted=date_defaulted,
            )
        )

    logger.info(f"Window scan found {len(records)} candidate transactions")
    return records
