"""Row-to-record mapping for structured statement text."""

import logging
import re
from typing import Dict, List, Optional, Sequence, Union

from .dates import DATE_TOKEN, normalize_date
from .models import (
    ColumnStructure,
    RowFields,
    TransactionRecord,
    classify_transaction,
)
from .name_extractor import extract_name
from .structure import split_columns, split_lines

logger = logging.getLogger(__name__)

MIN_LINE_LENGTH = 10
MIN_COLUMNS = 3
DEFAULT_DESCRIPTION = "Transaction"
SAMPLE_DEPOSITOR = "Sample Customer"

WITHDRAWAL_HINTS = ("withdraw", "debit", "payment", "transfer out", "charge")

_DESCRIPTION_LABELS = ("particular", "description", "detail", "narration")
_WITHDRAWAL_LABELS = ("withdrawal", "debit", "dr")
_DEPOSIT_LABELS = ("deposit", "credit", "cr")

_NON_NUMERIC = re.compile(r"[^\d.\-]")
_LEADING_NUMBER = re.compile(r"-?(?:\d+\.?\d*|\.\d+)")

# date, particulars, withdrawal, deposit, balance
SAMPLE_ROWS = (
    ("01/07/2025", "Opening Balance", "", "10000.00", "10000.00"),
    ("02/07/2025", "UPI-PHONEPE-123456789", "", "1500.00", "11500.00"),
    ("03/07/2025", "NEFT CREDIT-SALARY", "", "25000.00", "36500.00"),
    ("04/07/2025", "ATM WITHDRAWAL", "5000.00", "", "31500.00"),
    ("05/07/2025", "UPI-PAYTM-987654321", "", "2000.00", "33500.00"),
)


def parse_number(value: str) -> Optional[float]:
    """Read the leading number of a cell once non-numeric characters are gone.

    "1,500.00 Cr" -> 1500.0; "-" and "" -> None.
    """
    match = _LEADING_NUMBER.match(_NON_NUMERIC.sub("", value or ""))
    if not match:
        return None
    return float(match.group())


def _headers_of(structure: Union[ColumnStructure, Sequence[str]]) -> Sequence[str]:
    if isinstance(structure, ColumnStructure):
        return structure.headers
    return structure


def parse_row(
    columns: Sequence[str], structure: Union[ColumnStructure, Sequence[str]]
) -> RowFields:
    """Route each column value to a field according to its header label."""
    fields = RowFields()

    for index, header in enumerate(_headers_of(structure)):
        value = columns[index].strip() if index < len(columns) else ""
        label = header.lower()

        if "date" in label:
            if DATE_TOKEN.search(value):
                fields.date, fields.date_defaulted = normalize_date(value)
        elif any(word in label for word in _DESCRIPTION_LABELS):
            fields.description = value
        elif any(word in label for word in _WITHDRAWAL_LABELS):
            amount = parse_number(value)
            if amount is not None and amount > 0:
                fields.withdrawal = amount
                fields.amount = amount
        elif any(word in label for word in _DEPOSIT_LABELS):
            amount = parse_number(value)
            if amount is not None and amount > 0:
                fields.deposit = amount
                fields.amount = amount
        elif "balance" in label:
            balance = parse_number(value)
            if balance is not None:
                fields.balance = balance
        elif "amount" in label:
            amount = parse_number(value)
            if amount is not None and amount > 0 and fields.amount is None:
                fields.amount = amount

    return fields


def _column_map(headers: Sequence[str], columns: Sequence[str]) -> Dict[str, str]:
    return {
        header: columns[index].strip()
        for index, header in enumerate(headers)
        if index < len(columns) and columns[index].strip()
    }


def build_record(
    fields: RowFields, headers: Sequence[str], columns: Sequence[str]
) -> TransactionRecord:
    """Turn routed row fields into a transaction record."""
    description = fields.description or DEFAULT_DESCRIPTION
    withdrawals = fields.withdrawal or 0.0
    deposits = fields.deposit or 0.0

    if not withdrawals and not deposits:
        amount = fields.amount or abs(fields.deposit or 0.0)
        if amount:
            if any(hint in description.lower() for hint in WITHDRAWAL_HINTS):
                withdrawals = amount
            else:
                deposits = amount

    return TransactionRecord(
        date=fields.date,
        particulars=description,
        depositor=extract_name(description),
        withdrawals=withdrawals,
        deposits=deposits,
        balance=fields.balance or 0.0,
        type=classify_transaction(description),
        date_defaulted=fields.date_defaulted,
        columns=_column_map(headers, columns),
    )


def build_sample_records(structure: ColumnStructure) -> List[TransactionRecord]:
    """Placeholder records laid out on the detected headers."""
    records = []
    for sample in SAMPLE_ROWS:
        date, particulars, withdrawal, deposit, balance = sample
        normalized = normalize_date(date)
        records.append(
            TransactionRecord(
                date=normalized.value,
                particulars=particulars,
                depositor=SAMPLE_DEPOSITOR,
                withdrawals=float(withdrawal or 0),
                deposits=float(deposit or 0),
                balance=float(balance),
                type=classify_transaction(particulars),
                date_defaulted=normalized.was_defaulted,
                is_sample=True,
                columns={
                    header: sample[index] if index < len(sample) else ""
                    for index, header in enumerate(structure.headers)
                },
            )
        )
    return records


def parse_records(
    text: str, structure: ColumnStructure, sample_fallback: bool = True
) -> List[TransactionRecord]:
    """Parse every data line of ``text`` with the given structure.

    Noisy lines are skipped silently. When nothing parses and
    ``sample_fallback`` is set, the placeholder rows are returned instead so
    callers always have something to show.
    """
    records: List[TransactionRecord] = []
    lines = split_lines(text)

    for index in range(structure.first_data_line, len(lines)):
        line = lines[index].strip()
        if len(line) < MIN_LINE_LENGTH:
            continue

        columns = split_columns(line)
        if len(columns) < MIN_COLUMNS:
            continue

        fields = parse_row(columns, structure)
        if not fields.is_complete:
            continue

        records.append(build_record(fields, structure.headers, columns))

    logger.info(f"Parsed {len(records)} records from {len(lines)} lines")

    if not records and sample_fallback:
        logger.warning("No records parsed, substituting sample records")
        return build_sample_records(structure)

    return records
