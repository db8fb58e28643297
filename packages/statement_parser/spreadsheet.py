"""Spreadsheet statements: workbook bytes to a cell grid, grid to records."""

import io
import logging
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

import msoffcrypto
import pandas as pd

from .dates import normalize_date
from .errors import TextRecoveryFailed, WorkbookDecryptionFailed, WorkbookPasswordRequired
from .models import TransactionRecord, TransactionType, classify_transaction
from .name_extractor import extract_name

logger = logging.getLogger(__name__)

# OLE2 Compound Document magic bytes; encrypted Office files use this container
_OLE2_MAGIC = b"\xD0\xCF\x11\xE0\xA1\xB1\x1A\xE1"
_ZIP_MAGIC = b"PK\x03\x04"

CSV_EXTENSIONS = (".csv", ".tsv", ".txt")
EXCEL_EXTENSIONS = (".xlsx", ".xlsm", ".xls")
# latin-1 decodes any byte string, so it goes last
CSV_ENCODINGS = ("utf-8", "cp1252", "latin-1")

HEADER_SCAN_ROWS = 5
HEADER_HINTS = ("date", "amount", "depositor", "customer", "transaction", "particulars")
SHEET_HINTS = ("transaction", "statement", "data")

COLUMN_ALIASES: Dict[str, Sequence[str]] = {
    "date": ["date", "transaction date", "trans date"],
    "particulars": ["particulars", "description", "details", "narration", "reference"],
    "depositor": ["depositor", "customer", "name", "customer name", "from", "to"],
    "amount": ["amount", "transaction amount", "credit", "debit"],
    "deposits": ["deposits", "credit", "cr", "credit amount"],
    "withdrawals": ["withdrawals", "debit", "dr", "debit amount"],
    "balance": ["balance", "closing balance", "running balance"],
    "type": ["type", "transaction type", "mode", "channel"],
}

OUTFLOW_HINTS = ("withdraw", "debit", "payment", "transfer out")

_DATE_CELL = re.compile(r"\d{1,2}[-/]\d{1,2}[-/]\d{2,4}")
_CURRENCY_NOISE = re.compile(r"[₹$,\s]")
_LEADING_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)")


def _is_ole2(file_content: bytes) -> bool:
    """Check if file starts with the OLE2 magic bytes (indicates encryption wrapper)."""
    return file_content[:8] == _OLE2_MAGIC


def is_workbook(content: bytes, filename: Optional[str] = None) -> bool:
    """True when the bytes or the file name point at a spreadsheet."""
    name = (filename or "").lower()
    if name.endswith(CSV_EXTENSIONS + EXCEL_EXTENSIONS):
        return True
    return content[:4] == _ZIP_MAGIC or _is_ole2(content)


def _decrypt(file_content: bytes, password: Optional[str]) -> io.BytesIO:
    if not password:
        raise WorkbookPasswordRequired()

    decrypted_workbook = io.BytesIO()
    try:
        with io.BytesIO(file_content) as f:
            office_file = msoffcrypto.OfficeFile(f)
            office_file.load_key(password=password)
            office_file.decrypt(decrypted_workbook)
    except Exception as e:
        msg = str(e).lower()
        if "password" in msg or "decrypt" in msg or "key" in msg:
            raise WorkbookDecryptionFailed("Invalid password") from e
        raise WorkbookDecryptionFailed(f"Failed to decrypt file: {e}") from e

    decrypted_workbook.seek(0)
    return decrypted_workbook


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        if pd.isna(value):
            return ""
        return value.strftime("%d/%m/%Y")
    if isinstance(value, float):
        if pd.isna(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def choose_sheet(sheet_names: Sequence[str]) -> str:
    """First sheet named like a transaction listing, else the first sheet."""
    for name in sheet_names:
        if any(hint in str(name).lower() for hint in SHEET_HINTS):
            return name
    return sheet_names[0]


def _read_excel_grid(workbook: io.BytesIO) -> List[List[str]]:
    sheets = pd.read_excel(
        workbook, sheet_name=None, header=None, engine="openpyxl", dtype=object
    )
    if not sheets:
        raise TextRecoveryFailed("Workbook contains no sheets")

    sheet_name = choose_sheet(list(sheets))
    logger.info(f"Using sheet: {sheet_name}")
    df = sheets[sheet_name]
    return [[_cell_text(value) for value in row] for row in df.itertuples(index=False)]


def _read_csv_grid(content: bytes, sep: str = ",") -> List[List[str]]:
    for encoding in CSV_ENCODINGS:
        try:
            text = content.decode(encoding)
            break
        except UnicodeDecodeError:
            continue
    else:
        raise TextRecoveryFailed("Could not decode CSV file with any known encoding")

    lines = pd.Series(text.splitlines(), dtype=str)
    if not lines.str.strip().any():
        return []
    # ragged rows: size the frame by the widest line
    width = int(lines.str.count(re.escape(sep)).max()) + 1

    df = pd.read_csv(
        io.StringIO(text),
        header=None,
        sep=sep,
        names=list(range(width)),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        engine="python",
    )
    return [[_cell_text(value) for value in row] for row in df.itertuples(index=False)]


def read_workbook_grid(
    content: bytes, filename: Optional[str] = None, password: Optional[str] = None
) -> List[List[str]]:
    """Read a CSV or Excel statement into rows of cell text.

    Raises:
        WorkbookPasswordRequired: Encrypted workbook without password.
        WorkbookDecryptionFailed: Wrong password or corrupt encryption.
        TextRecoveryFailed: The content is not a readable spreadsheet.
    """
    name = (filename or "").lower()

    if _is_ole2(content):
        # OLE2: either a legacy .xls or an encrypted .xlsx
        workbook = _decrypt(content, password)
    elif content[:4] == _ZIP_MAGIC or name.endswith(EXCEL_EXTENSIONS):
        workbook = io.BytesIO(content)
    else:
        try:
            return _read_csv_grid(content, sep="\t" if name.endswith(".tsv") else ",")
        except TextRecoveryFailed:
            raise
        except Exception as e:
            raise TextRecoveryFailed(f"Could not read CSV file: {e}") from e

    try:
        return _read_excel_grid(workbook)
    except TextRecoveryFailed:
        raise
    except Exception as e:
        raise TextRecoveryFailed(f"Could not read Excel file: {e}") from e


def find_header_row(rows: Sequence[Sequence[str]]) -> int:
    """Index of the first of the leading rows that mentions a header word."""
    for index, row in enumerate(rows[:HEADER_SCAN_ROWS]):
        joined = "".join(str(cell) for cell in row).lower()
        if any(hint in joined for hint in HEADER_HINTS):
            return index
    return -1


def _has_words(text: str, words: str) -> bool:
    return re.search(rf"\b{re.escape(words)}\b", text) is not None


def find_column_index(headers: Sequence[str], aliases: Sequence[str]) -> int:
    """First header that contains an alias as whole words, or is contained in one.

    "cr" matches "Amount (Cr)" but not "Description"; "to" does not claim "Total".
    """
    for alias in aliases:
        for index, header in enumerate(headers):
            if header and (_has_words(header, alias) or _has_words(alias, header)):
                return index
    return -1


def map_columns(headers: Sequence[str]) -> Dict[str, int]:
    column_map = {
        field: find_column_index(headers, aliases) for field, aliases in COLUMN_ALIASES.items()
    }
    # A lone "amount" header satisfies both "credit amount" and "debit amount"
    if column_map["deposits"] != -1 and column_map["deposits"] == column_map["withdrawals"]:
        column_map["deposits"] = column_map["withdrawals"] = -1
    return column_map


def _cell(row: Sequence[str], index: int) -> str:
    if index == -1 or index >= len(row):
        return ""
    return str(row[index] or "").strip()


def _number(row: Sequence[str], index: int) -> float:
    match = _LEADING_NUMBER.match(_CURRENCY_NOISE.sub("", _cell(row, index)))
    return float(match.group()) if match else 0.0


def parse_grid_row(
    row: Sequence[str], column_map: Dict[str, int], row_index: int
) -> Optional[TransactionRecord]:
    """Build a record from one spreadsheet row, or None when it has no amount."""
    raw_date = _cell(row, column_map["date"])
    if not raw_date:
        raw_date = next((str(c) for c in row if _DATE_CELL.search(str(c or ""))), "")
    date_value, date_defaulted = normalize_date(raw_date, spreadsheet=True)

    deposits = _number(row, column_map["deposits"]) if column_map["deposits"] != -1 else 0.0
    withdrawals = (
        _number(row, column_map["withdrawals"]) if column_map["withdrawals"] != -1 else 0.0
    )

    if deposits == 0 and withdrawals == 0 and column_map["amount"] != -1:
        amount = _number(row, column_map["amount"])
        if amount != 0:
            particulars = _cell(row, column_map["particulars"]).lower()
            is_withdrawal = amount < 0 or any(hint in particulars for hint in OUTFLOW_HINTS)
            if is_withdrawal:
                withdrawals = abs(amount)
            else:
                deposits = abs(amount)

    if deposits == 0 and withdrawals == 0:
        return None

    particulars = _cell(row, column_map["particulars"]) or f"Transaction Row {row_index + 1}"
    depositor = _cell(row, column_map["depositor"]) or extract_name(particulars)

    type_label = _cell(row, column_map["type"])
    txn_type = TransactionType.from_label(type_label) if type_label else None
    if txn_type is None:
        txn_type = classify_transaction(f"{type_label} {particulars}")

    return TransactionRecord(
        date=date_value,
        particulars=particulars,
        depositor=depositor,
        deposits=deposits,
        withdrawals=withdrawals,
        balance=_number(row, column_map["balance"]),
        type=txn_type,
        date_defaulted=date_defaulted,
    )


def parse_grid(rows: Sequence[Sequence[Any]]) -> List[TransactionRecord]:
    """Parse a grid of spreadsheet cells into transaction records."""
    if not rows:
        return []

    grid = [[_cell_text(cell) for cell in row] for row in rows]

    header_index = find_header_row(grid)
    if header_index == -1:
        logger.info("No headers found, using positional column names")
        headers = [f"column_{index}" for index in range(len(grid[0]))]
        header_index = 0
    else:
        headers = [cell.strip().lower() for cell in grid[header_index]]
    logger.debug(f"Found headers at row {header_index}: {headers}")

    column_map = map_columns(headers)
    logger.debug(f"Column mapping: {column_map}")

    records = []
    for index in range(header_index + 1, len(grid)):
        row = grid[index]
        if not any(cell.strip() for cell in row):
            continue

        try:
            record = parse_grid_row(row, column_map, index)
        except Exception as e:
            logger.warning(f"Error parsing row {index}: {e}")
            continue

        if record is not None:
            record.columns = {
                headers[i]: cell for i, cell in enumerate(row) if i < len(headers) and cell
            }
            records.append(record)

    logger.info(f"Parsed {len(records)} transactions from {len(grid)} spreadsheet rows")
    return records
