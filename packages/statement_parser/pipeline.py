"""
Statement Parser - one document in, transaction records out.

PDF-like bytes go through text recovery, structure detection and row
parsing, with the keyword line scanner and the sample rows as fallbacks.
Spreadsheets (Excel/CSV) are read into a cell grid and parsed by column
aliases. Parsed records are handed to an optional record sink.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .errors import NoTransactionsFound
from .line_scanner import scan_statement_lines, scan_windows
from .models import ColumnStructure, TransactionRecord
from .row_parser import build_sample_records, parse_records
from .spreadsheet import is_workbook, parse_grid, read_workbook_grid
from .structure import detect_structure
from .text_recovery import MAX_SCAN_BYTES, PDF_MAGIC, recover_text

logger = logging.getLogger(__name__)

SOURCE_PDF = "pdf"
SOURCE_TEXT = "text"
SOURCE_SPREADSHEET = "spreadsheet"


class RecordSink(Protocol):
    """Anything that accepts the records of one parsed document."""

    def ingest(self, records: Sequence[TransactionRecord]) -> None: ...


@dataclass
class ParseResult:
    """Outcome of parsing one statement document."""

    records: List[TransactionRecord]
    source: str
    structure: Optional[ColumnStructure] = None
    used_sample_fallback: bool = False
    warnings: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.records)

    def to_records(self) -> List[Dict[str, Any]]:
        return [record.to_dict() for record in self.records]


class StatementParser:
    """
    Main parser class for bank statements.

    Each ``parse_*`` call is independent; nothing is carried from one
    document to the next.
    """

    def __init__(self, sink: Optional[RecordSink] = None, max_scan_bytes: int = MAX_SCAN_BYTES):
        """
        Initialize parser.

        Args:
            sink: Receives the records of every parsed document (optional)
            max_scan_bytes: Leading bytes of a PDF examined for text
        """
        self.sink = sink
        self.max_scan_bytes = max_scan_bytes

    def _deliver(self, result: ParseResult) -> ParseResult:
        defaulted = sum(1 for record in result.records if record.date_defaulted)
        if defaulted:
            result.warnings.append(f"{defaulted} records use today's date as a fallback")
        if result.used_sample_fallback:
            result.warnings.append("No transactions recognised; sample records returned")

        logger.info(f"Successfully parsed {result.count} transactions from {result.source}")
        if self.sink is not None:
            self.sink.ingest(result.records)
        return result

    def parse_text(self, text: str, source: str = SOURCE_TEXT) -> ParseResult:
        """Parse already recovered statement text."""
        structure = detect_structure(text)
        logger.info(f"Detected column structure: {list(structure.headers)}")

        records = parse_records(text, structure, sample_fallback=False)
        if not records:
            logger.info("No structured rows, trying keyword line scan")
            records = scan_statement_lines(text) or scan_windows(text)

        used_sample = False
        if not records:
            logger.warning("No transactions found, using sample records")
            records = build_sample_records(structure)
            used_sample = True

        return self._deliver(
            ParseResult(
                records=records,
                source=source,
                structure=structure,
                used_sample_fallback=used_sample,
            )
        )

    def parse_pdf(self, content: Any) -> ParseResult:
        """Parse raw PDF bytes (or a binary file object)."""
        text = recover_text(content, self.max_scan_bytes)
        logger.info(f"Extracted text length: {len(text)}")
        return self.parse_text(text, source=SOURCE_PDF)

    def parse_grid(self, rows: Sequence[Sequence[Any]]) -> ParseResult:
        """Parse an already decoded spreadsheet grid."""
        records = parse_grid(rows)
        if not records:
            raise NoTransactionsFound(
                "No valid transactions found. Include columns like Date, Amount "
                "and Customer/Depositor."
            )
        return self._deliver(ParseResult(records=records, source=SOURCE_SPREADSHEET))

    def parse_spreadsheet(
        self, content: bytes, filename: Optional[str] = None, password: Optional[str] = None
    ) -> ParseResult:
        """Parse Excel or CSV statement bytes."""
        rows = read_workbook_grid(content, filename=filename, password=password)
        logger.info(f"Read {len(rows)} spreadsheet rows")
        return self.parse_grid(rows)

    def parse_file(
        self, content: bytes, filename: Optional[str] = None, password: Optional[str] = None
    ) -> ParseResult:
        """Dispatch on file name and magic bytes."""
        if content.lstrip()[:4] == PDF_MAGIC or (filename or "").lower().endswith(".pdf"):
            return self.parse_pdf(content)
        if is_workbook(content, filename):
            return self.parse_spreadsheet(content, filename=filename, password=password)
        return self.parse_pdf(content)


def parse_statement(
    content: bytes,
    filename: Optional[str] = None,
    password: Optional[str] = None,
    sink: Optional[RecordSink] = None,
) -> ParseResult:
    """
    Convenience function to parse a bank statement.

    Args:
        content: File content as bytes
        filename: Uploaded file name, used to pick the reader
        password: Password for encrypted workbooks
        sink: Optional record sink

    Returns:
        ParseResult with the parsed records
    """
    return StatementParser(sink=sink).parse_file(content, filename=filename, password=password)
