"""
Statement Parser

Heuristic bank statement parsing: text recovery, column structure
detection, row parsing, depositor names and date normalization.
"""

__version__ = "0.1.0"

from .dates import normalize_date
from .errors import (
    NoTransactionsFound,
    StatementParserError,
    TextRecoveryFailed,
    WorkbookDecryptionFailed,
    WorkbookPasswordRequired,
)
from .models import ColumnStructure, NormalizedDate, TransactionRecord, TransactionType
from .name_extractor import DepositorNameExtractor, extract_name
from .pipeline import ParseResult, RecordSink, StatementParser, parse_statement
from .structure import detect_structure
from .text_recovery import TextRecoveryEngine, recover_text

__all__ = [
    "StatementParser",
    "parse_statement",
    "ParseResult",
    "RecordSink",
    "TransactionRecord",
    "TransactionType",
    "ColumnStructure",
    "NormalizedDate",
    "DepositorNameExtractor",
    "extract_name",
    "TextRecoveryEngine",
    "recover_text",
    "detect_structure",
    "normalize_date",
    "StatementParserError",
    "TextRecoveryFailed",
    "WorkbookPasswordRequired",
    "WorkbookDecryptionFailed",
    "NoTransactionsFound",
]
