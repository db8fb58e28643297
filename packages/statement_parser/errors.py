"""Exceptions raised by the statement parser.

Only source-level failures raise. Data-quality problems (bad dates, bad
amounts, empty documents) are absorbed by defaults further down the pipeline.
"""


class StatementParserError(Exception):
    """Base error for the statement parser."""


class TextRecoveryFailed(StatementParserError):
    """The statement source could not be read at all."""


class WorkbookPasswordRequired(TextRecoveryFailed):
    """The workbook is encrypted and no password was given."""

    def __init__(self, message: str = "Password required"):
        super().__init__(message)


class WorkbookDecryptionFailed(TextRecoveryFailed):
    """The workbook password was wrong or decryption failed."""


class NoTransactionsFound(StatementParserError):
    """A spreadsheet was read but no transaction rows were found."""
