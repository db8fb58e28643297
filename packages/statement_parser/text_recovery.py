"""Best-effort text recovery from raw statement bytes.

No PDF library is involved: compressed streams and font encodings are not
decoded. Recovery degrades through plain decoding, text-show operators,
readable ASCII runs and finally keyword windows, and only fails when the
source itself cannot be read.
"""

import logging
import re
from typing import Any, List, Union

from .dates import DATE_TOKEN
from .errors import TextRecoveryFailed

logger = logging.getLogger(__name__)

MAX_SCAN_BYTES = 500_000
MIN_RUN_LENGTH = 3
WINDOW_BEFORE = 100
WINDOW_AFTER = 200

PDF_MAGIC = b"%PDF"
DOMAIN_KEYWORDS = (
    "Date",
    "Transaction",
    "Balance",
    "Deposit",
    "Withdrawal",
    "Credit",
    "Debit",
)
PAYMENT_TAGS = ("MPAY", "UPI", "TRANSFER", "NEFT", "RTGS")

COLUMN_GAP = "  "

# Text-show operators and the positioning operators that end a text line
_CONTENT_TOKEN = re.compile(
    r"\((?P<literal>(?:\\.|[^\\()])*)\)\s*(?P<show>Tj|')"
    r"|\[(?P<array>(?:\\.|[^\\\]])*)\]\s*TJ"
    r"|(?P<tx>-?\d*\.?\d+)\s+(?P<ty>-?\d*\.?\d+)\s+T[dD]\b"
    r"|(?P<newline>T\*|\bET\b|\bTm\b)",
    re.DOTALL,
)
_ARRAY_ITEM = re.compile(r"\((?P<literal>(?:\\.|[^\\()])*)\)|(?P<kern>-?\d*\.?\d+)")
_ESCAPE = re.compile(r"\\([0-7]{1,3}|.)", re.DOTALL)
_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "b": "\b", "f": "\f"}
# Kerning wider than this inside a TJ array reads as a column gap
_GAP_KERNING = -200

_READABLE_RUN = re.compile(r"[A-Za-z0-9 \t\r\n/\-.,:()&]{%d,}" % (MIN_RUN_LENGTH + 1))
_HAS_LETTER = re.compile(r"[A-Za-z]")
_NON_PRINTABLE = re.compile(r"[^\x20-\x7E\n\r\t]")

BytesLike = Union[bytes, bytearray, memoryview]


def read_source(source: Any, limit: int = MAX_SCAN_BYTES) -> bytes:
    """Read at most ``limit`` bytes from a buffer or binary file object."""
    try:
        if isinstance(source, (bytes, bytearray, memoryview)):
            data = bytes(source[: limit + 1])
        elif hasattr(source, "read"):
            data = source.read(limit + 1)
        else:
            raise TypeError(f"Unsupported statement source: {type(source).__name__}")
    except (OSError, ValueError, TypeError) as e:
        raise TextRecoveryFailed(f"Failed to read statement source: {e}") from e

    if not isinstance(data, (bytes, bytearray)):
        raise TextRecoveryFailed("Statement source did not yield bytes")

    if len(data) > limit:
        logger.info(f"Large statement detected, processing first {limit} bytes")
        data = data[:limit]
    return bytes(data)


def clean_text(text: str) -> str:
    """Blank out non-printable characters, keeping line and column breaks."""
    return _NON_PRINTABLE.sub(" ", text).strip()


def looks_like_statement(text: str) -> bool:
    """True when decoded text already reads as line-structured statement text."""
    if not DATE_TOKEN.search(text):
        return False
    return has_domain_keyword(text) or any(tag in text for tag in PAYMENT_TAGS)


def has_domain_keyword(text: str) -> bool:
    return any(keyword in text for keyword in DOMAIN_KEYWORDS)


def _unescape(literal: str) -> str:
    def replace(match):
        code = match.group(1)
        if code[0] in "01234567":
            return chr(int(code, 8))
        if code in "\r\n":
            return ""
        return _ESCAPES.get(code, code)

    return _ESCAPE.sub(replace, literal)


def _array_text(array: str) -> str:
    parts = []
    for item in _ARRAY_ITEM.finditer(array):
        if item.group("literal") is not None:
            parts.append(_unescape(item.group("literal")))
        elif float(item.group("kern")) <= _GAP_KERNING:
            parts.append(COLUMN_GAP)
    return "".join(parts)


def extract_operator_text(content: str) -> str:
    """Collect ``(..) Tj`` and ``[..] TJ`` strings, one text line per row.

    Fragments shown on the same line are separated by a column gap so the
    structure detector can split them again.
    """
    lines: List[List[str]] = [[]]

    def new_line():
        if lines[-1]:
            lines.append([])

    for token in _CONTENT_TOKEN.finditer(content):
        if token.group("show") is not None:
            if token.group("show") == "'":
                new_line()
            lines[-1].append(_unescape(token.group("literal")))
        elif token.group("array") is not None:
            lines[-1].append(_array_text(token.group("array")))
        elif token.group("ty") is not None:
            if float(token.group("ty")) != 0:
                new_line()
        else:
            new_line()

    rendered = (COLUMN_GAP.join(f.strip() for f in line if f.strip()) for line in lines)
    return "\n".join(line for line in rendered if line)


def extract_readable_runs(content: str) -> str:
    """Keep maximal printable runs that contain at least one letter."""
    runs = (run.strip() for run in _READABLE_RUN.findall(content))
    return "\n".join(run for run in runs if _HAS_LETTER.search(run))


def extract_keyword_windows(content: str) -> str:
    """Slice a fixed window of text around every domain keyword occurrence."""
    windows = []
    for keyword in DOMAIN_KEYWORDS:
        for match in re.finditer(re.escape(keyword), content):
            start = max(0, match.start() - WINDOW_BEFORE)
            windows.append(content[start : match.start() + WINDOW_AFTER])
    return "\n".join(windows)


def recover_text(source: Union[BytesLike, Any], max_bytes: int = MAX_SCAN_BYTES) -> str:
    """Recover plaintext from raw statement bytes.

    Args:
        source: Raw bytes or a binary file-like object.
        max_bytes: Only this many leading bytes are examined.

    Returns:
        Possibly empty, possibly noisy text with one statement line per line.

    Raises:
        TextRecoveryFailed: The source could not be read.
    """
    data = read_source(source, max_bytes)
    logger.info(f"Recovering text from {len(data)} bytes")

    content = data.decode("latin-1")
    is_pdf = data.lstrip()[:4] == PDF_MAGIC

    if not is_pdf and looks_like_statement(content):
        logger.debug("Statement bytes decode directly as text")
        return clean_text(content)

    text = extract_operator_text(content)
    if text:
        logger.debug(f"Recovered {len(text)} characters from text operators")
    else:
        text = extract_readable_runs(content)
        logger.debug(f"Recovered {len(text)} characters from readable runs")

    if not has_domain_keyword(text):
        windows = extract_keyword_windows(content)
        if windows:
            logger.debug("No domain keywords recovered, adding keyword windows")
            text = f"{text}\n{windows}" if text else windows

    return clean_text(text)


class TextRecoveryEngine:
    """Callable wrapper holding the scan limit for one parser."""

    def __init__(self, max_bytes: int = MAX_SCAN_BYTES):
        self.max_bytes = max_bytes

    def recover(self, source: Union[BytesLike, Any]) -> str:
        return recover_text(source, self.max_bytes)
