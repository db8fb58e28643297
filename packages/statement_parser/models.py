"""Value objects shared by the parsing stages."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional, Pattern, Tuple

UNKNOWN_CUSTOMER = "Unknown Customer"
PARTICULARS_MAX_LENGTH = 100


class TransactionType(str, Enum):
    """Payment rail tag attached to every record."""

    UPI = "UPI"
    TRANSFER = "TRANSFER"
    CASH = "CASH"
    NEFT = "NEFT"
    RTGS = "RTGS"
    OTHER = "OTHER"

    @classmethod
    def from_label(cls, label: str) -> Optional["TransactionType"]:
        """Return the member named by ``label`` (case-insensitive), if any."""
        try:
            return cls(str(label).strip().upper())
        except ValueError:
            return None


# Checked in order; the first keyword found in the particulars wins.
TYPE_KEYWORDS: Tuple[Tuple[TransactionType, Tuple[str, ...]], ...] = (
    (TransactionType.UPI, ("UPI",)),
    (TransactionType.TRANSFER, ("TRANSFER", "TRTR")),
    (TransactionType.NEFT, ("NEFT",)),
    (TransactionType.RTGS, ("RTGS",)),
    (TransactionType.CASH, ("CASH", "ATM")),
)


def classify_transaction(particulars: str) -> TransactionType:
    """Tag a transaction by scanning its particulars for rail keywords."""
    upper = str(particulars or "").upper()
    for txn_type, keywords in TYPE_KEYWORDS:
        if any(keyword in upper for keyword in keywords):
            return txn_type
    return TransactionType.OTHER


class NormalizedDate(NamedTuple):
    """ISO date plus whether the normalizer had to substitute today."""

    value: str
    was_defaulted: bool


@dataclass(frozen=True)
class ColumnStructure:
    """Inferred column layout of one statement document."""

    headers: Tuple[str, ...]
    header_line_index: int = -1
    column_count: int = 0

    def __post_init__(self):
        object.__setattr__(self, "headers", tuple(self.headers))
        if not self.column_count:
            object.__setattr__(self, "column_count", len(self.headers))

    @property
    def has_header(self) -> bool:
        return self.header_line_index >= 0

    @property
    def first_data_line(self) -> int:
        return self.header_line_index + 1 if self.has_header else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "headers": list(self.headers),
            "header_line_index": self.header_line_index,
            "column_count": self.column_count,
        }


@dataclass(frozen=True)
class NamePatternRule:
    """Trigger token plus the extraction patterns tried for it, in order.

    ``trigger=None`` marks the generic fallback rule. With ``scan_all`` every
    match of a pattern is offered as a candidate instead of only the first.
    """

    trigger: Optional[str]
    patterns: Tuple[Pattern, ...]
    scan_all: bool = False

    def applies_to(self, text: str) -> bool:
        return self.trigger is None or self.trigger in text.upper()

    def candidates(self, text: str):
        for pattern in self.patterns:
            if self.scan_all:
                for match in pattern.finditer(text):
                    yield match.group(1)
            else:
                match = pattern.search(text)
                if match:
                    yield match.group(1)


def compile_rule(trigger: Optional[str], *patterns: str, flags=re.IGNORECASE, scan_all=False):
    return NamePatternRule(
        trigger=trigger,
        patterns=tuple(re.compile(p, flags) for p in patterns),
        scan_all=scan_all,
    )


@dataclass
class RowFields:
    """Fields routed out of one statement row by header label."""

    date: Optional[str] = None
    date_defaulted: bool = False
    description: str = ""
    withdrawal: Optional[float] = None
    deposit: Optional[float] = None
    amount: Optional[float] = None
    balance: Optional[float] = None

    @property
    def has_value(self) -> bool:
        return bool(self.amount and self.amount > 0) or self.balance is not None

    @property
    def is_complete(self) -> bool:
        """A row becomes a record only with a date and an amount or balance."""
        return bool(self.date) and self.has_value


@dataclass
class TransactionRecord:
    """Standardized statement transaction, without ledger identity."""

    date: str
    particulars: str
    depositor: str = UNKNOWN_CUSTOMER
    withdrawals: float = 0.0
    deposits: float = 0.0
    balance: float = 0.0
    type: TransactionType = TransactionType.OTHER
    date_defaulted: bool = False
    is_sample: bool = False
    columns: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        self.particulars = (self.particulars or "")[:PARTICULARS_MAX_LENGTH]
        self.depositor = self.depositor or UNKNOWN_CUSTOMER

    @property
    def amount(self) -> float:
        return self.deposits or self.withdrawals

    @property
    def ledger_type(self) -> str:
        """Income/Expense flag used by the generic data-input view."""
        return "Expense" if self.withdrawals else "Income"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for DataFrame creation or JSON output."""
        return {
            "date": self.date,
            "particulars": self.particulars,
            "depositor": self.depositor,
            "withdrawals": self.withdrawals,
            "deposits": self.deposits,
            "balance": self.balance,
            "type": self.type.value,
            "date_defaulted": self.date_defaulted,
            "is_sample": self.is_sample,
            "columns": dict(self.columns),
        }
