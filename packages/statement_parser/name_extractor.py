"""Depositor name extraction from concatenated transaction particulars.

Particulars from payment gateways glue a rail tag, reference numbers, the
payer's (often truncated) name and the sending bank's IFSC prefix together:

    MPAYUPITRTR509218316187GOVIND RAMSBINXXX94  ->  GOVIND RAM
    TRANSFER-12345JOHN DOESBINXXX12             ->  JOHN DOE

Names are found with an ordered cascade of trigger-specific patterns, then a
generic uppercase-run fallback. The first candidate that survives cleanup and
validation wins.
"""

import re
from typing import Any, Optional, Tuple

from .models import UNKNOWN_CUSTOMER, NamePatternRule, compile_rule

BANK_CODES = ("SBIN", "PUNB", "BARB", "JIOPXXX", "UCBA", "IBKL")
_BANKS = "|".join(BANK_CODES)

RESERVED_TOKENS = (
    "UPITRTR",
    "TRTR",
    "MPAY",
    "UPI",
    "TRANSFER",
    "NEFT",
    "RTGS",
    "XXX",
) + BANK_CODES

_RESERVED = re.compile(
    r"^(?:%s)+$" % "|".join(sorted(RESERVED_TOKENS, key=len, reverse=True)),
    re.IGNORECASE,
)
_BANK_SUFFIX = re.compile(r"(?:SBIN|PUNB|BARB|UCBA|IBKL|JIOPXXX)XX$", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")
_NUMERIC = re.compile(r"^\d+$")


def _rail_rule(trigger: str) -> NamePatternRule:
    return compile_rule(
        trigger,
        rf"{trigger}.*?(?:\d+)([A-Z][A-Z\s]+?)(?:{_BANKS}|XXX)",
        rf"{trigger}.*?([A-Z][A-Z\s]{{2,20}}?)(?:[A-Z]{{3,4}}XXX|\d|$)",
    )


NAME_PATTERN_RULES: Tuple[NamePatternRule, ...] = (
    compile_rule(
        "MPAY",
        # MPAY<tag><ref> <ref> NAME<bank>
        rf"MPAY(?:UPITRTR|UPI|TRTR)?\d+\s+\d+\s+([A-Z][A-Z\s]+?)(?:{_BANKS}|XXX)",
        rf"MPAY\w*\d+\s+\d*\s*([A-Z][A-Z\s]{{2,20}}?)(?:{_BANKS}|XXX|\d|$)",
        r"MPAY(?:UPITRTR|UPI|TRTR)?.*?\d+.*?([A-Z][A-Z\s]{3,20}?)(?:[A-Z]{3,4}XXX|\d|$)",
    ),
    compile_rule(
        "UPI",
        rf"UPI(?:TRTR)?\d+\s+\d+\s+([A-Z][A-Z\s]+?)(?:{_BANKS}|XXX)",
        rf"UPI\w*\d+\s+\d*\s*([A-Z][A-Z\s]{{3,20}}?)(?:{_BANKS}|XXX|\d|$)",
    ),
    _rail_rule("TRANSFER"),
    _rail_rule("NEFT"),
    _rail_rule("RTGS"),
    compile_rule(
        None,
        r"([A-Z][A-Z\s]{2,20}?)(?:[A-Z]{3,4}XXX|\d|$)",
        scan_all=True,
    ),
    # Last resort: plain uppercase runs, case-sensitive
    compile_rule(None, r"([A-Z][A-Z\s]{2,20})", flags=0, scan_all=True),
)


def clean_name(candidate: str) -> str:
    """Collapse whitespace and drop a bank code glued onto the end."""
    name = _WHITESPACE.sub(" ", candidate).strip()
    return _BANK_SUFFIX.sub("", name).strip()


def is_valid_name(name: str) -> bool:
    if len(name) <= 2 or _NUMERIC.match(name):
        return False
    return not _RESERVED.match(name.replace(" ", ""))


class DepositorNameExtractor:
    """Pulls a depositor name out of raw transaction particulars."""

    def __init__(self, rules: Tuple[NamePatternRule, ...] = NAME_PATTERN_RULES):
        self.rules = rules

    def extract(self, particulars: Any) -> str:
        """Return the depositor name, or ``Unknown Customer``."""
        if not isinstance(particulars, str) or not particulars.strip():
            return UNKNOWN_CUSTOMER

        name = self.first_candidate(particulars)
        return name if name else UNKNOWN_CUSTOMER

    def first_candidate(self, particulars: str) -> Optional[str]:
        for rule in self.rules:
            if not rule.applies_to(particulars):
                continue
            for candidate in rule.candidates(particulars):
                name = clean_name(candidate)
                if is_valid_name(name):
                    return name
        return None


_default_extractor = DepositorNameExtractor()


def extract_name(particulars: Any) -> str:
    """Convenience wrapper around the default extractor."""
    return _default_extractor.extract(particulars)
