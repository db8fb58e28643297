"""Pydantic schemas for the ingestion domain."""

from pydantic import BaseModel, Field
from typing import Optional


class TransactionOut(BaseModel):
    """A parsed statement transaction as held by the ledger."""

    id: int
    date: str
    particulars: str
    depositor: str
    withdrawals: float = 0.0
    deposits: float = 0.0
    balance: float = 0.0
    type: str = "OTHER"
    date_defaulted: bool = False
    is_sample: bool = False
    columns: dict[str, str] = Field(default_factory=dict)


class StructureOut(BaseModel):
    """Column layout detected in a text statement."""

    headers: list[str]
    header_line_index: int
    column_count: int


class IngestResponse(BaseModel):
    """Response from statement ingestion."""

    transactions: list[TransactionOut]
    count: int
    source: str
    structure: Optional[StructureOut] = None
    used_sample_fallback: bool = False
    warnings: list[str] = Field(default_factory=list)


class TransactionListResponse(BaseModel):
    """Everything currently held by the ledger."""

    transactions: list[TransactionOut]
    count: int


class ClearResponse(BaseModel):
    cleared: int
