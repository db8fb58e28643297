"""Ingestion service — the in-memory ledger that receives parsed statements.

The ledger is the record sink handed to ``StatementParser``: every parsed
document is delivered in one ``ingest`` call and each record gets the next
integer id. Nothing is persisted; a process restart empties the ledger.
"""

import itertools
from typing import Any, Dict, List, Optional, Sequence

import structlog

from packages.statement_parser.models import TransactionRecord

logger = structlog.get_logger()


class InMemoryLedger:
    """Ordered store of ingested transactions with increasing ids."""

    def __init__(self, start_id: int = 1):
        self._ids = itertools.count(start_id)
        self._entries: List[Dict[str, Any]] = []
        self.last_batch: List[Dict[str, Any]] = []

    def ingest(self, records: Sequence[TransactionRecord]) -> None:
        """Store one document's records, assigning ids in order."""
        batch = [{"id": next(self._ids), **record.to_dict()} for record in records]
        self._entries.extend(batch)
        self.last_batch = batch
        logger.info(
            "ledger_ingest",
            added=len(batch),
            samples=sum(1 for entry in batch if entry["is_sample"]),
            total=len(self._entries),
        )

    def list(self) -> List[Dict[str, Any]]:
        return list(self._entries)

    def get(self, transaction_id: int) -> Optional[Dict[str, Any]]:
        for entry in self._entries:
            if entry["id"] == transaction_id:
                return entry
        return None

    def clear(self) -> int:
        """Drop every entry; ids keep increasing. Returns the number removed."""
        removed = len(self._entries)
        self._entries = []
        self.last_batch = []
        return removed

    def __len__(self) -> int:
        return len(self._entries)


_ledger = InMemoryLedger()


def get_ledger() -> InMemoryLedger:
    """FastAPI dependency returning the process-wide ledger."""
    return _ledger
