"""Ingestion router — statement upload and ledger endpoints.

PDF, Excel and CSV statements are parsed by ``packages.statement_parser``
and delivered straight into the in-memory ledger.
"""

import structlog
from fastapi import APIRouter, Depends, File, Form, UploadFile
from typing import Optional

from apps.api.core.config import Settings, get_settings
from apps.api.core.errors import (
    BadRequestError,
    NotFoundError,
    PayloadTooLargeError,
    ValidationError,
)
from apps.api.domains.ingestion.schemas import (
    ClearResponse,
    IngestResponse,
    TransactionListResponse,
    TransactionOut,
)
from apps.api.domains.ingestion.service import InMemoryLedger, get_ledger
from packages.statement_parser import (
    NoTransactionsFound,
    StatementParser,
    TextRecoveryFailed,
    WorkbookDecryptionFailed,
    WorkbookPasswordRequired,
)

router = APIRouter(prefix="/ingest", tags=["ingestion"])
logger = structlog.get_logger()

ALLOWED_EXTENSIONS = (".pdf", ".csv", ".tsv", ".txt", ".xls", ".xlsx", ".xlsm")


@router.post("/statement", response_model=IngestResponse)
async def ingest_statement(
    file: UploadFile = File(...),
    password: Optional[str] = Form(None),
    ledger: InMemoryLedger = Depends(get_ledger),
    settings: Settings = Depends(get_settings),
):
    """Accept a bank statement, parse it and add its transactions to the ledger.

    PDFs never fail on content: when nothing is recognised the response
    carries sample rows with ``used_sample_fallback`` set. Spreadsheets
    without transaction rows are rejected.
    """
    filename = file.filename or ""
    if not filename.lower().endswith(ALLOWED_EXTENSIONS):
        raise BadRequestError(
            f"Unsupported file type. Accepted: {', '.join(ALLOWED_EXTENSIONS)}"
        )

    contents = await file.read()
    if len(contents) > settings.MAX_UPLOAD_BYTES:
        limit_mb = settings.MAX_UPLOAD_BYTES / (1024 * 1024)
        raise PayloadTooLargeError(f"File too large (max {limit_mb:g}MB)")

    parser = StatementParser(sink=ledger, max_scan_bytes=settings.PDF_SCAN_BYTES)
    try:
        result = parser.parse_file(contents, filename=filename, password=password or None)
    except (WorkbookPasswordRequired, WorkbookDecryptionFailed, NoTransactionsFound) as e:
        logger.warning("statement_rejected", reason=str(e), filename=filename)
        raise ValidationError(str(e)) from e
    except TextRecoveryFailed as e:
        logger.error("file_parse_failed", error=str(e), filename=filename)
        raise BadRequestError("Failed to parse file") from e

    transactions = ledger.last_batch
    logger.info(
        "ingest_complete",
        count=len(transactions),
        filename=filename,
        source=result.source,
        used_sample_fallback=result.used_sample_fallback,
    )
    return {
        "transactions": transactions,
        "count": len(transactions),
        "source": result.source,
        "structure": result.structure.to_dict() if result.structure else None,
        "used_sample_fallback": result.used_sample_fallback,
        "warnings": result.warnings,
    }


@router.get("/transactions", response_model=TransactionListResponse)
async def list_transactions(ledger: InMemoryLedger = Depends(get_ledger)):
    """Return every transaction in the ledger, oldest first."""
    transactions = ledger.list()
    return {"transactions": transactions, "count": len(transactions)}


@router.get("/transactions/{transaction_id}", response_model=TransactionOut)
async def get_transaction(transaction_id: int, ledger: InMemoryLedger = Depends(get_ledger)):
    entry = ledger.get(transaction_id)
    if entry is None:
        raise NotFoundError(f"Transaction {transaction_id} not found")
    return entry


@router.delete("/transactions", response_model=ClearResponse)
async def clear_transactions(ledger: InMemoryLedger = Depends(get_ledger)):
    cleared = ledger.clear()
    logger.info("ledger_cleared", cleared=cleared)
    return {"cleared": cleared}
