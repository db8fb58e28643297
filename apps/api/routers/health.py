"""Health check router — liveness + readiness.

Readiness runs a tiny statement through the parser in a worker thread
with a timeout, so a wedged parser shows up as degraded rather than a
hanging probe.
"""

import asyncio
import structlog
from fastapi import APIRouter, Depends

from apps.api.core.config import Settings, get_settings
from apps.api.domains.ingestion.service import InMemoryLedger, get_ledger
from packages.statement_parser import StatementParser, __version__ as parser_version

router = APIRouter(tags=["health"])
logger = structlog.get_logger()

PARSER_TIMEOUT_SECONDS = 2

PROBE_STATEMENT = (
    "Date Particulars Withdrawals Deposits Balance\n"
    "02/07/2025  TRANSFER-12345JOHN DOESBINXXX12  -  100.00  100.00"
)


def _probe_parser() -> bool:
    result = StatementParser().parse_text(PROBE_STATEMENT)
    return result.count == 1 and result.records[0].depositor == "JOHN DOE"


@router.get("/health")
async def health_liveness():
    """Liveness probe — returns 200 if the API process is running.

    This is the fast probe. Kubernetes/load balancers should use this.
    """
    return {"status": "healthy", "service": "api"}


@router.get("/health/ready")
async def health_readiness(
    settings: Settings = Depends(get_settings),
    ledger: InMemoryLedger = Depends(get_ledger),
):
    """Readiness probe — checks the statement parser answers correctly."""
    status = {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "services": {
            "api": "up",
            "parser": "unknown",
        },
        "parser_version": parser_version,
        "limits": {
            "max_upload_bytes": settings.MAX_UPLOAD_BYTES,
            "pdf_scan_bytes": settings.PDF_SCAN_BYTES,
        },
        "ledger_records": len(ledger),
    }

    try:
        loop = asyncio.get_running_loop()
        ok = await asyncio.wait_for(
            loop.run_in_executor(None, _probe_parser),
            timeout=PARSER_TIMEOUT_SECONDS,
        )

        if ok:
            status["services"]["parser"] = "up"
        else:
            status["services"]["parser"] = "down"
            status["status"] = "degraded"
    except asyncio.TimeoutError:
        status["services"]["parser"] = "timeout"
        status["status"] = "degraded"
        logger.warning("parser_health_timeout", timeout_s=PARSER_TIMEOUT_SECONDS)
    except Exception as e:
        status["services"]["parser"] = "down"
        status["status"] = "degraded"
        logger.warning("parser_health_failed", error=str(e))

    return status
