"""FastAPI application for smsledger."""

import logging
import time
from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException

from smsledger.config import settings
from smsledger.db.sqlite import SQLiteTransactionStore
from smsledger.db.store import StoreUnavailableError
from smsledger.models import (
    ClassifyResponse,
    CleanupResponse,
    MessageRequest,
    ProcessOutcome,
    ProcessStatus,
    Transaction,
)
from smsledger.services.pipeline import TransactionPipeline

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="smsledger",
    description="Bank SMS classification, extraction and de-duplication",
    version="0.1.0",
)


@lru_cache
def get_store() -> SQLiteTransactionStore:
    """Shared SQLite store; override in tests."""
    return SQLiteTransactionStore()


@lru_cache
def get_pipeline() -> TransactionPipeline:
    return TransactionPipeline()


def _now_ms() -> int:
    return int(time.time() * 1000)


@app.on_event("startup")
async def startup():
    """Initialize on startup."""
    settings.ensure_directories()
    settings.log_config()


@app.get("/health")
async def health_check(store: SQLiteTransactionStore = Depends(get_store)):
    """Health check endpoint."""
    try:
        count = store.get_transaction_count()
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=f"Store unavailable: {e}")
    return {"status": "healthy", "transaction_count": count}


@app.post("/classify", response_model=ClassifyResponse)
async def classify_message(request: MessageRequest, pipeline: TransactionPipeline = Depends(get_pipeline)):
    """Dry run: classify and parse a message without touching the store."""
    verdict, transaction = pipeline.classifier.analyze(request.message, request.sender, request.timestamp or _now_ms())

    return ClassifyResponse(
        is_transaction=transaction is not None,
        stage=verdict.stage,
        reason=verdict.reason,
        transaction=transaction,
    )


@app.post("/messages", response_model=ProcessOutcome)
async def process_message(
    request: MessageRequest,
    store: SQLiteTransactionStore = Depends(get_store),
    pipeline: TransactionPipeline = Depends(get_pipeline),
):
    """Run a message through the full pipeline and persist it if accepted."""
    timestamp = request.timestamp or _now_ms()
    try:
        outcome = pipeline.process(request.message, request.sender, timestamp, store)
        if outcome.status == ProcessStatus.ACCEPTED and not pipeline.persist(outcome.transaction, store):
            # Another request stored the same fingerprint first
            outcome = ProcessOutcome(status=ProcessStatus.DUPLICATE, transaction=outcome.transaction)
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=f"Store unavailable: {e}")

    return outcome


@app.get("/transactions", response_model=list[Transaction])
async def get_transactions(limit: int = 100, store: SQLiteTransactionStore = Depends(get_store)):
    """Get the most recent transactions."""
    try:
        return store.get_transactions(limit=limit)
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=f"Store unavailable: {e}")


@app.post("/cache/cleanup", response_model=CleanupResponse)
async def cleanup_cache(pipeline: TransactionPipeline = Depends(get_pipeline)):
    """Evict fingerprints older than the configured maximum age."""
    removed = pipeline.cleanup_cache(_now_ms())
    return CleanupResponse(removed=removed, remaining=len(pipeline.cache))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "smsledger.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.dev_mode,
    )
