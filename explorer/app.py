from fastapi import FastAPI, Request, HTTPException, Query
from fastapi.responses import JSONResponse, Response
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
import structlog
import time
from typing import List, Optional
from pydantic import BaseModel

from chainstats.aggregator import sum_in_window
from chainstats.constants import SNAPSHOT_WINDOW
from chainstats.errors import (
    CacheMiss,
    CacheUnavailable,
    ChainStatsError,
    ConnectionFailure,
    DecodeFailure,
    StoreUnavailable
)
from chainstats.service import ChainStatsService
from chainstats.types import WireMetric

logger = structlog.get_logger()

# Initialize metrics
REQUEST_COUNT = Counter(
    'chainstats_http_requests_total',
    'Total HTTP requests',
    ['endpoint', 'method', 'status']
)

REQUEST_LATENCY = Histogram(
    'chainstats_http_request_duration_seconds',
    'HTTP request latency',
    ['endpoint', 'method']
)

# Status code and public message for each read path error
ERROR_RESPONSES = {
    CacheMiss: (404, "Snapshot has not been populated yet"),
    CacheUnavailable: (503, "Cache is unavailable"),
    DecodeFailure: (500, "Cached snapshot is corrupt"),
    StoreUnavailable: (503, "Block store is unavailable"),
    ConnectionFailure: (503, "Block store is unreachable"),
}

class WindowSum(BaseModel):
    """Transactions counted inside an exclusive time window."""
    start: int
    end: int
    blocks: int
    transactions: int

class BlockLookup(BaseModel):
    """Block containing a transaction."""
    tx_hash: str
    block_id: int

def create_app(service: ChainStatsService, rate_limit: str = "120/minute") -> FastAPI:
    """Build the explorer API around a chainstats service."""
    limiter = Limiter(key_func=get_remote_address)

    app = FastAPI(
        title="Chainstats Explorer API",
        description="Recent block throughput for the chain explorer",
        version="1.0.0"
    )
    app.state.service = service
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        """Record request count and latency."""
        start_time = time.time()
        response = await call_next(request)
        REQUEST_COUNT.labels(
            endpoint=request.url.path,
            method=request.method,
            status=response.status_code
        ).inc()
        REQUEST_LATENCY.labels(endpoint=request.url.path, method=request.method).observe(
            time.time() - start_time
        )
        return response

    @app.exception_handler(ChainStatsError)
    async def chainstats_error_handler(request: Request, exc: ChainStatsError):
        status_code, message = ERROR_RESPONSES.get(type(exc), (500, "Internal error"))
        logger.warning("request_failed",
                       path=request.url.path,
                       error_type=type(exc).__name__,
                       error=str(exc),
                       status_code=status_code)
        return JSONResponse(
            status_code=status_code,
            content={"error": type(exc).__name__, "detail": message}
        )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/metrics")
    async def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/api/v1/tps", response_model=List[WireMetric])
    @limiter.limit(rate_limit)
    def tps_list(request: Request):
        """Return the last cached snapshot without touching the block store."""
        return request.app.state.service.cache.read_wire()

    @app.get("/api/v1/tps/window", response_model=WindowSum)
    @limiter.limit(rate_limit)
    def tps_window(
        request: Request,
        start: int = Query(..., description="Exclusive lower bound, unix seconds"),
        end: int = Query(..., description="Exclusive upper bound, unix seconds"),
        limit: int = Query(SNAPSHOT_WINDOW, ge=1, le=1000, description="Recent blocks to scan")
    ):
        """Sum transactions of recent blocks stamped strictly inside the window."""
        if end <= start:
            raise HTTPException(status_code=400, detail="end must be greater than start")
        metrics = request.app.state.service.source.load_recent(limit)
        return WindowSum(
            start=start,
            end=end,
            blocks=len(metrics),
            transactions=sum_in_window(metrics, start, end)
        )

    @app.get("/api/v1/blocks/by-tx/{tx_hash}", response_model=BlockLookup)
    @limiter.limit(rate_limit)
    def block_by_transaction(request: Request, tx_hash: str):
        """Resolve the block that contains a transaction."""
        try:
            raw_hash = bytes.fromhex(tx_hash)
        except ValueError:
            raise HTTPException(status_code=400, detail="Transaction hash must be hex encoded")
        block_id, found = request.app.state.service.db.get_block_id(raw_hash)
        if not found:
            raise HTTPException(status_code=404, detail="Transaction not found")
        return BlockLookup(tx_hash=tx_hash, block_id=block_id)

    return app

def get_app(settings=None) -> FastAPI:
    """Application factory for ``uvicorn --factory explorer.app:get_app``."""
    from config.logging import configure_logging
    from config.settings import get_settings

    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)
    return create_app(ChainStatsService.from_settings(settings))
