"""
FastAPI Application

Main application setup and configuration for the price oracle service.

Usage:
    uvicorn api.app:app --reload

    # Or run directly
    python -m api.app
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from api.deps import build_oracle, load_runtime_config
from api.errors import (
    generic_error_handler,
    validation_error_handler,
    zkpp_error_handler,
)
from api.routes import admin, health, prices
from core.config.runtime import RuntimeConfig
from core.errors import ZkppException
from oracle import InitMode, PriceOracle


# Configure logging; respects ZKPP_LOG_LEVEL env var
def _resolve_log_level() -> int:
    raw = os.getenv("ZKPP_LOG_LEVEL")
    return getattr(logging, (raw or "INFO").upper(), logging.INFO)


logging.basicConfig(
    level=_resolve_log_level(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


def create_app(
    oracle: Optional[PriceOracle] = None,
    config: Optional[RuntimeConfig] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        oracle: Pre-built oracle to serve. Initialized on startup if it is
            not already. When omitted, one is built from ``config``.
        config: Runtime configuration. Loaded from zkpp.yaml and the
            environment when omitted.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = False
        current = app.state.oracle
        if current is None:
            cfg = config or load_runtime_config()
            current = build_oracle(cfg)
            app.state.oracle = current
            owned = True
            mode = InitMode.FORCE_REBUILD if cfg.oracle.force_rebuild else InitMode.RESUME
        else:
            mode = InitMode.RESUME

        if not current.is_initialized:
            status = current.initialize(mode)
            logger.info(f"Oracle ready: root={current.root} consistent={status.consistent}")

        try:
            yield
        finally:
            if owned:
                current.close()

    app = FastAPI(
        title="ZKPP Price Oracle API",
        description="""
HTTP API for the purchase-price-insurance price oracle.

## Endpoints

- **GET /api/merkle-root** - Current price tree root
- **GET /api/prices** - Current and base prices of every product
- **GET /api/merkle-proof/{productId}** - Inclusion proof for one product
- **POST /api/drop-prices** - Drop every price by a percentage
- **POST /api/admin/...** - Operator controls (set, reset, rebuild, export, sync status)
- **GET /health** - Health check
        """,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.oracle = oracle

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register exception handlers
    app.add_exception_handler(ZkppException, zkpp_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    # Include routers
    app.include_router(health.router)
    app.include_router(prices.router)
    app.include_router(admin.router)

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    cfg = load_runtime_config()
    uvicorn.run(create_app(config=cfg), host=cfg.server.host, port=cfg.server.port)
