"""WIC eligibility API server.

Usage:
    python -m wic_eligibility.main
    uvicorn wic_eligibility.main:app

Mounts the /eligibility router over the PostgreSQL APL registry and the
Redis lookup cache.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import Depends, FastAPI

from wic_eligibility.api import get_eligibility_service, router
from wic_eligibility.config import settings
from wic_eligibility.db.engine import db_lifespan
from wic_eligibility.eligibility.service import EligibilityService
from wic_eligibility.log import configure_logging

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info("Starting WIC eligibility API (env=%s)", settings.environment)
    async with db_lifespan():
        states = get_eligibility_service().supported_states()
        logger.info("Serving policies for: %s", ", ".join(states) or "no states")
        yield
        logger.info("Stopping WIC eligibility API")


app = FastAPI(
    title="WIC Eligibility API",
    description="Approved Product List eligibility checks by barcode and state",
    version="0.1.0",
    lifespan=lifespan,
)
app.include_router(router)


@app.get("/health")
async def health_check(
    service: EligibilityService = Depends(get_eligibility_service),  # noqa: B008
) -> dict[str, Any]:
    """Liveness plus the configured policy set."""
    return {
        "status": "ok",
        "environment": settings.environment,
        "states": service.supported_states(),
    }


if __name__ == "__main__":
    uvicorn.run(
        "wic_eligibility.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
