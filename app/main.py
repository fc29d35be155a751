from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.alerts import build_default_evaluator
from services.ingestion import build_default_ingestion_service


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    evaluator = build_default_evaluator()
    ingestion = build_default_ingestion_service()
    try:
        yield
    finally:
        evaluator.shutdown()
        ingestion.shutdown()
        build_default_evaluator.cache_clear()
        build_default_ingestion_service.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Field Alerts",
        description="Sensor ingestion and drought/pest-risk alerting for farm fields.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
