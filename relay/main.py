"""Relay Assistant HTTP service.

Run with:
    uvicorn relay.main:app --host 0.0.0.0 --port 8000
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
from fastapi import FastAPI

from relay.config import Settings
from relay.health.router import router as health_router
from relay.logging_config import configure_logging
from relay.services import build_services
from relay.webhook.router import router as webhook_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings()

    configure_logging(
        level=settings.log_level, json_format=settings.log_json, log_file=settings.log_file
    )

    Path(settings.data_dir).mkdir(parents=True, exist_ok=True)
    http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.ollama_timeout, connect=10.0))

    services = build_services(settings, http_client)
    app.state.settings = settings
    app.state.http_client = http_client
    app.state.services = services

    if await services.ollama_client.is_available():
        logger.info("Ollama reachable at %s (model %s)", settings.ollama_base_url, settings.ollama_model)
    else:
        logger.warning("Ollama not reachable at %s", settings.ollama_base_url)

    yield

    await http_client.aclose()


app = FastAPI(title="Relay Assistant", lifespan=lifespan)
app.include_router(health_router)
app.include_router(webhook_router)
