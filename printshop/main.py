"""FastAPI entrypoint for the print shop order-management API."""

from __future__ import annotations

import logging
from time import perf_counter

from fastapi import FastAPI, Request

from printshop.api.v1.api import api_router
from printshop.core.config import settings
from printshop.db.base import Base
from printshop.db.seed import ensure_seed_data
from printshop.db.session import SessionLocal, engine
from printshop.services.webhook_dispatcher import close_dispatcher

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)
app.include_router(api_router, prefix="/api/v1")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = perf_counter()
    response = await call_next(request)
    logger.info(
        "%s %s -> %s (%.1f ms)",
        request.method,
        request.url.path,
        response.status_code,
        (perf_counter() - started) * 1000,
    )
    return response


@app.on_event("startup")
def startup() -> None:
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as session:
        try:
            ensure_seed_data(session)
        except Exception:
            logger.exception("[BOOTSTRAP] Seed/bootstrap failed; continuing startup.")
    if not settings.api_key:
        logger.warning("API_KEY not set; integration endpoints will reject every request.")


@app.on_event("shutdown")
def shutdown() -> None:
    close_dispatcher()


@app.get("/health", include_in_schema=False)
def health() -> dict[str, str]:
    return {"status": "ok", "env": settings.app_env}
