from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from drtime.adapters.api.controllers.realtime import router as realtime_router
from drtime.adapters.api.controllers.routes import router as routes_router
from drtime.adapters.api.controllers.stops import router as stops_router
from drtime.adapters.api.dependencies import build_services
from drtime.adapters.config import FeedRuntimeConfig, reveal_errors
from drtime.domain.exceptions import FeedError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the shared services and warm the static feed cache."""

    services = build_services(FeedRuntimeConfig.from_env())
    app.state.services = services

    try:
        await services.static_store.get_snapshot()
    except FeedError:
        logger.exception("Initial static GTFS load failed - will retry on first request")

    yield


app = FastAPI(title="DRTime", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(stops_router)
app.include_router(routes_router)
app.include_router(realtime_router)


@app.exception_handler(FeedError)
async def feed_error_handler(request: Request, exc: FeedError) -> JSONResponse:
    """Static feed failures: nothing meaningful can be returned without the schedule."""

    logger.error("Transit feed unavailable for %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content={"error": "Failed to load transit data", "detail": str(exc)},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Ensure API errors are JSON so the frontend can display them."""

    logging.getLogger("uvicorn.error").exception(
        "Unhandled exception", extra={"path": str(request.url.path)}
    )

    if reveal_errors() or isinstance(exc, (RuntimeError, ValueError)):
        detail = str(exc) or exc.__class__.__name__
    else:
        detail = "Internal Server Error"

    return JSONResponse(
        status_code=500, content={"error": "Internal Server Error", "detail": detail}
    )


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
