"""GA4 Reports: FastAPI Application Entry Point.

Serves the consolidated GA4 page metrics and runs the fixed-hour scheduler.
"""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ga4report.api.config_routes import router as config_router
from ga4report.api.report_routes import router as report_router
from ga4report.api.report_routes import scheduler_status
from ga4report.config import settings
from ga4report.core.logging import get_logger
from ga4report.repositories.consolidated_store import StoreNotFoundError
from ga4report.repositories.url_config import UrlConfigError
from ga4report.scheduler.jobs import run_logged_report, start_scheduler, stop_scheduler

logger = get_logger("main")

ENDPOINTS = [
    "GET /",
    "GET /api/health",
    "GET /api/stats",
    "GET /api/executions",
    "GET /api/urls",
    "GET /api/execution/{id}",
    "GET /api/url/{url_path}",
    "GET /api/raw",
    "POST /api/trigger-report",
    "GET /api/config/urls",
    "POST /api/config/urls",
    "PUT /api/config/urls",
    "DELETE /api/config/urls",
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info("🚀 GA4 report server starting up...")
    start_scheduler()
    if settings.run_on_startup:
        logger.info("Running initial report on startup")
        asyncio.get_running_loop().run_in_executor(None, run_logged_report)
    yield
    stop_scheduler()
    logger.info("GA4 report server shut down")


app = FastAPI(
    title="GA4 Reports",
    description="Scheduled GA4 page metrics, consolidated across executions and served as JSON.",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(report_router)
app.include_router(config_router)


# ── Error Handlers ──


@app.exception_handler(StoreNotFoundError)
async def store_not_found_handler(request: Request, exc: StoreNotFoundError):
    return JSONResponse(
        status_code=404,
        content={
            "error": "Consolidated file not found",
            "message": "Run a consolidation first (ga4report consolidate)",
            "file": exc.location,
        },
    )


@app.exception_handler(UrlConfigError)
async def url_config_error_handler(request: Request, exc: UrlConfigError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc)},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Invalid request body", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content={"error": "Endpoint not found", "available": ENDPOINTS},
        )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"❌ {request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "message": str(exc)},
    )


# ── System ──


@app.get("/", tags=["System"])
async def root():
    """Service description and endpoint listing."""
    return {
        "message": "GA4 Reports API",
        "version": app.version,
        "scheduler": scheduler_status(),
        "endpoints": ENDPOINTS,
    }
