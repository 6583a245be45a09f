"""GA4 Reports: Report Query Routes.

Read-only views over the consolidated store, plus the manual trigger. Every
read reloads the store and recomputes; nothing is cached between requests.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ga4report.analyzer import url_stats
from ga4report.config import settings
from ga4report.core.logging import get_logger
from ga4report.repositories.consolidated_store import (
    ConsolidationRepository,
    get_store_repository,
)
from ga4report.scheduler import jobs
from ga4report.scheduler.timing import upcoming_fire_times

logger = get_logger("api.reports")

router = APIRouter(prefix="/api", tags=["Reports"])


def get_report_runner() -> Callable[[], Dict[str, Any]]:
    """Dependency: the synchronous fetch-and-consolidate step."""
    return jobs.run_logged_report


def scheduler_status() -> Dict[str, Any]:
    now = datetime.now(ZoneInfo(settings.ga4_timezone))
    return {
        "active": jobs.is_running(),
        "nextExecution": jobs.next_run_time(),
        "upcoming": [
            t.isoformat() for t in upcoming_fire_times(now, settings.schedule_hour_list, 4)
        ],
        "hours": settings.schedule_hour_list,
        "timezone": settings.ga4_timezone,
    }


# ── Endpoints ──


@router.get("/health")
def health(repo: ConsolidationRepository = Depends(get_store_repository)):
    """Store existence, size and counts."""
    document = repo.load_raw()
    stat = repo.stat()
    metadata = document.get("metadata", {})
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "scheduler": scheduler_status(),
        "dataFile": {
            "path": repo.location,
            "size": f"{stat['size_bytes'] / 1024:.2f} KB",
            "lastModified": stat["last_modified"],
            "executions": metadata.get("totalExecutions", 0),
            "urls": len(metadata.get("distinctUrls", [])),
        },
    }


@router.get("/stats")
def stats(repo: ConsolidationRepository = Depends(get_store_repository)):
    """Global totals and the covered period."""
    return url_stats.global_stats(repo.load()).model_dump(by_alias=True)


@router.get("/executions")
def executions(repo: ConsolidationRepository = Depends(get_store_repository)):
    """All executions, oldest first."""
    items = url_stats.list_executions(repo.load())
    return {
        "total": len(items),
        "executions": [item.model_dump(by_alias=True) for item in items],
    }


@router.get("/urls")
def urls(repo: ConsolidationRepository = Depends(get_store_repository)):
    """Per-URL aggregates, most viewed first."""
    aggregates = url_stats.compute_url_stats(repo.load())
    return {
        "total": len(aggregates),
        "urls": [a.model_dump(by_alias=True) for a in aggregates],
    }


@router.get("/execution/{execution_id}")
def execution_detail(
    execution_id: str, repo: ConsolidationRepository = Depends(get_store_repository)
):
    """One execution with a derived summary."""
    store = repo.load()
    execution = store.data.get(execution_id)
    if execution is None:
        return JSONResponse(
            status_code=404,
            content={
                "error": "Execution not found",
                "id": execution_id,
                "available": list(store.data),
            },
        )
    return {
        **execution.model_dump(by_alias=True),
        "summary": url_stats.execution_summary(execution).model_dump(by_alias=True),
    }


@router.get("/url/{url_path:path}")
def url_detail(url_path: str, repo: ConsolidationRepository = Depends(get_store_repository)):
    """Fuzzy URL lookup with its full history."""
    store = repo.load()
    history = url_stats.lookup_url(store, url_path)
    if history is None:
        return JSONResponse(
            status_code=404,
            content={
                "error": "URL not found",
                "searchTerm": url_path,
                "availableUrls": store.metadata.distinct_urls,
            },
        )
    return history.model_dump(by_alias=True)


@router.get("/raw")
def raw(repo: ConsolidationRepository = Depends(get_store_repository)):
    """The whole store, verbatim."""
    return repo.load_raw()


@router.post("/trigger-report")
def trigger_report(runner: Callable[[], Dict[str, Any]] = Depends(get_report_runner)):
    """Run the fetch-and-consolidate step now and wait for it."""
    logger.info("🔔 Manual report requested via API")
    outcome = runner()
    timestamp = datetime.now(timezone.utc).isoformat()
    if not outcome.get("success"):
        return JSONResponse(
            status_code=500,
            content={
                "error": "Error executing report",
                "message": outcome.get("error", "unknown error"),
                "logFile": outcome.get("logFile"),
                "timestamp": timestamp,
            },
        )
    return {"message": "Report executed", **outcome, "timestamp": timestamp}
