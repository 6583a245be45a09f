"""GA4 Reports: Scheduler Jobs.

APScheduler cron job that runs the report pipeline at fixed clock hours
(00:00, 06:00, 12:00 and 18:00 by default) and keeps one log file per run.
"""

import asyncio
import io
import logging
import time
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from ga4report.analyzer.pipeline import run_report
from ga4report.config import settings
from ga4report.core.logging import JSONFormatter, get_logger
from ga4report.scheduler.retry import RetryPolicy, policy_from_settings
from ga4report.scheduler.timing import next_fire_time

logger = get_logger("scheduler")

LOG_PREFIX = "ga4_report_"
JOB_ID = "ga4_report"

scheduler = AsyncIOScheduler()


def _default_run() -> Any:
    return run_report().to_dict()


# ── Log Files ──


def log_filename(log_dir: str | Path, now: Optional[datetime] = None) -> Path:
    now = now or datetime.now(ZoneInfo(settings.ga4_timezone))
    return Path(log_dir) / f"{LOG_PREFIX}{now:%Y-%m-%d}_{now:%H-%M}.log"


def clean_old_logs(log_dir: str | Path, keep: int) -> list[Path]:
    """Delete all but the ``keep`` most recently modified run logs."""
    directory = Path(log_dir)
    if not directory.is_dir():
        return []
    files = sorted(
        (p for p in directory.glob(f"{LOG_PREFIX}*.log") if p.is_file()),
        key=lambda p: p.stat().st_mtime,
        reverse=True,
    )
    deleted = []
    for path in files[keep:]:
        try:
            path.unlink()
            deleted.append(path)
            logger.info(f"🗑️ Deleted old log {path.name}")
        except OSError as e:
            logger.error(f"Could not delete {path.name}: {e}")
    return deleted


def run_logged_report(
    run: Callable[[], Any] = _default_run,
    log_dir: str | Path | None = None,
    max_log_files: int | None = None,
    retry_policy: RetryPolicy | None = None,
) -> Dict[str, Any]:
    """Run the report once, writing its output and duration to a log file.

    Never raises: a failed run is reported in the returned dict and the log.
    """
    log_dir = Path(log_dir or settings.log_dir)
    keep = settings.max_log_files if max_log_files is None else max_log_files
    policy = retry_policy or policy_from_settings()

    log_dir.mkdir(parents=True, exist_ok=True)
    clean_old_logs(log_dir, keep)

    started = datetime.now(ZoneInfo(settings.ga4_timezone))
    log_file = log_filename(log_dir, started)
    t0 = time.monotonic()
    logger.info(f"🚀 Starting GA4 report, log: {log_file}")

    # Capture everything the run logs under the package logger
    buffer = io.StringIO()
    capture = logging.StreamHandler(buffer)
    capture.setFormatter(JSONFormatter())
    package_logger = logging.getLogger("ga4report")
    package_logger.addHandler(capture)

    result: Any = None
    error: Optional[BaseException] = None
    error_trace = ""
    try:
        for delay in [0.0, *policy.delays()]:
            if delay:
                logger.info(f"Retrying report in {delay}s")
                time.sleep(delay)
            try:
                result = run()
                error = None
                break
            except Exception as e:
                error = e
                error_trace = traceback.format_exc()
                logger.error(f"❌ Report run failed: {e}")
    finally:
        package_logger.removeHandler(capture)

    duration = round(time.monotonic() - t0, 2)
    finished = datetime.now(ZoneInfo(settings.ga4_timezone))

    if error is None:
        lines = [
            f"=== GA4 REPORT - {started.isoformat()} ===",
            f"Duration: {duration} seconds",
            "",
            "=== OUTPUT ===",
            buffer.getvalue(),
            f"=== FINISHED - {finished.isoformat()} ===",
            "",
        ]
    else:
        lines = [
            f"=== GA4 REPORT ERROR - {started.isoformat()} ===",
            f"Duration: {duration} seconds",
            "",
            "=== OUTPUT ===",
            buffer.getvalue(),
            "=== ERROR ===",
            str(error),
            "",
            "=== TRACEBACK ===",
            error_trace or "Not available",
            f"=== FINISHED WITH ERROR - {finished.isoformat()} ===",
            "",
        ]
    log_file.write_text("\n".join(lines), encoding="utf-8")

    outcome: Dict[str, Any] = {
        "success": error is None,
        "duration": duration,
        "logFile": str(log_file),
    }
    if error is None:
        logger.info(f"✅ Report completed in {duration}s", extra={"duration_ms": int(duration * 1000)})
        outcome["result"] = result
    else:
        outcome["error"] = str(error)
    return outcome


# ── APScheduler ──


async def scheduled_report_job():
    """Run the report pipeline off the event loop."""
    logger.info("🔔 Scheduled report starting...")
    outcome = await asyncio.to_thread(run_logged_report)
    if not outcome["success"]:
        logger.error(f"Scheduled report failed: {outcome['error']}")


def next_run_time() -> str:
    now = datetime.now(ZoneInfo(settings.ga4_timezone))
    return next_fire_time(now, settings.schedule_hour_list).isoformat()


def is_running() -> bool:
    return scheduler.running and scheduler.get_job(JOB_ID) is not None


def start_scheduler():
    """Configure and start the scheduler."""
    if not settings.scheduler_enabled:
        logger.info("Scheduler disabled via config")
        return

    hours = ",".join(str(h) for h in settings.schedule_hour_list)
    scheduler.add_job(
        scheduled_report_job,
        "cron",
        hour=hours,
        minute=0,
        timezone=settings.ga4_timezone,
        id=JOB_ID,
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started. Reports at hours {hours} ({settings.ga4_timezone}); next {next_run_time()}"
    )


def stop_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
