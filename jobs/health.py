"""
Health check server for the distribution scheduler.

Exposes scheduler state and the latest distribution run over HTTP.
"""

import asyncio

from aiohttp import web
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from profit_engine.config.database import async_session_maker
from profit_engine.models.run_record import RunRecord
from profit_engine.services.reporting_service import ReportingService

# Global scheduler reference for health checks
_scheduler: AsyncIOScheduler | None = None


def set_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Register the scheduler instance for health checks."""
    global _scheduler
    _scheduler = scheduler
    logger.info("Scheduler registered for health checks")


def serialize_run(run: RunRecord) -> dict:
    """Render a run record as JSON-safe dict."""
    return {
        "id": run.id,
        "cycle_date": run.cycle_date.isoformat(),
        "trigger": run.trigger,
        "status": run.status,
        "started_at": run.started_at.isoformat() if run.started_at else None,
        "ended_at": run.ended_at.isoformat() if run.ended_at else None,
        "processed_count": run.processed_count,
        "skipped_count": run.skipped_count,
        "error_count": run.error_count,
        "total_profit": str(run.total_profit),
        "total_commission": str(run.total_commission),
        "previous_run_id": run.previous_run_id,
    }


async def health_handler(request: web.Request) -> web.Response:
    """
    Health check endpoint.

    Returns:
        JSON response with scheduler jobs and their next run times
    """
    if _scheduler is None:
        return web.json_response(
            {"status": "unhealthy", "error": "Scheduler not initialized"},
            status=503,
        )

    jobs = _scheduler.get_jobs()
    return web.json_response(
        {
            "status": "healthy" if _scheduler.running else "stopped",
            "scheduler_running": _scheduler.running,
            "jobs": [
                {
                    "id": job.id,
                    "name": job.name,
                    "next_run_time": (
                        job.next_run_time.isoformat()
                        if job.next_run_time
                        else None
                    ),
                }
                for job in jobs
            ],
        }
    )


async def readiness_handler(request: web.Request) -> web.Response:
    """Readiness check endpoint."""
    ready = _scheduler is not None and _scheduler.running
    return web.json_response(
        {"status": "ready" if ready else "not_ready", "ready": ready},
        status=200 if ready else 503,
    )


async def liveness_handler(request: web.Request) -> web.Response:
    """Liveness check endpoint."""
    return web.json_response({"status": "alive", "alive": True})


async def latest_run_handler(request: web.Request) -> web.Response:
    """
    Latest distribution run endpoint.

    Returns:
        JSON with the most recent run record, or 404 when none exists
    """
    try:
        async with async_session_maker() as session:
            runs = await ReportingService(session).get_recent_runs(limit=1)
    except SQLAlchemyError as e:
        logger.error(f"Latest run lookup failed: {e}")
        return web.json_response(
            {"status": "unhealthy", "error": "database unavailable"},
            status=503,
        )

    if not runs:
        return web.json_response({"run": None}, status=404)

    return web.json_response({"run": serialize_run(runs[0])})


def create_health_app() -> web.Application:
    """Build the health check application."""
    app = web.Application()
    app.router.add_get("/health", health_handler)
    app.router.add_get("/readiness", readiness_handler)
    app.router.add_get("/liveness", liveness_handler)
    app.router.add_get("/runs/latest", latest_run_handler)
    return app


async def start_health_server(
    host: str = "0.0.0.0",
    port: int = 8080,
) -> tuple[web.AppRunner, web.TCPSite]:
    """
    Start health check server.

    Args:
        host: Host to bind to
        port: Port to bind to

    Returns:
        Tuple of (AppRunner, TCPSite) for cleanup
    """
    runner = web.AppRunner(create_health_app())
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"Health check server started on {host}:{port}")
    return runner, site


async def stop_health_server(runner: web.AppRunner, timeout: int = 5) -> None:
    """
    Stop health check server.

    Args:
        runner: AppRunner to cleanup
        timeout: Maximum time to wait for cleanup in seconds
    """
    logger.info("Stopping health check server...")
    try:
        await asyncio.wait_for(runner.cleanup(), timeout=timeout)
    except TimeoutError:
        logger.warning(f"Health check server cleanup timed out after {timeout}s")
