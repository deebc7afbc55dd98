"""
FastAPI Application — HTTP surface for the daily reminder system.

Provides:
- GET  /health           liveness + rule counts + channel metrics
- POST /manual-trigger   run one reminder pass now (bearer auth)
- POST /test-connection  send a webhook connectivity test (bearer auth)
- Daily scheduler started in the lifespan
"""
from __future__ import annotations

import hmac
import structlog
from datetime import datetime, timezone
from typing import Any, Optional
from contextlib import asynccontextmanager

# Load .env before any config is read
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config.settings import Settings, get_settings
from core.orchestrator import ReminderRunner, create_runner
from core.scheduler import DailyScheduler
from rules.loader import ConfigLoadError, load_reminder_config

logger = structlog.get_logger()

AUTH_FAILED = {"error": "認証に失敗しました"}


def is_authorized(request: Request, secret: str) -> bool:
    """Bearer check. An unset secret rejects every request."""
    if not secret:
        return False
    header = request.headers.get("Authorization", "")
    return hmac.compare_digest(header.encode(), f"Bearer {secret}".encode())


def create_app(
    settings: Optional[Settings] = None,
    runner: Optional[ReminderRunner] = None,
) -> FastAPI:
    settings = settings or get_settings()
    runner = runner or create_runner(settings)
    scheduler = DailyScheduler(
        lambda: runner.run(trigger="scheduled"),
        run_at=settings.schedule.run_at,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.schedule.enabled:
            await scheduler.start()
        logger.info("daily_reminder_started", version=settings.version,
                    scheduler=settings.schedule.enabled)
        yield
        await scheduler.stop()
        await runner.close()
        logger.info("daily_reminder_stopped")

    app = FastAPI(
        title=f"{settings.app_name} API",
        description="Daily reminder evaluation and webhook delivery",
        version=settings.version,
        lifespan=lifespan,
    )
    app.state.runner = runner
    app.state.scheduler = scheduler

    # ══════════════════════════════════════════════════════════
    #  HEALTH
    # ══════════════════════════════════════════════════════════

    @app.get("/health")
    async def health():
        body: dict[str, Any] = {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": settings.version,
            "scheduler_running": scheduler.is_running,
            "channel": runner.notifier.client.metrics.to_dict(),
        }
        try:
            body["rules"] = load_reminder_config(settings.reminders_path).summary()
        except ConfigLoadError as e:
            logger.warning("health_rules_unavailable", error=str(e))
        return body

    # ══════════════════════════════════════════════════════════
    #  TRIGGERS
    # ══════════════════════════════════════════════════════════

    @app.post("/manual-trigger")
    async def manual_trigger(request: Request):
        if not is_authorized(request, settings.manual_trigger_secret):
            return JSONResponse(AUTH_FAILED, status_code=401)
        try:
            result = await runner.run(trigger="manual")
        except Exception as e:
            return JSONResponse({"error": str(e)}, status_code=500)
        return result.model_dump(mode="json")

    @app.post("/test-connection")
    async def test_connection(request: Request):
        if not is_authorized(request, settings.manual_trigger_secret):
            return JSONResponse(AUTH_FAILED, status_code=401)
        return await runner.test_connection()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
