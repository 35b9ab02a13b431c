"""
Work Summary Service — HTTP surface.

Exposes the on-demand test sends to the authenticating gateway in front of
this service. The gateway authenticates the caller and forwards their user
id in X-User-Id; requests are trusted only with the shared X-API-Key.

The FastAPI lifespan starts the hourly scheduler with the app and stops it
on shutdown.
"""

from __future__ import annotations

import logging
import secrets
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import TYPE_CHECKING

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from worksummary.config import settings
from worksummary.core.summary_service import WorkSummaryService
from worksummary.data.models import SummaryKind

if TYPE_CHECKING:
    from worksummary.core.scheduler import WorkSummaryScheduler

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Security: gateway-authenticated caller
# ---------------------------------------------------------------------------


def current_user_id(
    x_api_key: str = Header(default=""),
    x_user_id: int | None = Header(default=None),
) -> int:
    """Resolve the calling user; rejects requests not coming from the gateway."""
    if not x_api_key or not secrets.compare_digest(x_api_key, settings.API_KEY):
        logger.warning("Rejected request with invalid API key")
        raise HTTPException(status_code=401, detail="Invalid API key")
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return x_user_id


def _service(request: Request) -> WorkSummaryService:
    return request.app.state.summary_service


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


async def _test_send(service: WorkSummaryService, user_id: int, kind: SummaryKind) -> JSONResponse:
    result = await service.send_test_summary(user_id, kind)
    return JSONResponse(status_code=200 if result.success else 400, content=asdict(result))


async def send_test_daily(
    user_id: int = Depends(current_user_id),
    service: WorkSummaryService = Depends(_service),
) -> JSONResponse:
    return await _test_send(service, user_id, SummaryKind.DAILY)


async def send_test_weekly(
    user_id: int = Depends(current_user_id),
    service: WorkSummaryService = Depends(_service),
) -> JSONResponse:
    return await _test_send(service, user_id, SummaryKind.WEEKLY)


async def health(request: Request) -> dict:
    scheduler = request.app.state.summary_scheduler
    return {"status": "ok", "scheduler_running": bool(scheduler.running)}


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


def build_app(
    service: WorkSummaryService | None = None,
    scheduler: WorkSummaryScheduler | None = None,
) -> FastAPI:
    """Build the FastAPI app with the service and its scheduler.

    Args:
        service: Summary service. Defaults to SQLite stores at DATABASE_PATH
                 and the SMTP mailer from settings.
        scheduler: Scheduler driving service.run_once(). Defaults to an
                   hourly WorkSummaryScheduler.
    """
    if service is None:
        from worksummary.adapters.smtp_mailer import SMTPMailer
        from worksummary.data.db import AllocationDB, EmailPreferenceDB, SummaryLogDB, UserDB

        service = WorkSummaryService(
            mailer=SMTPMailer.from_settings(),
            user_db=UserDB(),
            allocation_db=AllocationDB(),
            preference_db=EmailPreferenceDB(),
            summary_log=SummaryLogDB(),
        )

    if scheduler is None:
        from worksummary.core.scheduler import WorkSummaryScheduler

        scheduler = WorkSummaryScheduler(service)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler.start()
        try:
            yield
        finally:
            scheduler.stop()

    app = FastAPI(title="Work Summary Service", lifespan=lifespan)
    app.state.summary_service = service
    app.state.summary_scheduler = scheduler

    app.add_api_route("/health", health, methods=["GET"])
    app.add_api_route(
        "/api/user/work-summary/test-daily", send_test_daily, methods=["POST"],
    )
    app.add_api_route(
        "/api/user/work-summary/test-weekly", send_test_weekly, methods=["POST"],
    )

    logger.info("Work summary app built with %d routes", len(app.routes))
    return app


def main() -> None:
    """Entry point: build the app and serve it."""
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting Work Summary Service...")
    uvicorn.run(build_app(), host=settings.API_HOST, port=settings.API_PORT)


if __name__ == "__main__":
    main()
