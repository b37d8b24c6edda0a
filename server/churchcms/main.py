import logging

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import churchcms.models  # noqa: F401
from churchcms.core.config import settings
from churchcms.core.db import SessionLocal
from churchcms.routers import attendance as attendance_router
from churchcms.routers import audit as audit_router
from churchcms.routers import auth as auth_router
from churchcms.routers import dashboard as dashboard_router
from churchcms.routers import finance as finance_router
from churchcms.routers import members as members_router
from churchcms.routers import notifications as notifications_router
from churchcms.routers import programs as programs_router
from churchcms.routers import settings as settings_router
from churchcms.routers import sms as sms_router
from churchcms.routers import users as users_router
from churchcms.services import notifications
from churchcms.services.user_accounts import seed_admin

API_PREFIX = "/api"

app = FastAPI(title="ChurchCMS API", version="1.0.0")

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(timezone="UTC")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for module in (
    auth_router,
    users_router,
    members_router,
    programs_router,
    attendance_router,
    finance_router,
    settings_router,
    sms_router,
    notifications_router,
    audit_router,
    dashboard_router,
):
    app.include_router(module.router, prefix=API_PREFIX)


def _error_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message}, headers=headers)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = str(first.get("msg") or "Invalid value")
    if message.startswith("Value error, "):
        message = message[len("Value error, ") :]
    if field and field not in message:
        return f"{field}: {message}"
    return message


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        return _error_response(exc.status_code, f"Route not found: {request.url.path}")
    return _error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(status.HTTP_400_BAD_REQUEST, _validation_message(exc))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", extra={"path": request.url.path, "method": request.method})
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


@app.get(f"{API_PREFIX}/health", tags=["health"])
def health() -> dict:
    return {"success": True, "message": "API is healthy"}


@app.on_event("startup")
def seed_admin_user() -> None:
    if not settings.SEED_ADMIN_ON_STARTUP:
        return
    with SessionLocal() as session:
        seed_admin(session)


@app.on_event("startup")
def start_scheduled_jobs() -> None:
    if not settings.SCHEDULER_ENABLED:
        logger.info("scheduler_disabled")
        return
    if not scheduler.running:
        scheduler.start()
    scheduler.add_job(
        notifications.run_birthday_job,
        trigger="cron",
        minute="*",
        id="birthday_notifications",
        replace_existing=True,
    )
    scheduler.add_job(
        notifications.run_program_reminder_job,
        trigger="interval",
        minutes=15,
        id="program_reminders",
        replace_existing=True,
    )


@app.on_event("shutdown")
def shutdown_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
