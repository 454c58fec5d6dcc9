from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import Awaitable, Callable
import logging
import re

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from tracker.api.handlers.deps import ApiDeps
from tracker.api.handlers.dev_email import send_test_email_handler
from tracker.api.handlers.notifications import list_notifications_handler
from tracker.api.handlers.status import update_submission_status_handler
from tracker.api.handlers.submissions import get_submission_handler, track_submission_handler
from tracker.api.schemas import (
    EMAIL_PATTERN,
    ErrorResponse,
    HealthResponse,
    NotificationLogListResponse,
    ReadyResponse,
    SubmissionResponse,
    TestEmailResponse,
    TrackingResponse,
    UpdateStatusRequest,
    UpdateStatusResponse,
)
from tracker.domain.errors import (
    ConflictingTransitionError,
    DomainError,
    IllegalTransitionError,
    InvalidStatusError,
    NoOpTransitionError,
    SubmissionNotFoundError,
)
from tracker.repositories.postgres import DatabaseInitializer

APP_TITLE = "public-service-tracker"
GENERIC_ERROR_MESSAGE = "internal server error"
_UPDATE_STATUS_BODY = {
    "requestBody": {
        "required": True,
        "content": {"application/json": {"schema": UpdateStatusRequest.model_json_schema()}},
    }
}
_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


async def _requested_status(request: Request) -> object:
    """Read `status` from the body; anything unreadable becomes None and fails as an invalid status."""
    try:
        payload = await request.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    return UpdateStatusRequest.model_validate(payload).status


def _error(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


def domain_error_response(exc: DomainError) -> JSONResponse:
    """Map a domain error to its HTTP status and response body."""
    match exc:
        case SubmissionNotFoundError():
            return _error(404, ErrorResponse(message="submission not found"))
        case ConflictingTransitionError():
            return _error(
                409,
                ErrorResponse(
                    message=str(exc),
                    current_status=exc.current_status,
                    attempted_status=exc.attempted_status,
                ),
            )
        case IllegalTransitionError():
            return _error(
                400,
                ErrorResponse(
                    message=str(exc),
                    current_status=exc.current_status,
                    attempted_status=exc.attempted_status,
                    allowed_statuses=exc.allowed_statuses,
                ),
            )
        case NoOpTransitionError():
            return _error(
                400,
                ErrorResponse(
                    message=str(exc),
                    current_status=exc.current_status,
                    attempted_status=exc.attempted_status,
                ),
            )
        case InvalidStatusError():
            attempted = exc.value if isinstance(exc.value, str) else None
            return _error(400, ErrorResponse(message=str(exc), attempted_status=attempted))
        case _:
            return _error(400, ErrorResponse(message=str(exc)))


def build_app(
    service: str,
    run_id: str,
    api_deps: ApiDeps | None = None,
    mode: str = "memory",
    initializer: DatabaseInitializer | None = None,
    on_startup: Callable[[], Awaitable[None]] | None = None,
    on_shutdown: Callable[[], Awaitable[None]] | None = None,
) -> FastAPI:
    logger = logging.getLogger("runtime")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        del app
        logger.info("service started", extra={"service": service, "run_id": run_id})

        if on_startup is not None:
            await on_startup()

        yield

        if on_shutdown is not None:
            await on_shutdown()

        logger.info("service stopped", extra={"service": service, "run_id": run_id})

    app = FastAPI(title=APP_TITLE, version="0.1.0", lifespan=lifespan)

    @app.exception_handler(DomainError)
    async def handle_domain_error(request: Request, exc: DomainError) -> JSONResponse:
        del request
        return domain_error_response(exc)

    def _require_deps() -> ApiDeps:
        if api_deps is None:
            raise HTTPException(status_code=503, detail="api dependencies are not available")
        return api_deps

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", service=service, mode=mode)

    @app.get("/ready", response_model=ReadyResponse, tags=["System"])
    async def ready() -> ReadyResponse:
        database_initialized = initializer.initialized if initializer is not None else True
        return ReadyResponse(
            status="ready" if database_initialized else "starting",
            service=service,
            mode=mode,
            database_initialized=database_initialized,
        )

    @app.patch(
        "/submissions/{submission_id}/status",
        response_model=UpdateStatusResponse,
        responses=_ERROR_RESPONSES,
        openapi_extra=_UPDATE_STATUS_BODY,
        tags=["Submissions"],
    )
    async def update_submission_status(submission_id: str, request: Request):
        deps = _require_deps()
        status = await _requested_status(request)
        try:
            return await update_submission_status_handler(
                submission_id=submission_id,
                status=status,
                api_deps=deps,
            )
        except DomainError:
            raise
        except Exception:
            logger.exception(
                "status update failed",
                extra={"service": service, "run_id": run_id, "submission_id": submission_id},
            )
            return _error(500, ErrorResponse(message=GENERIC_ERROR_MESSAGE))

    @app.get(
        "/submissions/{submission_id}",
        response_model=SubmissionResponse,
        responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
        tags=["Submissions"],
    )
    async def get_submission(submission_id: str) -> SubmissionResponse:
        submission = await get_submission_handler(submission_id=submission_id, api_deps=_require_deps())
        if submission is None:
            raise SubmissionNotFoundError(submission_id)
        return submission

    @app.get(
        "/submissions/{submission_id}/notifications",
        response_model=NotificationLogListResponse,
        responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
        tags=["Submissions"],
    )
    async def list_notifications(submission_id: str) -> NotificationLogListResponse:
        logs = await list_notifications_handler(submission_id=submission_id, api_deps=_require_deps())
        if logs is None:
            raise SubmissionNotFoundError(submission_id)
        return logs

    @app.get(
        "/track/{tracking_code}",
        response_model=TrackingResponse,
        responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
        tags=["Tracking"],
    )
    async def track_submission(tracking_code: str) -> TrackingResponse:
        tracked = await track_submission_handler(tracking_code=tracking_code, api_deps=_require_deps())
        if tracked is None:
            raise SubmissionNotFoundError(tracking_code)
        return tracked

    @app.get(
        "/dev/test-email",
        response_model=TestEmailResponse,
        responses={400: {"model": TestEmailResponse}, 403: {"model": TestEmailResponse}, 500: {"model": TestEmailResponse}},
        tags=["Development"],
    )
    async def send_test_email(to: str | None = Query(default=None)):
        deps = _require_deps()
        if deps.settings.is_production:
            return JSONResponse(
                status_code=403,
                content=TestEmailResponse(
                    success=False,
                    message="Test endpoint is not available in production",
                ).model_dump(exclude_none=True),
            )
        if not to:
            return JSONResponse(
                status_code=400,
                content=TestEmailResponse(
                    success=False,
                    message='Query parameter "to" is required',
                ).model_dump(exclude_none=True),
            )
        if re.fullmatch(EMAIL_PATTERN, to) is None:
            return JSONResponse(
                status_code=400,
                content=TestEmailResponse(success=False, message="Invalid email format").model_dump(exclude_none=True),
            )
        result = await send_test_email_handler(to=to, api_deps=deps)
        if not result.success:
            logger.warning(
                "test email failed",
                extra={"service": service, "run_id": run_id, "detail": result.message},
            )
            return JSONResponse(status_code=500, content=result.model_dump(mode="json", exclude_none=True))
        return result

    return app
