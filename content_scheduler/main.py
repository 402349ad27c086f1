import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from content_scheduler.config import settings
from content_scheduler.database import get_db
from content_scheduler.routers import auth, cron, publisher, schedule
from content_scheduler.services.authz import get_current_user
from content_scheduler.services.errors import SchedulingError, Unauthorized

log = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _field_name(err: dict) -> str:
    if err.get("type") == "json_invalid":
        return "body"
    loc = err.get("loc", ())
    # ("body", "contentType") -> "contentType"; ("query", "limit") -> "limit"
    parts = [str(p) for p in loc[1:]] if len(loc) > 1 else [str(p) for p in loc]
    return ".".join(parts)


async def scheduling_error_handler(request: Request, exc: SchedulingError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


def _requires_session(dependant) -> bool:
    return any(
        dep.call is get_current_user or _requires_session(dep) for dep in dependant.dependencies
    )


def _session_error(request: Request) -> Unauthorized | None:
    """
    Auth runs as a route dependency, after FastAPI has parsed the body. A body that
    is not JSON at all fails before that, so the session is checked here instead.
    """
    route = request.scope.get("route")
    dependant = getattr(route, "dependant", None)
    if dependant is None or not _requires_session(dependant):
        return None

    provider = request.app.dependency_overrides.get(get_db, get_db)
    db_gen = provider()
    db = next(db_gen)
    try:
        get_current_user(request, db)
    except Unauthorized as exc:
        return exc
    finally:
        db_gen.close()
    return None


def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        denied = _session_error(request)
        if denied is not None:
            return JSONResponse(status_code=denied.status_code, content=denied.to_body())

    details = [{"field": _field_name(err), "message": err.get("msg", "")} for err in errors]
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": details})


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail if isinstance(exc.detail, str) else "Request failed"},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Content Scheduler")

    # Enable CORS (required for the web frontend)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(SchedulingError, scheduling_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Register routers
    app.include_router(auth.router)
    app.include_router(schedule.router)
    app.include_router(publisher.router)
    app.include_router(cron.router)

    # Health check
    @app.get("/")
    def health_check():
        return {"status": "ok"}

    return app


app = create_app()
