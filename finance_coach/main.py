import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from finance_coach import config as app_config
from finance_coach import metrics
from finance_coach.config import settings
from finance_coach.db import SessionLocal, init_db
from finance_coach.errors import FinanceCoachError
from finance_coach.logging import configure_json_logging, configure_plain_logging
from finance_coach.middleware.request_logging import RequestLogMiddleware
from finance_coach.routers import goals, health, insights, subscriptions, transactions
from finance_coach.store import SqlTransactionStore, TransactionStore

logger = logging.getLogger("finance_coach")

_ENGINES = {"subscriptions", "insights", "goals", "transactions"}


def _engine_for(path: str) -> str:
    rest = path[len(settings.API_PREFIX):] if path.startswith(settings.API_PREFIX) else path
    head = rest.strip("/").split("/", 1)[0]
    if head == "transactions":
        return "rollups"
    return head if head in _ENGINES else "http"


def _format_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("query", "body"))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "invalid request"


async def finance_error_handler(request: Request, exc: FinanceCoachError):
    metrics.engine_errors.labels(engine=_engine_for(request.url.path), code=exc.code).inc()
    logger.info("request rejected path=%s code=%s", request.url.path, exc.code)
    return JSONResponse(status_code=400, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError):
    metrics.engine_errors.labels(engine=_engine_for(request.url.path), code="invalid_request").inc()
    return JSONResponse(
        status_code=400,
        content={"error": "invalid_request", "hint": _format_validation_error(exc)},
    )


def create_app(store: TransactionStore | None = None) -> FastAPI:
    """Build the API. ``store`` defaults to the SQL store on the configured database."""
    app = FastAPI(
        title="Finance Coach",
        version="0.1.0",
        openapi_url="/openapi.json",
        docs_url="/docs",
    )
    if store is None:
        store = SqlTransactionStore(SessionLocal)

        @app.on_event("startup")
        async def _ensure_schema():
            init_db()

    app.state.store = store

    app.add_exception_handler(FinanceCoachError, finance_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.add_middleware(RequestLogMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_config.ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )

    for r in (subscriptions, insights, goals, transactions):
        app.include_router(r.router, prefix=settings.API_PREFIX)
    app.include_router(health.router)

    metrics.prime_metrics()
    return app


def _configure_logging() -> None:
    if settings.LOG_JSON:
        configure_json_logging(settings.LOG_LEVEL)
    else:
        configure_plain_logging(settings.LOG_LEVEL)


_configure_logging()
app = create_app()
