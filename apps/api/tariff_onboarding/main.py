from __future__ import annotations

import uuid
from typing import Any, Dict, Mapping, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from tariff_onboarding.core.api_client import ClientFactory, default_client_factory
from tariff_onboarding.core.config import Settings, get_settings
from tariff_onboarding.core.errors import WorkflowError, err_envelope
from tariff_onboarding.core.logging import configure_logging, emit
from tariff_onboarding.modules.onboarding import router as onboarding_router
from tariff_onboarding.modules.onboarding.schemas import DEFAULT_PAGES, OnboardPage
from tariff_onboarding.modules.providers import ProviderHooks, get_provider_hooks
from tariff_onboarding.modules.tariff_plan import router as tariff_plan_router


def create_app(
    settings: Optional[Settings] = None,
    *,
    provider_hooks: Optional[ProviderHooks] = None,
    client_factory: Optional[ClientFactory] = None,
    pages: Optional[Mapping[str, OnboardPage]] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Tariff Onboarding API", version=settings.app_version)
    app.state.settings = settings
    app.state.provider_hooks = provider_hooks or get_provider_hooks(settings.provider_hooks)
    app.state.client_factory = client_factory or default_client_factory(settings.api_url, settings.api_timeout_seconds)
    app.state.pages = dict(pages or DEFAULT_PAGES)

    # Contract locks:
    # - X-Request-Id in/out (missing -> generated; always echoed back; also on errors)
    # - Error envelope keys: error, message, request_id, details
    # - workflow errors never carry a state token
    @app.middleware("http")
    async def _request_id_mw(request: Request, call_next):
        rid = request.headers.get("X-Request-Id") or uuid.uuid4().hex.upper()
        request.state.request_id = rid
        emit("info", "http.request.start", f"{request.method} {request.url.path}", rid, __name__)
        try:
            resp = await call_next(request)
        except Exception as e:
            emit("error", "http.request.exception", str(e), rid, __name__)
            raise
        resp.headers["X-Request-Id"] = rid
        emit("info", "http.request.end", f"{request.method} {request.url.path} -> {getattr(resp, 'status_code', None)}", rid, __name__)
        return resp

    @app.exception_handler(WorkflowError)
    async def _workflow_exc_handler(request: Request, exc: WorkflowError):
        rid = getattr(request.state, "request_id", None)
        reason = getattr(exc, "reason", None)
        emit(
            "warning" if exc.status_code < 500 else "error",
            f"workflow.{exc.code}",
            exc.message,
            rid,
            __name__,
            path=request.url.path,
            reason=reason,
            **exc.details,
        )
        details: Dict[str, Any] = dict(exc.details)
        callback_url = getattr(request.state, "callback_url", None)
        if callback_url:
            details["callback_url"] = callback_url
        return err_envelope(exc.code, exc.message, rid, details, exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def _http_exc_handler(request: Request, exc: StarletteHTTPException):
        rid = getattr(request.state, "request_id", None)
        return err_envelope("http_error", str(exc.detail), rid, {"status_code": exc.status_code}, exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _validation_exc_handler(request: Request, exc: RequestValidationError):
        rid = getattr(request.state, "request_id", None)
        return err_envelope("validation_error", "request validation failed", rid, exc.errors(), 422)

    @app.exception_handler(Exception)
    async def _unhandled_exc_handler(request: Request, exc: Exception):
        rid = getattr(request.state, "request_id", None)
        emit("error", "http.unhandled", f"{type(exc).__name__}: {exc}", rid, __name__)
        return err_envelope("internal_error", "internal server error", rid, {"type": type(exc).__name__}, 500)

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "version": settings.app_version,
            "api_url": settings.api_url,
            "provider_hooks": getattr(app.state.provider_hooks, "name", type(app.state.provider_hooks).__name__),
            "last_error_summary": None,
        }

    app.include_router(onboarding_router)
    app.include_router(tariff_plan_router)
    return app


app = create_app()
