from __future__ import annotations

import time
import uuid

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from screentutor.app.api.chat import router as chat_router
from screentutor.app.api.health import VERSION, router as health_router
from screentutor.app.api.providers import router as providers_router
from screentutor.app.config.settings import settings
from screentutor.app.core.errors import APIError
from screentutor.app.core.logging import get_logger, request_id_var, setup_logging
from screentutor.app.providers.client import ProviderClient
from screentutor.app.providers.fallback import FallbackOrchestrator
from screentutor.app.providers.health import HealthProber
from screentutor.app.security.cors import cors_kwargs

setup_logging(level=settings.log_level, json_output=settings.log_json, log_file=settings.log_file or None)
logger = get_logger("screentutor")


def _request_context(request: Request) -> dict:
    # Bodies are never logged: they carry provider API keys.
    return {
        "method": request.method,
        "path": request.url.path,
        "client_ip": request.client.host if request.client else None,
    }


app = FastAPI(title="ScreenTutor Provider Service", version=VERSION)


@app.on_event("startup")
async def startup_event():
    """Build the shared provider client, orchestrator and prober."""
    client = ProviderClient(
        timeout_seconds=settings.provider_timeout_seconds,
        default_max_tokens=settings.default_max_tokens,
    )
    app.state.provider_client = client
    app.state.orchestrator = FallbackOrchestrator(client)
    app.state.prober = HealthProber(
        client,
        probe_timeout=settings.health_timeout_seconds,
        local_check_timeout=settings.local_check_timeout_seconds,
        degraded_after_seconds=settings.health_degraded_threshold_seconds,
    )


@app.on_event("shutdown")
async def shutdown_event():
    client = getattr(app.state, "provider_client", None)
    if client is not None:
        await client.aclose()


app.add_middleware(CORSMiddleware, **cors_kwargs(settings.cors_origins_list))


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "no-referrer"
        return response


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            request_id_var.reset(token)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.monotonic()
        response = await call_next(request)
        latency = time.monotonic() - start_time

        logger.info(
            "Request completed",
            data={
                "request_id": getattr(request.state, "request_id", "unknown"),
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "latency_ms": round(latency * 1000, 2),
            },
        )
        return response


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(RequestIDMiddleware)

app.include_router(health_router)
app.include_router(providers_router)
app.include_router(chat_router)


def _error_response(request: Request, status_code: int, code: str, message: str, **extra) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")
    return JSONResponse(
        status_code=status_code,
        content={"code": code, "message": message, "request_id": request_id, **extra},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    detail = exc.detail if isinstance(exc.detail, dict) else {"code": "HTTP_ERROR", "message": str(exc.detail)}
    context = _request_context(request)
    logger.warning(
        "HTTPException",
        data={"status_code": exc.status_code, "error_code": detail.get("code"), **context},
    )
    return _error_response(
        request,
        exc.status_code,
        detail.get("code", "HTTP_ERROR"),
        detail.get("message", "Request failed"),
    )


@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    context = _request_context(request)
    logger.warning("APIError", data={"status_code": exc.status_code, "error_code": exc.code, **context})
    return _error_response(request, exc.status_code, exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # loc and msg only; "input" may echo an API key
    errors = [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]
    context = _request_context(request)
    logger.warning("RequestValidationError", data={"error_detail": errors, **context})
    return _error_response(request, 400, "VALIDATION_ERROR", "Invalid request", detail=errors)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    context = _request_context(request)
    logger.error("Unhandled exception", data=context, exc_info=True)
    return _error_response(request, 500, "INTERNAL_ERROR", "An internal error occurred")
