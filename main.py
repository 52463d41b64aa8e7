"""Warden - Account Credential & Session Service."""

import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from warden.config import get_settings
from warden.database import utcnow
from warden.errors import WardenError
from warden.rate_limit import RateLimiter
from warden.routers import auth_router, users_router
from warden.services.credentials import CredentialManager
from warden.services.notifications import build_notifier
from warden.services.tokens import TokenService

settings = get_settings()

# Logging
logger = logging.getLogger("warden")
logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

for warning in settings.validate():
    logger.warning(warning)

app = FastAPI(title="Warden", version="0.1.0")

# Process-wide services, built once and injected through app.state
app.state.rate_limiter = RateLimiter.from_settings(settings)
app.state.credential_manager = CredentialManager(rounds=settings.BCRYPT_ROUNDS)
app.state.token_service = TokenService.from_settings(settings)
app.state.notifier = build_notifier(settings)


# --- Security headers middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Strict-Transport-Security"] = "max-age=15552000; includeSubDomains"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        return response


# --- Request size limit middleware ---
class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    MAX_BODY_SIZE = 10 * 1024 * 1024  # 10MB

    async def dispatch(self, request: Request, call_next) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.MAX_BODY_SIZE:
            return JSONResponse(status_code=413, content={"success": False, "message": "Request body too large"})
        return await call_next(request)


# --- Audit logging middleware ---
class AuditLogMiddleware(BaseHTTPMiddleware):
    AUDIT_PREFIXES = ("/api/v1/auth/", "/api/v1/users/")

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        # Log state-changing operations
        path = request.url.path
        method = request.method
        if method in ("POST", "PUT", "DELETE") and path.startswith(self.AUDIT_PREFIXES):
            logger.info(
                "AUDIT %s %s -> %d (%.0fms) from %s",
                method,
                path,
                response.status_code,
                duration_ms,
                request.client.host if request.client else "unknown",
            )

        return response


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestSizeLimitMiddleware)
app.add_middleware(AuditLogMiddleware)
if settings.CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["Authorization", "Content-Type"],
    )

# API routers
app.include_router(auth_router)
app.include_router(users_router)


def error_envelope(message: str, errors: list | None = None, **extra) -> dict:
    content: dict = {"success": False, "message": message}
    if errors:
        content["errors"] = errors
    content.update(extra)
    return content


# --- Exception handlers ---
@app.exception_handler(WardenError)
async def warden_error_handler(request: Request, exc: WardenError) -> JSONResponse:
    """Render a core failure as the error envelope with its fixed status."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc.__cause__ or exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.message, exc.errors),
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed input never reaches the core."""
    errors = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"] if part not in ("body", "path", "query"))
        cause = err.get("ctx", {}).get("error")
        errors.append({"field": field, "message": str(cause) if cause else err["msg"]})
    return JSONResponse(status_code=400, content=error_envelope("Validation errors", errors))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Framework-level errors (unknown route, wrong method) in the same envelope."""
    message = "Route not found" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content=error_envelope(message), headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unexpected: log in full, answer generically."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    extra = {"error": repr(exc)} if settings.is_development else {}
    return JSONResponse(status_code=500, content=error_envelope("Internal server error", **extra))


# --- Health check ---
@app.get("/api/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "app": "warden", "version": "0.1.0", "timestamp": utcnow().isoformat() + "Z"}
