"""Gatepass application entrypoint."""

import base64
import logging
import secrets
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from gatepass.config import settings
from gatepass.database import init_db

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

# Verification links are opened from mail clients without credentials
_AUTH_EXEMPT_PREFIXES = ("/api/verify/", "/api/verify-foreign/", "/api/verify-intern/")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application startup/shutdown lifecycle."""
    # Import models to register them with SQLModel before init_db()
    import gatepass.accounts.models  # noqa: F401
    import gatepass.registry.models  # noqa: F401
    import gatepass.tracking.models  # noqa: F401

    init_db()
    logger.info("Database initialized")

    yield


app = FastAPI(
    title="Gatepass",
    description="Visitor, intern and employee check-in tracking",
    version="0.1.0",
    lifespan=lifespan,
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


class BasicAuthMiddleware(BaseHTTPMiddleware):
    """HTTP Basic Authentication middleware.

    Protects all routes except /health and the mailed verification links.
    Requires valid username/password provided via Authorization header.
    """

    def __init__(self, app, username: str, password: str):
        super().__init__(app)
        self.username = username
        self.password = password

    async def dispatch(self, request, call_next):
        path = request.url.path
        if path == "/health" or path.startswith(_AUTH_EXEMPT_PREFIXES):
            return await call_next(request)

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Basic "):
            return self._unauthorized_response()

        try:
            encoded = auth_header[6:]  # Strip "Basic "
            decoded = base64.b64decode(encoded).decode("utf-8")
            provided_username, provided_password = decoded.split(":", 1)
        except Exception:
            return self._unauthorized_response()

        # Timing-safe comparison
        username_match = secrets.compare_digest(provided_username, self.username)
        password_match = secrets.compare_digest(provided_password, self.password)

        if not (username_match and password_match):
            return self._unauthorized_response()

        return await call_next(request)

    def _unauthorized_response(self) -> Response:
        return Response(
            content="Unauthorized",
            status_code=401,
            headers={"WWW-Authenticate": 'Basic realm="Gatepass"'},
        )


app.add_middleware(SecurityHeadersMiddleware)

# Conditionally add BasicAuth if password is configured
if settings.auth_password:
    app.add_middleware(
        BasicAuthMiddleware, username=settings.auth_username, password=settings.auth_password
    )
    logger.info("HTTP Basic Auth enabled")


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Missing or malformed body fields are client errors (400), not 422."""
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"detail": jsonable_errors(exc)})


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Storage failure"})


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, object]]:
    """Strip non-serializable context (e.g. the raised ValueError) from pydantic errors."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


# Register routers
from gatepass.api.admin import router as admin_router  # noqa: E402
from gatepass.api.routes import router as api_router  # noqa: E402

app.include_router(api_router)
app.include_router(admin_router)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


def main() -> None:
    import uvicorn

    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Starting Gatepass on %s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
