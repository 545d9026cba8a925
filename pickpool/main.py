"""FastAPI application entrypoint. No business logic; only wiring, middleware and error mapping."""

from dotenv import load_dotenv

load_dotenv()

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pickpool.api.v1 import router as v1_router
from pickpool.core.config import get_settings
from pickpool.core.database import session_scope
from pickpool.core.errors import AuthServiceError
from pickpool.core.tokens import TokenIssuer
from pickpool.schemas.auth import ErrorResponse
from pickpool.services.admin_bootstrap import setup_admin

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Build the token issuer and provision the first admin; failure aborts startup."""
    application.state.token_issuer = TokenIssuer(settings)
    if settings.BOOTSTRAP_ADMIN_ON_STARTUP:
        with session_scope() as db:
            setup_admin(db, settings, interactive=sys.stdin.isatty())
    yield


app = FastAPI(
    title="Pickpool Auth API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.APP_ENV == "dev" else [settings.CLIENT_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_body(message: str, code: str) -> dict[str, str]:
    return ErrorResponse(error=message, error_code=code).model_dump(by_alias=True)


@app.exception_handler(AuthServiceError)
async def auth_service_error_handler(request: Request, exc: AuthServiceError) -> JSONResponse:
    """Expected failures: human message plus stable machine code."""
    logger.info(
        "Request failed: %s %s code=%s", request.method, request.url.path, exc.code
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, exc.code),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ())[1:]) or "body"
        message = f"{field}: {first.get('msg', 'invalid value')}"
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content=_error_body(message, "VALIDATION_ERROR"))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log everything server-side; the client only gets a generic message."""
    logger.exception("Unexpected error: %s %s", request.method, request.url.path)
    content = _error_body("Internal server error", "INTERNAL_ERROR")
    if not settings.is_production:
        content["details"] = type(exc).__name__
    return JSONResponse(status_code=500, content=content)


app.include_router(v1_router, prefix=settings.API_V1_PREFIX)


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": "Pickpool Auth API", "status": "running"}
