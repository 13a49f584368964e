"""FastAPI application entry point for the EstateFlow API."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from estateflow.app.config import get_settings
from estateflow.domain.enums import ErrorKind
from estateflow.domain.errors import STATUS_BY_KIND, ServiceError
from estateflow.domain.schemas import HealthResponse
from estateflow.infra.database import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: initialize database on startup."""
    await init_db()
    yield


settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.debug else logging.WARNING,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

app = FastAPI(
    title="EstateFlow API",
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS middleware: all origins in debug mode
_cors_origins = settings.cors_origins_list
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=("*" not in _cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------


# Status -> error tag for framework-raised HTTP errors
KIND_BY_STATUS: dict[int, ErrorKind] = {
    401: ErrorKind.UNAUTHORIZED,
    403: ErrorKind.FORBIDDEN,
    404: ErrorKind.NOT_FOUND,
    409: ErrorKind.CONFLICT,
}


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(exc.kind, 400)
    if status_code >= 500:
        logger.warning("%s %s failed upstream: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"message": exc.message, "error": exc.kind.value},
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    kind = KIND_BY_STATUS.get(exc.status_code, ErrorKind.VALIDATION)
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail), "error": kind.value},
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed or incomplete request bodies are validation errors (400)."""
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return JSONResponse(
        status_code=400,
        content={"message": "; ".join(problems) or "Invalid request", "error": ErrorKind.VALIDATION.value},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


def install_error_handlers(application: FastAPI) -> None:
    application.add_exception_handler(ServiceError, service_error_handler)
    application.add_exception_handler(StarletteHTTPException, http_error_handler)
    application.add_exception_handler(RequestValidationError, request_validation_handler)
    application.add_exception_handler(Exception, unhandled_error_handler)


install_error_handlers(app)

# ---------------------------------------------------------------------------
# Route includes
# ---------------------------------------------------------------------------
from estateflow.app.routes.ai import router as ai_router
from estateflow.app.routes.auth import router as auth_router
from estateflow.app.routes.filters import router as filters_router
from estateflow.app.routes.paypal import router as paypal_router
from estateflow.app.routes.properties import router as properties_router
from estateflow.app.routes.stats import router as stats_router
from estateflow.app.routes.subscription import router as subscription_router
from estateflow.app.routes.user import router as user_router
from estateflow.app.routes.views import router as views_router
from estateflow.app.routes.wishlist import router as wishlist_router

app.include_router(auth_router)
app.include_router(ai_router)
app.include_router(properties_router)
app.include_router(filters_router)
app.include_router(stats_router)
app.include_router(wishlist_router)
app.include_router(views_router)
app.include_router(user_router)
app.include_router(subscription_router)
app.include_router(paypal_router)


@app.get("/health", tags=["health"], response_model=HealthResponse)
async def health_check():
    """Return service health status."""
    return HealthResponse(status="ok", service="estateflow")


def run() -> None:
    """Run the application with uvicorn (used by project.scripts entry point)."""
    uvicorn.run(
        "estateflow.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
