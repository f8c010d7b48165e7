from fastapi import FastAPI, Request
from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

from sensor_relay.core.logging_config import setup_logging  # noqa: E402
from sensor_relay.core.settings import settings  # noqa: E402
from sensor_relay.middleware.logging import LoggingMiddleware  # noqa: E402
from sensor_relay.config import init_firebase  # noqa: E402
from sensor_relay.db import init_db  # noqa: E402
from sensor_relay.routes import health, notifications, devices, functions, user  # noqa: E402
from sensor_relay.exceptions import (  # noqa: E402
    UnauthorizedException, ForbiddenException,
    NotFoundException, ValidationException
)

# Set up logging first
logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup logic
    logger.info("=" * 50)
    logger.info("🚀 Sensor Relay API starting up")
    logger.info(f"📁 Environment: {settings.environment}")
    logger.info(f"🗄️ Store backend: {settings.store_backend}")
    logger.info(f"🔐 Event auth: {'required' if settings.require_event_auth else 'open'}")

    firebase_ready = settings.is_test or init_firebase()
    logger.info(f"🔥 Firebase: {'✅ configured' if firebase_ready else '❌ not configured (pushes fail)'}")
    if settings.store_backend == "sql":
        init_db()
    logger.info("=" * 50)

    yield
    # Shutdown logic
    logger.info("🛑 Sensor Relay API shutting down gracefully")


app = FastAPI(
    title="Sensor Relay API",
    description="Relays events detected by spare phones to every registered device",
    version="1.0.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

# Add middleware in correct order (last added = first executed)
app.add_middleware(LoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_origins != ["*"],
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, prefix="/health", tags=["Health"])
app.include_router(notifications.router, tags=["Notifications"])
app.include_router(user.router, prefix="/users", tags=["Users"])
app.include_router(devices.router, prefix="/users/me/devices", tags=["Devices"])
app.include_router(functions.router, prefix="/users/me/functions", tags=["Functions"])


def _error_response(request: Request, status_code: int, detail: str) -> JSONResponse:
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    return JSONResponse(
        status_code=status_code,
        content={"detail": detail, "correlation_id": correlation_id},
    )


# Exception handlers
@app.exception_handler(UnauthorizedException)
async def unauthorized_exception_handler(request: Request, exc: UnauthorizedException):
    logger.warning(f"Unauthorized access attempt on {request.url.path}")
    return _error_response(request, 401, exc.detail)


@app.exception_handler(ForbiddenException)
async def forbidden_exception_handler(request: Request, exc: ForbiddenException):
    logger.warning(f"Forbidden access attempt on {request.url.path}")
    return _error_response(request, 403, exc.detail)


@app.exception_handler(ValidationException)
async def validation_exception_handler(request: Request, exc: ValidationException):
    logger.warning(f"Validation error on {request.url.path}: {exc.detail}")
    return _error_response(request, 400, exc.detail)


@app.exception_handler(NotFoundException)
async def not_found_exception_handler(request: Request, exc: NotFoundException):
    logger.warning(f"Not found error on {request.url.path}: {exc.detail}")
    return _error_response(request, 404, exc.detail)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    logger.error(f"[{correlation_id}] Unhandled exception on {request.url.path}: {str(exc)}", exc_info=True)
    content = {"detail": "Internal server error", "correlation_id": correlation_id}
    if settings.is_development:
        content["error"] = str(exc)
        content["type"] = type(exc).__name__
    return JSONResponse(status_code=500, content=content)


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "message": "Sensor Relay API",
        "version": "1.0.0",
        "environment": settings.environment,
        "health_check": "/health",
        "status": "running"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level="info" if settings.is_development else "warning"
    )
