import time
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from scholar.core.config import settings
from scholar.core.exceptions import ScholarError
from scholar.core.logging_config import setup_logging, get_logger, RequestLogger
from scholar.core.middleware import SecurityHeadersMiddleware
from scholar.core.rate_limit import limiter
from scholar.db.database import STATE_CONNECTED, mongo
from scholar.api.routes import ai, auth, study, system

# Initialize logging first (auto-determines level based on environment)
setup_logging(
    app_name="scholar",
    log_level=settings.log_level,  # Empty = auto (DEBUG in dev, WARNING in prod)
    environment=settings.environment,
    enable_console=True,
    enable_file=settings.log_to_file,
    secrets=settings.secret_values(),
)

logger = get_logger(__name__)
request_logger = RequestLogger(get_logger("scholar.requests"))

logger.info("Starting Scholar AI backend...")

app = FastAPI(
    title=settings.app_name,
    description="Study notes, flashcards, quizzes and chat with OTP-verified accounts",
    version="0.1.0",
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(ScholarError)
async def scholar_error_handler(request: Request, exc: ScholarError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report missing/invalid fields as 400 with a readable message."""
    fields = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query")]
        field = ".".join(loc) or "body"
        if field not in fields:
            fields.append(field)
    return JSONResponse(
        status_code=400,
        content={"message": f"Missing or invalid fields: {', '.join(fields)}"},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=exc.headers)


# Global exception handler: logs full tracebacks for 500 errors
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions, log full traceback, return 500."""
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}: {exc}\n"
        f"{traceback.format_exc()}"
    )
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests with timing."""
    start_time = time.time()
    client_ip = request.client.host if request.client else "unknown"

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    request_logger.log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=duration_ms,
        client_ip=client_ip,
        storage="mongo" if mongo.state == STATE_CONNECTED else "memory",
    )
    return response


# CORS middleware, restricted to the frontend in production
if settings.allowed_origins:
    cors_origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
elif settings.environment == "production":
    cors_origins = [settings.frontend_url]
else:
    cors_origins = [
        "http://localhost:3000",
        "http://localhost:5173",
        settings.frontend_url,
    ]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

# Security headers middleware
app.add_middleware(SecurityHeadersMiddleware)

app.include_router(auth.router, prefix="/api")
app.include_router(system.router, prefix="/api")
app.include_router(ai.router, prefix="/api")
app.include_router(study.router, prefix="/api")

if settings.environment == "test":
    app.include_router(system.test_router)
    logger.info("Test-only routes enabled at /__test")

logger.info("API routes registered at /api")


@app.on_event("startup")
async def startup_event():
    await mongo.connect()
    logger.info("Scholar AI backend started successfully")


@app.on_event("shutdown")
async def shutdown_event():
    mongo.close()
    logger.info("Scholar AI backend shutting down")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=settings.port)
