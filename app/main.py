import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Import all models to ensure they're registered with SQLAlchemy Base
# This is needed for relationships between models in different files
from . import (
    models,  # noqa: F401
    models_housing,  # noqa: F401
    models_onsite,  # noqa: F401
)
from .config import ALLOWED_ORIGINS, SECURITY_HEADERS_ENABLED
from .database import Base, engine
from .domain.checkin import router as checkin_router
from .domain.coupons import public_router as public_coupons_router
from .domain.coupons import router as coupons_router
from .domain.digest import router as cron_router
from .domain.emails import router as emails_router
from .domain.events import public_router as public_events_router
from .domain.events import router as events_router
from .domain.housing import portal_router as portal_housing_router
from .domain.housing import router as housing_router
from .domain.liability import public_router as public_liability_router
from .domain.liability import router as liability_router
from .domain.medical import router as medical_router
from .domain.organizations import router as organizations_router
from .domain.payments import router as payments_router
from .domain.payments import webhooks_router as dodopayments_webhooks_router
from .domain.registrations import portal_router as portal_registrations_router
from .domain.registrations import public_router as public_registrations_router
from .domain.registrations import router as registrations_router
from .domain.reports import event_router as event_reports_router
from .domain.reports import router as reports_router
from .domain.support import router as support_router
from .domain.waitlist import public_router as public_waitlist_router
from .domain.waitlist import router as waitlist_router
from .security_headers import SecurityHeadersMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="ChiRho Events API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Convert 422 validation errors from HTTPBearer to 401 authentication errors
    when the issue is with the Authorization header
    """
    for error in exc.errors():
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(
                f"Authentication failed for {request.url.path}: Missing or invalid Authorization header"
            )
            return JSONResponse(
                status_code=401,
                content={
                    "detail": "Not authenticated. Please provide a valid Bearer token in the Authorization header."
                },
            )

    # For other validation errors, return 422 as normal
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": jsonable_errors(exc)})


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors without the raw exception objects pydantic attaches to ctx"""
    return [{key: value for key, value in error.items() if key != "ctx"} for error in exc.errors()]


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise
    duration_ms = (time.time() - start) * 1000
    logger.info(f"{request.method} {request.url.path} - {response.status_code} ({duration_ms:.0f}ms)")
    return response


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(
        SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"]
    )
    logger.info("Security headers enabled")
else:
    logger.warning("Security headers DISABLED - only use in development!")


logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(organizations_router)
app.include_router(events_router)
app.include_router(public_events_router)
app.include_router(registrations_router)
app.include_router(public_registrations_router)
app.include_router(portal_registrations_router)
app.include_router(payments_router)
app.include_router(dodopayments_webhooks_router)
app.include_router(coupons_router)
app.include_router(public_coupons_router)
app.include_router(waitlist_router)
app.include_router(public_waitlist_router)
app.include_router(liability_router)
app.include_router(public_liability_router)
app.include_router(housing_router)
app.include_router(portal_housing_router)
app.include_router(checkin_router)
app.include_router(medical_router)
app.include_router(reports_router)
app.include_router(event_reports_router)
app.include_router(emails_router)
app.include_router(support_router)
app.include_router(cron_router)


@app.get("/")
def root():
    return {"message": "ChiRho Events API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/health/redis")
async def redis_health_check():
    """Check Redis connectivity for monitoring"""
    try:
        from .rate_limiter import get_redis_client

        redis_client = get_redis_client()

        start_time = time.time()
        redis_client.ping()
        response_time = (time.time() - start_time) * 1000

        info = redis_client.info()
        return {
            "status": "healthy",
            "redis": {
                "connected": True,
                "response_time_ms": round(response_time, 2),
                "version": info.get("redis_version", "unknown"),
            },
        }
    except Exception as e:
        return {"status": "unhealthy", "redis": {"connected": False, "error": str(e)}}
