# backend/autora/main.py
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException
import time
import logging

# Import all routers
from .api.v1 import admin, admin_cars, cars, home, test_drives, users
from .api.v1 import settings as settings_router

from .agents.vision_agent.extractor import ImageExtractionError
from .core.auth import AuthProviderError
from .core.celery_app import celery_app
from .core.config import settings
from .core.storage import StorageError

# Import database setup
from .core.database import engine, Base, SessionLocal
from .models import user_model, car_model, booking_model, dealership_model

# Create database tables
Base.metadata.create_all(bind=engine)

# Setup Logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create FastAPI App
app = FastAPI(
    title=settings.APP_NAME,
    description="Car listings, test drive bookings and the dealership back office",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API Routers
logger.info("Registering API routers...")

app.include_router(users.router, prefix="/api/v1/users", tags=["Users"])
app.include_router(home.router, prefix="/api/v1/home", tags=["Home"])
app.include_router(cars.router, prefix="/api/v1/cars", tags=["Cars"])
app.include_router(test_drives.router, prefix="/api/v1/test-drives", tags=["Test Drives"])
app.include_router(admin_cars.router, prefix="/api/v1/admin/cars", tags=["Admin: Cars"])
app.include_router(admin.router, prefix="/api/v1/admin", tags=["Admin: Test Drives & Dashboard"])
app.include_router(settings_router.router, prefix="/api/v1/settings", tags=["Settings"])

logger.info("All routers registered")


# Root Endpoint
@app.get("/", tags=["System"])
def read_root():
    """Welcome endpoint with API information"""
    return {
        "message": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "operational",
        "documentation": "/docs",
        "health_check": "/health",
    }


# Health Check Endpoint
@app.get("/health", tags=["System"])
def health_check():
    """Health check for the database, Redis and the Celery workers"""
    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
        db_status = "connected"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_status = f"error: {str(e)}"

    try:
        with celery_app.connection_for_read() as conn:
            conn.ensure_connection(max_retries=1)
        redis_status = "connected"
    except Exception as e:
        logger.error(f"Redis health check failed: {e}")
        redis_status = f"error: {str(e)}"

    try:
        workers = celery_app.control.inspect(timeout=1).ping() if redis_status == "connected" else None
        celery_status = "active" if workers else "no workers"
    except Exception as e:
        logger.error(f"Celery health check failed: {e}")
        celery_status = f"error: {str(e)}"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "service": settings.APP_NAME,
        "timestamp": time.time(),
        "components": {
            "database": db_status,
            "redis": redis_status,
            "celery": celery_status,
            "storage": "configured" if settings.SUPABASE_URL and settings.SUPABASE_KEY else "not configured",
            "vision_ai": "configured" if settings.GEMINI_API_KEY else "not configured",
            "auth_provider": "configured" if settings.CLERK_SECRET_KEY else "not configured",
        },
    }


# Request Logging Middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests"""
    start_time = time.time()

    response = await call_next(request)

    process_time = time.time() - start_time
    logger.info(
        f"{request.method} {request.url.path} "
        f"- Status: {response.status_code} "
        f"- Time: {process_time:.3f}s"
    )

    return response


# Error Handlers
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render every HTTP error as a failed action result"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", []) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return JSONResponse(
        status_code=422,
        content={"success": False, "error": "; ".join(messages)},
    )


@app.exception_handler(StorageError)
@app.exception_handler(ImageExtractionError)
@app.exception_handler(AuthProviderError)
async def upstream_error_handler(request: Request, exc: Exception):
    logger.error(f"Upstream service failure on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=502,
        content={"success": False, "error": str(exc)},
    )


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    """Custom 500 handler"""
    logger.error(f"Internal server error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "An unexpected error occurred. Please contact support.",
        },
    )
