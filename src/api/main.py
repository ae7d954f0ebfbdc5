from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from sqlalchemy import text
import logging
import time

from src.api.core.database import engine
from src.api.core.events import redis_client
from src.api.config import settings
from src.utils.errors import AgriLinkError

# Configure logging
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup
    logger.info("Starting AgriLink API...")

    # Test database connection
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            logger.info("Database connected")
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        # Don't raise - allow API to start even if DB is temporarily unavailable

    # Test Redis connection
    try:
        await redis_client.ping()
        logger.info("Redis connected")
    except Exception as e:
        logger.error(f"Redis connection failed: {e}")
        # Change notifications are skipped until Redis is reachable

    yield

    # Shutdown
    logger.info("Shutting down AgriLink API...")
    await redis_client.aclose()
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title="AgriLink API",
    description="Marketplace and irrigation telemetry API connecting farmers and factories",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# GZip compression for responses
app.add_middleware(GZipMiddleware, minimum_size=1000)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    logger.info(f"{request.method} {request.url.path} - {process_time:.3f}s")
    return response


@app.exception_handler(AgriLinkError)
async def agrilink_exception_handler(request: Request, exc: AgriLinkError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={"error": "Invalid request body", "detail": jsonable_encoder(exc.errors())}
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": str(exc) if settings.DEBUG else "Internal server error"
        }
    )


# Health check endpoint
@app.get("/health", tags=["System"])
async def health_check():
    """Health check endpoint for monitoring"""
    db_status = "connected"
    redis_status = "connected"

    # Test database
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        db_status = "disconnected"

    # Test Redis
    try:
        await redis_client.ping()
    except Exception:
        redis_status = "disconnected"

    return {
        "status": "healthy" if (db_status == "connected" and redis_status == "connected") else "degraded",
        "version": "1.0.0",
        "database": db_status,
        "notifications": redis_status
    }


# API version prefix
API_V1_PREFIX = settings.API_V1_STR

# Import routers
from src.api.routers import profiles, crops, requirements, purchase_requests, devices, iot

# Include routers
app.include_router(
    profiles.router,
    prefix=f"{API_V1_PREFIX}/profiles",
    tags=["Profiles"]
)
app.include_router(
    crops.router,
    prefix=f"{API_V1_PREFIX}/crops",
    tags=["Crops"]
)
app.include_router(
    requirements.router,
    prefix=f"{API_V1_PREFIX}/requirements",
    tags=["Requirements"]
)
app.include_router(
    purchase_requests.router,
    prefix=f"{API_V1_PREFIX}/purchase-requests",
    tags=["Purchase Requests"]
)
app.include_router(
    devices.router,
    prefix=f"{API_V1_PREFIX}/devices",
    tags=["Devices"]
)
app.include_router(
    iot.router,
    prefix=f"{API_V1_PREFIX}/iot",
    tags=["IoT"]
)


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """API root endpoint"""
    return {
        "message": "Welcome to AgriLink API",
        "docs": "/api/docs",
        "version": "1.0.0",
        "endpoints": {
            "health": "/health",
            "docs": "/api/docs",
            "profiles": f"{API_V1_PREFIX}/profiles",
            "crops": f"{API_V1_PREFIX}/crops",
            "requirements": f"{API_V1_PREFIX}/requirements",
            "purchase_requests": f"{API_V1_PREFIX}/purchase-requests",
            "devices": f"{API_V1_PREFIX}/devices",
            "sensor_data": f"{API_V1_PREFIX}/iot/sensor-data",
            "pump_control": f"{API_V1_PREFIX}/iot/pump-control"
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "src.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info"
    )
