from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded
import uuid

from .config import settings
from .database import create_tables
from .utils.logging_config import setup_logging, get_logger, set_request_context, clear_request_context
from .utils.rate_limiter import limiter

from .routers import webhooks, sync

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    setup_logging(level=settings.log_level, json_format=settings.log_json)

    logger.info("Starting salon-sync-backend")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"CORS Origins: {settings.cors_origins}")
    if not settings.signature_required:
        logger.warning("WIX_WEBHOOK_SECRET not set, webhook signatures are not verified")

    create_tables()
    logger.info("Database ready")

    yield

    logger.info("Shutting down salon-sync-backend")


# Create FastAPI app
app = FastAPI(
    title="Salon Sync Backend API",
    description="Wix webhook ingestion and reconciliation",
    version="1.0.0",
    lifespan=lifespan
)

# Rate limiter state
app.state.limiter = limiter


# ================================
# CORS MIDDLEWARE - MUST BE FIRST!
# ================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


# Request ID Middleware
class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])
        request.state.request_id = request_id
        set_request_context(request_id)
        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers["X-Request-ID"] = request_id
        return response


app.add_middleware(RequestIdMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


# Rate limit handler
@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"error": "Too many requests"}
    )


app.include_router(webhooks.router)
app.include_router(sync.router)


@app.get("")
@app.get("/")
async def root():
    return {
        "message": "Salon Sync Backend API",
        "version": "1.0.0",
        "docs": "/docs",
        "status": "running",
    }


@app.get("/health")
@app.get("/health/")
async def health_check():
    return {"status": "healthy"}
