"""
Zomieks - FastAPI Application

Main entry point for the marketplace backend.
Provides account, marketplace, payment and admin endpoints.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config.settings import settings
from app.infrastructure.exceptions import (
    AuthorizationError,
    DuplicateError,
    NotFoundError,
    ValidationError,
    ZomieksError,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info(f"Zomieks backend starting in {settings.environment} mode...")

    if settings.database_url:
        try:
            from app.infrastructure.db.database import init_db
            await init_db()
            logger.info("Database connection pool initialized")
        except Exception as e:
            logger.warning(f"Database initialization skipped: {e}")

    yield

    from app.infrastructure.auth.session_store import close_session_store
    try:
        await close_session_store()
    except Exception as e:
        logger.warning(f"Session store shutdown error: {e}")

    if settings.database_url:
        try:
            from app.infrastructure.db.database import close_db
            await close_db()
            logger.info("Database connection pool closed")
        except Exception as e:
            logger.warning(f"Database shutdown error: {e}")

    logger.info("Zomieks backend shutting down...")


app = FastAPI(
    title="Zomieks",
    description="South African freelance marketplace with escrow payments",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS configuration from Settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content=exc.to_dict())


@app.exception_handler(AuthorizationError)
async def authorization_error_handler(request: Request, exc: AuthorizationError):
    return JSONResponse(status_code=403, content=exc.to_dict())


@app.exception_handler(NotFoundError)
async def not_found_error_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content=exc.to_dict())


@app.exception_handler(DuplicateError)
async def duplicate_error_handler(request: Request, exc: DuplicateError):
    return JSONResponse(status_code=409, content=exc.to_dict())


@app.exception_handler(ZomieksError)
async def general_error_handler(request: Request, exc: ZomieksError):
    """Handle all other application errors."""
    logger.error(f"Unhandled application error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content=exc.to_dict())


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "zomieks"}


@app.get("/")
async def root():
    return {
        "message": "Zomieks API",
        "version": "1.0.0",
        "docs": "/docs",
    }


# ============================================================================
# Register routers
# ============================================================================

from app.api.routes import (  # noqa: E402
    admin,
    auth,
    messages,
    notifications,
    orders,
    outsourcing,
    payments,
    profiles,
    projects,
    reviews,
    services,
    shortlist,
    subscriptions,
)

app.include_router(auth.router, prefix="/api", tags=["Auth"])
app.include_router(profiles.router, prefix="/api", tags=["Profiles"])
app.include_router(payments.router, prefix="/api", tags=["Payments"])
app.include_router(payments.webhook_router, prefix="/api", tags=["Payments"])
app.include_router(notifications.router, prefix="/api", tags=["Notifications"])
app.include_router(projects.router, prefix="/api", tags=["Projects & Bids"])
app.include_router(services.router, prefix="/api", tags=["Services"])
app.include_router(orders.router, prefix="/api", tags=["Orders"])
app.include_router(reviews.router, prefix="/api", tags=["Reviews"])
app.include_router(messages.router, prefix="/api", tags=["Messages"])
app.include_router(shortlist.router, prefix="/api", tags=["Shortlist"])
app.include_router(outsourcing.router, prefix="/api", tags=["Outsourcing"])
app.include_router(subscriptions.router, prefix="/api", tags=["Subscriptions"])
app.include_router(admin.router, prefix="/api")
