"""
AI Business Assistant - FastAPI Application

Main entry point for the backend API: billing, Stripe and WhatsApp
webhooks, voice calls, AI chat, receipts, usage limits, notifications
and account deletion.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config.settings import settings
from app.infrastructure.exceptions import AssistantError

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info(f"AI Business Assistant starting in {settings.environment} mode...")

    database_configured = bool(settings.database_url or settings.supabase_password)
    if database_configured:
        try:
            from app.infrastructure.db.database import init_db
            await init_db()
            logger.info("Database connection pool initialized")
        except Exception as e:
            logger.warning(f"Database initialization skipped: {e}")

    yield

    if database_configured:
        try:
            from app.infrastructure.db.database import close_db
            await close_db()
            logger.info("Database connection pool closed")
        except Exception as e:
            logger.warning(f"Database shutdown error: {e}")

    logger.info("AI Business Assistant shutting down...")


app = FastAPI(
    title="AI Business Assistant",
    description="Billing, messaging, AI and voice backend for small-business owners",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)

# Browser clients call every endpoint directly, including preflights.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(AssistantError)
async def assistant_error_handler(request: Request, exc: AssistantError):
    """Each error family carries its own status code."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "ai-business-assistant"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "AI Business Assistant API",
        "version": "1.0.0",
        "docs": "/docs",
    }


# ============================================================================
# Import and register routers
# ============================================================================

from app.api.routes import (  # noqa: E402
    account,
    ai,
    billing,
    expenses,
    integrations,
    knowledge_base,
    newsletter,
    notifications,
    receipts,
    usage,
    voice,
    webhooks,
    whatsapp,
)

app.include_router(billing.router, prefix="/api", tags=["Billing"])
app.include_router(webhooks.router, prefix="/api", tags=["Webhooks"])
app.include_router(voice.router, prefix="/api", tags=["Voice"])
app.include_router(ai.router, prefix="/api", tags=["AI"])
app.include_router(receipts.router, prefix="/api", tags=["Receipts"])
app.include_router(usage.router, prefix="/api", tags=["Usage"])
app.include_router(notifications.router, prefix="/api", tags=["Notifications"])
app.include_router(whatsapp.router, prefix="/api", tags=["WhatsApp"])
app.include_router(account.router, prefix="/api", tags=["Account"])
app.include_router(expenses.router, prefix="/api", tags=["Expenses"])
app.include_router(knowledge_base.router, prefix="/api", tags=["Knowledge Base"])
app.include_router(newsletter.router, prefix="/api", tags=["Newsletter"])
app.include_router(integrations.router, prefix="/api", tags=["Integrations"])
