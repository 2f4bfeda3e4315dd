"""Lesson Forge — FastAPI Application Entry Point."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.config import settings
from app.database import engine, Base
from app.lesson_engine.errors import ConfigurationError
from app.lesson_engine.generator import get_generation_service
from app.lesson_engine.tasks import tracker
from app.middleware.rate_limit import limiter
from app.routers import generate, lessons
from app.services.ai_client import ai_provider_name, ai_health_check

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("app")

# Create all tables on startup
Base.metadata.create_all(bind=engine)

# ── CORS origins from env (supports dev localhost + production domain) ──────
_cors_origins = [o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()]

app = FastAPI(
    title="Lesson Forge",
    description="Turns lesson outlines into interactive, AI-generated lesson components.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(lessons.router)
app.include_router(generate.router)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error("Configuration error: %s", exc)
    return JSONResponse(status_code=503, content={"detail": "Lesson generation is not configured"})


@app.on_event("startup")
async def on_startup():
    """Build the generation service; missing credentials stop the app."""
    try:
        get_generation_service()
    except ConfigurationError:
        logger.critical(
            "Lesson generation is not configured. Set OPENAI_API_KEY (or ANTHROPIC_API_KEY), "
            "and SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY unless LESSON_STORAGE_BACKEND=local."
        )
        raise
    logger.info("AI provider: %s, storage backend: %s", ai_provider_name(), settings.LESSON_STORAGE_BACKEND)


@app.on_event("shutdown")
async def on_shutdown():
    await tracker.wait_all()


@app.get("/")
def root():
    return {
        "name": "Lesson Forge API",
        "version": "1.0.0",
        "docs": "/docs",
        "ai_provider": ai_provider_name(),
    }


@app.get("/health")
def health():
    return {"status": "ok", "ai_provider": ai_provider_name()}


@app.get("/api/health/ai")
async def health_ai():
    """Live connectivity test for the configured AI provider.

    Returns:
        provider: which AI is active
        status:   "ok" | "error" | "unconfigured"
        test_reply / error: result of a tiny test call
    """
    return await ai_health_check()
