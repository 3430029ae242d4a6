"""
FastAPI Main Application

Backend for turning YouTube videos into written content, podcasts and
webhook deliveries.
"""

import os
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

# Load environment variables from .env.local
load_dotenv('.env.local')

# Setup logging with rotation
logs_dir = Path(__file__).parent.parent / 'logs'
logs_dir.mkdir(parents=True, exist_ok=True)
log_file = logs_dir / 'backend.log'

file_handler = RotatingFileHandler(
    log_file,
    maxBytes=10_000_000,  # 10MB per file
    backupCount=5,
    encoding='utf-8'
)
console_handler = logging.StreamHandler()

log_format = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
file_handler.setFormatter(log_format)
console_handler.setFormatter(log_format)

log_level = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    handlers=[file_handler, console_handler]
)

logger = logging.getLogger(__name__)
logger.info(f"Logging to file: {log_file}")

# Import routes
from app.routes import generate, podcast, scripts, transcripts, webhooks, youtube
from core.config import Config
from core.errors import ServiceError

SERVICE_NAME = "Content Repurposer API"
VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for startup and shutdown"""
    logger.info(f"🚀 Starting {SERVICE_NAME}")
    logger.info(f"   Environment: {os.getenv('ENVIRONMENT', 'development')}")

    env_status = Config.validate_environment()
    if env_status['all_required_present']:
        logger.info("✅ All required environment variables present")
    else:
        logger.error(f"❌ Missing required environment variables: {', '.join(env_status['missing_required'])}")

    missing_optional = [name for name, present in env_status['optional'].items() if not present]
    if missing_optional:
        logger.warning(f"⚠️ Optional features disabled, not configured: {', '.join(missing_optional)}")

    yield

    logger.info(f"👋 Shutting down {SERVICE_NAME}")


app = FastAPI(
    title=SERVICE_NAME,
    description="Transcripts, content generation, podcasts and webhooks",
    version=VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Transcript-Id", "X-Audio-Duration", "Retry-After",
                    "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
)

# Podcast routes go first so /generate/podcast is not captured by /generate/{content_id}
app.include_router(transcripts.router, prefix="/api", tags=["transcripts"])
app.include_router(podcast.router, prefix="/api", tags=["podcasts"])
app.include_router(generate.router, prefix="/api", tags=["generate"])
app.include_router(scripts.router, prefix="/api", tags=["scripts"])
app.include_router(webhooks.router, prefix="/api", tags=["webhooks"])
app.include_router(youtube.router, prefix="/api", tags=["youtube"])


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": SERVICE_NAME,
        "version": VERSION,
        "status": "online"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    env_status = Config.validate_environment()
    return {
        "status": "healthy" if env_status['all_required_present'] else "degraded",
        "required_env": env_status['required'],
        "optional_env": env_status['optional'],
        "environment": os.getenv('ENVIRONMENT', 'development')
    }


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    """Service errors that escaped a route carry their own status"""
    logger.warning(f"⚠️ {exc.__class__.__name__} on {request.url.path}: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "message": str(exc),
            "path": str(request.url)
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
