"""
Generator Service - AI-assisted VS Code extension scaffolding

Receives a description of an extension, streams a generation from the LLM,
and turns the (often imperfect) JSON it produces into project files.

Endpoints:
  POST /api/generate/stream   - Generate with SSE progress events
  POST /api/generate/parse    - Parse a complete model response
  POST /api/generate/extract  - Snapshot of a partial model response

Architecture:
  - Generation Engine: Ollama streaming + per-chunk file snapshots
  - Stream Parser: live file discovery on the accumulated buffer
  - Response Parser: direct / repaired / salvage parse at stream end
"""

import sys
import os
import logging
from contextlib import asynccontextmanager

# Add this directory to path so the service packages resolve when run directly
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.generator import router, shutdown_generation_engine


# ============================================================================
# Logging
# ============================================================================

# Configure only our namespace loggers, not the root logger
# This prevents duplicate logs when uvicorn also configures logging
def setup_logging():
    """Configure generator logging without duplicating handlers."""
    formatter = logging.Formatter("[%(asctime)s] %(name)s - %(levelname)s - %(message)s")

    generator_logger = logging.getLogger("generator")

    # Only add handler if none exist (prevents duplicates on reload)
    if not generator_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        generator_logger.addHandler(handler)
        generator_logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
        generator_logger.propagate = False

    # Silence noisy httpx logs
    logging.getLogger("httpx").setLevel(logging.WARNING)


setup_logging()
logger = logging.getLogger("generator.main")

GENERATOR_PORT = int(os.getenv("GENERATOR_PORT", "8005"))


# ============================================================================
# Lifespan (startup/shutdown)
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info(f"✓ Generator ready on port {GENERATOR_PORT}")
    yield
    logger.info("Shutting down Generator Service...")
    await shutdown_generation_engine()


# ============================================================================
# Application Setup
# ============================================================================

app = FastAPI(
    title="Generator Service",
    description="AI-assisted VS Code extension generation with tolerant output parsing",
    version="1.0.0",
    lifespan=lifespan,
)


# ============================================================================
# CORS Configuration
# ============================================================================

ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Routers
# ============================================================================

app.include_router(router, prefix="/api/generate")


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "generator"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=GENERATOR_PORT)
