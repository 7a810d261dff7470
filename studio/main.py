import logging
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from studio.config import get_settings
from studio.database import engine, Base
from studio.routers import generation, mockups
from studio.services.mockup import check_mockup_config
from studio.services.storage import storage

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    # Every garment side offered in the storefront needs a mockup mapping
    check_mockup_config()

    # Create database tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Provision storage buckets
    await storage.ensure_storage_exists()
    logger.info("%s started", settings.app_name)

    yield

    # Shutdown
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="""
    ## AI Apparel Design API

    Generates print-ready artwork for custom apparel and places it on garment mockups.

    ### Flows:

    1. **Design**: describe the artwork, pick a style and color mood.
    2. **Pattern to design**: upload a reference image; its palette, texture and style
       drive a new original design.
    3. **Convert**: turn photos of an existing garment into a front/back studio mockup.

    Every generated image is re-hosted in owned storage when possible and recorded in
    the generation history of signed-in users. Results that succeeded with a caveat
    (for example the image could not be re-hosted) carry `warnings`.
    """,
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount static files for serving stored objects
storage_path = Path(settings.storage_path)
storage_path.mkdir(parents=True, exist_ok=True)
app.mount("/files", StaticFiles(directory=str(storage_path)), name="files")


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "detail": str(exc) if settings.debug else "Internal server error",
            "type": type(exc).__name__,
        },
    )


# Include routers
app.include_router(generation.router, prefix="/api/v1")
app.include_router(mockups.router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.app_name}


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "service": settings.app_name,
        "version": "1.0.0",
        "docs": "/docs",
        "endpoints": {
            "generate_design": "POST /api/v1/generate/design",
            "pattern_to_design": "POST /api/v1/generate/pattern",
            "convert_garment": "POST /api/v1/generate/convert",
            "generation_history": "GET /api/v1/generate/history/{user_id}",
            "mockup_layer": "GET /api/v1/mockups/{garment_type}/{position}",
            "mockup_preview": "GET /api/v1/mockups/{garment_type}/{position}/preview.png",
        }
    }
