import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load environment variables from .env file before settings are resolved
load_dotenv()

from . import __version__  # noqa: E402
from .config import get_settings  # noqa: E402
from .routers.gencraft import router as gencraft_router  # noqa: E402
from .services.http_client import close_client  # noqa: E402

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):

    # Startup
    logger.info("Starting GenCraft generation service")
    logger.info("   Gemini Key:  %s", "Configured" if settings.has_api_key else "Not set (every stage will fall back)")
    logger.info("   Text model:  %s", settings.gemini_model)
    logger.info("   Image model: %s", settings.gemini_image_model)
    logger.info("   Pipeline:    %s (review=%s)", settings.pipeline_variant, settings.include_review)

    yield

    await close_client()
    logger.info("Shutting down GenCraft generation service")


app = FastAPI(
    title="GenCraft — AI Project & Code Generator",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(gencraft_router)


@app.get(
    "/",
    summary="API Root",
    description="Welcome endpoint with API information",
    tags=["General"]
)
async def root():
    """Root endpoint with API information."""
    return {
        "name": "GenCraft",
        "version": __version__,
        "description": "Turns a project idea into a plan, flowchart, React code, UI mockup and insights",
        "docs": "/docs",
        "endpoints": {
            "craft": "POST /gencraft/craft - Run the full generation pipeline",
            "status": "GET /gencraft/status - Current run status",
            "stage": "POST /gencraft/stages/{stage} - Run a single stage",
            "health": "GET /gencraft/health - Service health check"
        }
    }


@app.get(
    "/health",
    summary="Global Health Check",
    description="Check if the API server is running",
    tags=["General"]
)
async def health():
    """Global health check endpoint."""
    return {
        "status": "healthy",
        "service": "gencraft",
        "version": __version__
    }


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred"
        }
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "gencraft.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
