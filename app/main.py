# app/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.db import create_tables
from app.signd.exceptions import SigndBaseException, convert_to_json_response
from app.utils.logger import setup_app_logging, get_logger
# Local application imports - Routes
from app.signd.router import router as signd_routes


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Make sure the process and file cache tables exist
    """
    create_tables()
    yield


# Create the FastAPI app
signd_app = FastAPI(
    title=f"signd.it integration - {settings.environment}",
    description="signd.it e-signature integration API",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Configure logging
setup_app_logging(
    signd_app,
    log_level=settings.log_level,
    use_json=settings.is_production,
    log_file=settings.log_file,
    app_name="signd.it integration",
    environment=settings.environment,
)
logger = get_logger(__name__)

# Add CORS middleware
signd_app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_cors_urls.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@signd_app.exception_handler(SigndBaseException)
async def signd_exception_handler(request: Request, exc: SigndBaseException):
    """
    Errors raised outside a route body, e.g. from dependencies
    """
    logger.warning("signd error", path=request.url.path, error=exc.message)
    return convert_to_json_response(exc)


# Include routers
signd_app.include_router(signd_routes)


# Root API to check if the server is up
@signd_app.get("/", tags=["Base"])
async def health_check():
    """
    Root API to check if the server is up
    """
    logger.info("Calling root API for testing")
    return {"status": "ok"}
