import logging
from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from app import models  # noqa: F401  (registers tables on Base.metadata)
from app.core.config import settings
from app.core.database import create_tables, check_database
from app.core.exceptions import register_exception_handlers
from app.api.v1.router import api_router
from app.services.lending_service import build_lending_service

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting up Library Lending API...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    # Create database tables
    await create_tables()
    logger.info("Database tables created successfully")

    app.state.lending_service = build_lending_service()

    logger.info("Library Lending API startup complete")

    yield

    # Shutdown
    logger.info("Shutting down Library Lending API...")


# Create FastAPI application
app = FastAPI(
    title="Library Lending API",
    description="Book checkout, return and lending history API",
    version="1.0.0",
    lifespan=lifespan,
    redirect_slashes=False,
    # Optionally hide docs in production
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

register_exception_handlers(app)

# Configure CORS (always enabled)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "message": "Library Lending API is running successfully"
    }


@app.get("/health/db")
async def health_check_db():
    if await check_database():
        return {"status": "healthy", "database": "reachable"}
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "unhealthy", "database": "unreachable"},
    )
