from datetime import datetime, timezone
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

# Configure logging before the routers build their services
from app.utils.logging_config import configure_for_environment, get_logger
configure_for_environment()

from app.routers import assistant, matches, resumes
from app.middleware.error_handlers import (
    ExceptionHandlerMiddleware,
    PerformanceMiddleware,
    register_exception_handlers,
)
from app.services.db import STORAGE_BACKEND

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager"""
    logger.info(f"Job Assistant API starting up (storage: {STORAGE_BACKEND})...")

    if STORAGE_BACKEND == "mongo":
        try:
            from app.services.db import init_indexes
            await init_indexes()
            logger.info("Database indexes initialized successfully")
        except Exception as e:
            logger.warning(f"Database index initialization had issues: {e}")

    yield

    logger.info("Job Assistant API shutting down...")


app = FastAPI(title="Job Assistant API", version="1.0.0", lifespan=lifespan)

# Exception handler should be the outermost middleware
app.add_middleware(PerformanceMiddleware, slow_request_threshold=5.0)
app.add_middleware(ExceptionHandlerMiddleware)
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
@app.head("/")
async def root():
    return {"message": "Welcome to the Job Assistant API", "version": "1.0.0", "status": "ok"}


@app.get("/health")
@app.head("/health")
async def health_check():
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


app.include_router(assistant.router, prefix="/api/assistant", tags=["assistant"])
app.include_router(resumes.router, prefix="/api/resume", tags=["resume"])
app.include_router(matches.router, prefix="/api/matches", tags=["matches"])

logger.info("Job Assistant API initialized successfully")
