"""
Main FastAPI application.
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError

from mockprep.api.v1 import api_router
from mockprep.core.config import settings
from mockprep.core.errors import (
    UNAVAILABLE_DETAIL,
    ConfigurationError,
    GenerationError,
    IndexingError,
    MockPrepError,
    NotFound,
    PoolExhausted,
    RetrievalError,
    StartFailed,
    SubmitFailed,
)
from mockprep.db.base import engine
from mockprep.models import Base
from mockprep.schemas.common import ErrorResponse
from mockprep.services.submission_coordinator import is_connection_error
import logging

# Configure logging BEFORE creating the app
logging.basicConfig(
    level=logging.INFO,
    format='%(levelname)s:\t%(name)s\t%(message)s',
    handlers=[
        logging.StreamHandler()
    ]
)
logging.getLogger("uvicorn").setLevel(logging.INFO)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Mock test generation, in-app exam sessions and performance feedback",
    version="0.1.0",
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
)

cors_origins = (
    [str(origin) for origin in settings.BACKEND_CORS_ORIGINS]
    if isinstance(settings.BACKEND_CORS_ORIGINS, list)
    else ["*"]
)
logger.info(f"CORS enabled for origins: {cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Order matters: subclasses before their parents.
ERROR_STATUS = [
    (PoolExhausted, status.HTTP_503_SERVICE_UNAVAILABLE),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (ConfigurationError, status.HTTP_400_BAD_REQUEST),
    (GenerationError, status.HTTP_400_BAD_REQUEST),
    (StartFailed, status.HTTP_409_CONFLICT),
    (SubmitFailed, status.HTTP_409_CONFLICT),
    (RetrievalError, status.HTTP_502_BAD_GATEWAY),
    (IndexingError, status.HTTP_502_BAD_GATEWAY),
]


def status_for(exc: MockPrepError) -> int:
    for error_type, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


# Global exception handlers
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handle validation errors.

    Args:
        request: Request object
        exc: Validation exception

    Returns:
        JSON response with error details
    """
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.errors(), "body": exc.body},
    )


@app.exception_handler(MockPrepError)
async def mockprep_exception_handler(request: Request, exc: MockPrepError):
    """
    Map engine errors to HTTP responses.

    The body carries the error kind and its structured fields so clients
    can show suggestions (e.g. for InsufficientQuestions).
    """
    code = status_for(exc)
    detail = UNAVAILABLE_DETAIL if isinstance(exc, PoolExhausted) else exc.message
    if code >= 500:
        logger.error(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
    body = ErrorResponse(detail=detail, kind=exc.kind, fields=exc.to_dict())
    return JSONResponse(status_code=code, content=body.model_dump(mode="json"))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Handle all unhandled exceptions.

    Args:
        request: Request object
        exc: Exception

    Returns:
        JSON response with error message
    """
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    if is_connection_error(exc):
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": UNAVAILABLE_DETAIL},
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "message": str(exc)},
    )


# Startup and shutdown events
@app.on_event("startup")
async def startup_event():
    """
    Run on application startup.
    """
    if settings.AUTO_CREATE_TABLES:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables ensured")
    logger.info(f"Starting {settings.PROJECT_NAME}")
    logger.info("Documentation available at: http://localhost:8000/docs")


@app.on_event("shutdown")
async def shutdown_event():
    """
    Run on application shutdown.
    """
    logger.info(f"Shutting down {settings.PROJECT_NAME}")


# Health check endpoint
@app.get("/", tags=["Health"])
async def root():
    """
    Root endpoint - Health check.

    Returns:
        Status message
    """
    return {
        "message": "MockPrep Exam Engine API",
        "status": "healthy",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        Health status
    """
    return {"status": "healthy"}


# Include API routers
app.include_router(api_router, prefix=settings.API_V1_PREFIX)
