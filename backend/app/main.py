"""
Crop Verification - farmer crop verification request service
"""
import logging
import traceback
from contextlib import asynccontextmanager

from starlette.requests import Request

from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.api.router import api_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle"""
    logger.info(f"{settings.APP_NAME} backend is starting...")
    yield
    logger.info(f"{settings.APP_NAME} backend is shutting down...")


app = FastAPI(
    title="Crop Verification",
    description="""
    ## Crop verification requests

    ### Flow:
    - **Submit**: a farmer sends 1-3 photos and the field location for a crop
    - **Review images**: the support team approves or rejects each photo
    - **Finalize**: the request is approved (with a farm/village location type) or rejected with a reason
    - **Resubmit**: after a rejection the farmer may submit a new request
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Validation errors (422) - log the received body to ease diagnosis
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(
        "Validation error on %s %s\nErrors: %s",
        request.method,
        request.url.path,
        exc.errors(),
    )
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(exc.errors())},
    )


# Unhandled errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled exception on %s %s: %s\n%s",
        request.method,
        request.url.path,
        exc,
        traceback.format_exc(),
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal error. Please try again later."},
    )


# Health check
@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "crop-verification-backend", "version": "1.0.0"}


# Include API routes
app.include_router(api_router)


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }
