"""
CRM Backend - FastAPI Application
Main entry point with all routes configured.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from crm_backend.config import settings
from crm_backend.database import init_db
from crm_backend.core.exceptions import (
    CrmException, ConversionValidationError, TransientStorageError, OrderConflictError
)

# Import all API routers
from crm_backend.api import leads, orders, settings as settings_api

# Import models to ensure they are registered with SQLModel
from crm_backend.models import (
    Staff, Product, Customer,
    Lead, LeadProduct, LeadIntakeForm,
    Order, OrderItem,
    EmSeries, AssignmentCursor, AuditLog
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    if settings.CREATE_TABLES_ON_STARTUP:
        await init_db()
    yield


app = FastAPI(
    title="CRM API",
    description="Lead intake, lead-to-order conversion and order management",
    version="1.0.0",
    lifespan=lifespan
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CrmException)
async def crm_exception_handler(request: Request, exc: CrmException):
    content = {"detail": exc.message}
    headers = None

    if isinstance(exc, ConversionValidationError):
        content["errors"] = exc.errors
        content["warnings"] = exc.warnings
    if isinstance(exc, TransientStorageError):
        content["retriable"] = True
        headers = {"Retry-After": "1"}
        logger.warning(f"{request.method} {request.url.path} failed transiently: {exc.message}")
    if isinstance(exc, OrderConflictError):
        content["retriable"] = False

    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


# Include all routers
app.include_router(leads.router)
app.include_router(orders.router)
app.include_router(settings_api.router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "message": "CRM API is running",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "version": "1.0.0"
    }
