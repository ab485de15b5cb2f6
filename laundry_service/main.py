"""
FastAPI Application Entry Point - Laundry Order Service
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from laundry_service import __version__
from laundry_service.api import health, orders, payments, webhooks
from laundry_service.config import settings
from laundry_service.database import init_db
from laundry_service.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidPaymentTransitionError,
    InvalidTransitionError,
    LaundryServiceError,
    NotFoundError,
    PaymentGatewayError,
    TransientGatewayError,
    UnverifiedEventError,
    ValidationError,
)
from laundry_service.logger import logger

ERROR_STATUS_CODES = {
    InvalidTransitionError: 400,
    InvalidPaymentTransitionError: 400,
    UnverifiedEventError: 400,
    ForbiddenError: 403,
    NotFoundError: 404,
    ConflictError: 409,
    ValidationError: 422,
    PaymentGatewayError: 502,
    TransientGatewayError: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup"""
    logger.info(f"Starting {settings.SERVICE_NAME}...")
    init_db()
    logger.info("Database initialized")
    logger.info(f"Payment gateway: {settings.PAYSTACK_BASE_URL}")
    logger.info(f"RabbitMQ URL: {settings.RABBITMQ_URL}")
    logger.info(f"{settings.SERVICE_NAME} is running on port {settings.SERVICE_PORT}")
    yield
    logger.info(f"Shutting down {settings.SERVICE_NAME}...")


# Create FastAPI application
app = FastAPI(
    title="Laundry Order Service",
    description="Order lifecycle and payment reconciliation for the laundry marketplace",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LaundryServiceError)
async def service_error_handler(request: Request, exc: LaundryServiceError) -> JSONResponse:
    """Map service errors to HTTP responses"""
    status_code = next(
        (ERROR_STATUS_CODES[cls] for cls in type(exc).__mro__ if cls in ERROR_STATUS_CODES),
        500,
    )
    content = {"detail": str(exc), "error_type": type(exc).__name__}
    if isinstance(exc, (InvalidTransitionError, InvalidPaymentTransitionError)):
        content["current_status"] = exc.current
        content["target_status"] = exc.target
    if status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status_code, content=content)


# Include routers
app.include_router(health.router)
app.include_router(orders.router)
app.include_router(payments.router)
app.include_router(webhooks.router)

# Prometheus metrics
Instrumentator().instrument(app).expose(app)
