"""
FastAPI application - Main entry point
"""

from dotenv import load_dotenv

load_dotenv()

import logging
from datetime import datetime

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from src.api.admin_router import api as admin_api
from src.api.applications_router import api as applications_api
from src.api.auth_router import api as auth_api
from src.api.dependencies import (
    SESSION_HEADER,
    api_key_protection,
    broker_config,
    error_handler,
    payment_registry,
    session_store,
)
from src.api.endpoints.payments import payments_api
from src.api.quotes_router import api as quotes_api
from src.forms.validation import FormValidationError
from src.integrations.clients.real_http.broker_api import BrokerApiError
from src.integrations.policy.payment_service import PaymentInProgressError
from src.integrations.policy.quotation_service import QuoteLockedError
from src.integrations.policy.response_wrappers import IntegrationResponseError
from src.session_context import SessionContext
from src.utils.config_loader import resolve_log_level

# Setup logging
logging.basicConfig(level=resolve_log_level(broker_config))
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Geminia Broker API",
    description="Marine cargo and travel quotations, KYC document intake and M-Pesa payment confirmation",
    version="1.0.0",
    dependencies=[Depends(api_key_protection)],  # protect everything by default
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

async def _report(exc: Exception, request: Request):
    # Worker thread: the Slack tracker call blocks.
    return await run_in_threadpool(error_handler.handle_exception, exc, {"path": request.url.path})


@app.exception_handler(FormValidationError)
async def form_validation_error_handler(request: Request, exc: FormValidationError):
    return JSONResponse(status_code=422, content={"message": exc.message, "field_errors": exc.field_errors})


@app.exception_handler(BrokerApiError)
async def broker_api_error_handler(request: Request, exc: BrokerApiError):
    report = await _report(exc, request)

    session_id = request.headers.get(SESSION_HEADER)
    if exc.is_auth_failure and session_id:
        session = SessionContext(session_store, session_id)
        if not session.is_admin:
            session.sign_out()
            report["signed_out"] = True

    if exc.is_network_error:
        status_code = 503
    elif 400 <= exc.status < 600:
        status_code = exc.status
    else:
        status_code = 502
    return JSONResponse(status_code=status_code, content=report)


@app.exception_handler(QuoteLockedError)
async def quote_locked_error_handler(request: Request, exc: QuoteLockedError):
    return JSONResponse(status_code=409, content={"message": str(exc), "quote_id": exc.quote_id})


@app.exception_handler(PaymentInProgressError)
async def payment_in_progress_error_handler(request: Request, exc: PaymentInProgressError):
    return JSONResponse(status_code=409, content={"message": str(exc)})


@app.exception_handler(IntegrationResponseError)
async def integration_response_error_handler(request: Request, exc: IntegrationResponseError):
    report = await _report(exc, request)
    return JSONResponse(status_code=502, content=report)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    report = await _report(exc, request)
    return JSONResponse(status_code=500, content=report)


# ============================================================================
# ENDPOINTS
# ============================================================================

@app.get("/", tags=["Health"])
async def root():
    """Health check endpoint."""
    return {"service": "Geminia Broker API", "status": "healthy", "version": "1.0.0", "timestamp": datetime.now().isoformat()}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check (session store, integrations mode)."""
    return {
        "status": "healthy",
        "environment": broker_config.environment,
        "integrations_mode": broker_config.integrations_mode,
        "session_store": session_store.ping(),
        "timestamp": datetime.now().isoformat(),
    }


@app.get("/api/v1/config", tags=["Config"])
async def public_config():
    """Constants the front end renders: page sizes, currencies, quote limits and upload rules."""
    return {
        "environment": broker_config.environment,
        "pagination": broker_config.pagination.model_dump(),
        "currencies": broker_config.currencies,
        "quote_limits": broker_config.quote_limits.model_dump(),
        "uploads": broker_config.uploads.model_dump(),
    }


# API versioning: primary prefix is /api/v1; /api is kept for backward compatibility
for router in (auth_api, quotes_api, applications_api, admin_api):
    app.include_router(router, prefix="/api/v1")
    app.include_router(router, prefix="/api")

app.include_router(payments_api, prefix="/api/v1/payments")
app.include_router(payments_api, prefix="/api/payments")


# ============================================================================
# STARTUP/SHUTDOWN EVENTS
# ============================================================================
@app.on_event("startup")
async def startup_event():
    """Initialize on startup"""
    logger.info(
        "Starting Geminia Broker API (environment=%s, integrations=%s, api=%s)",
        broker_config.environment,
        broker_config.integrations_mode,
        broker_config.api_base_url,
    )
    if session_store.ping():
        logger.info("Session store connection successful")
    else:
        logger.warning("Session store connection failed")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    logger.info("Shutting down Geminia Broker API...")
    await payment_registry.shutdown()
