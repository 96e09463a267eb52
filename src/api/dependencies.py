import hmac
import logging
import os
import uuid
from typing import Optional

from dotenv import load_dotenv
from fastapi import Depends, Header, HTTPException, Request, status

from src.error_handler import GlobalErrorHandler
from src.integrations.clients.mocks.broker_backend import MockBrokerBackend
from src.integrations.clients.mocks.mpesa import MpesaMockClient
from src.integrations.clients.real_http.broker_api import BrokerApiClient
from src.integrations.clients.real_http.payments import RealMpesaClient
from src.integrations.contracts.interfaces import StkPushGateway
from src.integrations.policy.admin_service import AdminService
from src.integrations.policy.auth_service import AuthService
from src.integrations.policy.payment_service import PaymentRegistry, StkPaymentPoller
from src.integrations.policy.quotation_service import QuotationService
from src.session_context import SessionContext
from src.utils.config_loader import load_broker_config

load_dotenv()

logger = logging.getLogger(__name__)

SESSION_HEADER = "X-Session-Id"

_ALLOWLIST_PATHS = {
    "/",
    "/health",
    "/docs",
    "/docs/oauth2-redirect",
    "/openapi.json",
    "/redoc",
}


# ============================================================================
# API KEY
# ============================================================================

def get_api_keys():
    keys = os.getenv("API_KEYS", "")
    return [k.strip() for k in keys.split(",") if k.strip()]


async def api_key_protection(
    request: Request = None,  # keep Request type so FastAPI injects it; default None for direct calls/tests
    x_api_key: str = Header(default=None, alias="X-API-KEY"),
):
    debug = os.getenv("API_KEY_DEBUG", "").lower() in ("1", "true", "yes")
    path = request.url.path if request is not None else "<no-request>"

    if request is not None and request.url.path in _ALLOWLIST_PATHS:
        if debug:
            logger.info("API key check: allowlisted path=%s", path)
        return

    valid_keys = get_api_keys()
    candidate = (x_api_key or "").strip()

    ok = bool(candidate) and any(hmac.compare_digest(candidate, k) for k in valid_keys)
    if debug:
        logger.info("API key check: path=%s ok=%s configured_keys=%d", path, ok, len(valid_keys))

    if not ok:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API Key",
        )


# ============================================================================
# SHARED INSTANCES
# ============================================================================

broker_config = load_broker_config()

# Session store: real Redis when REDIS_URL is set, else the in-memory stub
if os.getenv("REDIS_URL"):
    from src.database.redis_real import RedisCache

    session_store = RedisCache(url=os.environ["REDIS_URL"])
else:
    from src.database.redis import RedisCache

    session_store = RedisCache()

# Mock mode routes every broker call through the in-process fake backend
if broker_config.use_real_integrations:
    mock_backend: Optional[MockBrokerBackend] = None
    mpesa_mock: Optional[MpesaMockClient] = None
else:
    mock_backend = MockBrokerBackend()
    mpesa_mock = MpesaMockClient()

broker_api = BrokerApiClient(
    broker_config.api_base_url,
    timeout_seconds=broker_config.http.timeout_seconds,
    get_retries=broker_config.http.get_retries,
    transport=mock_backend.transport() if mock_backend is not None else None,
)

payment_registry = PaymentRegistry(
    retention_seconds=broker_config.payments.attempt_retention_seconds,
    max_finished=broker_config.payments.max_finished_attempts,
)


def _build_error_tracker():
    tracking = broker_config.error_tracking
    token = os.getenv(tracking.slack_token_env, "")
    if not (tracking.enabled and token and tracking.slack_channel):
        return None
    from src.integrations.slack.error_tracker import SlackErrorTracker

    return SlackErrorTracker(token=token, channel=tracking.slack_channel)


error_handler = GlobalErrorHandler(
    _build_error_tracker(),
    is_production=broker_config.is_production,
    debug=broker_config.active.enable_debug,
)


# ============================================================================
# DEPENDENCIES
# ============================================================================

def get_config():
    """Dependency for the loaded service configuration"""
    return broker_config


def get_session_store():
    """Dependency for the session store"""
    return session_store


def get_session(
    x_session_id: Optional[str] = Header(default=None, alias=SESSION_HEADER),
    store=Depends(get_session_store),
) -> SessionContext:
    """Session for the X-Session-Id header; requests without one get a fresh anonymous session."""
    return SessionContext(store, (x_session_id or "").strip() or uuid.uuid4().hex)


def get_payment_registry() -> PaymentRegistry:
    return payment_registry


def get_payment_owner(x_session_id: Optional[str] = Header(default=None, alias=SESSION_HEADER)) -> str:
    """Session id a payment attempt belongs to; payment routes require the header."""
    session_id = (x_session_id or "").strip()
    if not session_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{SESSION_HEADER} header is required for payments",
        )
    return session_id


def get_auth_service(session: SessionContext = Depends(get_session)) -> AuthService:
    return AuthService(broker_api, session)


def get_quotation_service(session: SessionContext = Depends(get_session)) -> QuotationService:
    return QuotationService(broker_api, session.access_token or None)


def get_admin_service(session: SessionContext = Depends(get_session)) -> AdminService:
    return AdminService(broker_api, session.access_token or None, use_mock_data=session.is_admin)


def get_payment_gateway(session: SessionContext = Depends(get_session)) -> StkPushGateway:
    if mpesa_mock is not None:
        return mpesa_mock
    return RealMpesaClient(broker_api, session.access_token or None)


def get_payment_poller(gateway: StkPushGateway = Depends(get_payment_gateway)) -> StkPaymentPoller:
    return StkPaymentPoller(
        gateway,
        interval_seconds=broker_config.payments.poll_interval_seconds,
        max_attempts=broker_config.payments.max_poll_attempts,
    )
