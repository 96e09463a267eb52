"""
Integrations layer.
This package contains all code used to communicate with the upstream broker platform:
- Broker REST API (quotes, shipping applications, premium computation, auth, admin)
- M-Pesa STK-push payment initiation and status validation
- Slack (error tracking in production)

Key rule:
- Routers and forms MUST NOT call external APIs directly.
- They call policy services (src/integrations/policy), which use the clients.
- We use MOCK clients during development and swap to REAL_HTTP clients when
  INTEGRATIONS_MODE=real.

Switching implementations:
- The selection of mock vs real clients happens in ONE place (src/api/dependencies.py).
"""

from .contracts.interfaces import (
    PaymentAttempt,
    PaymentStatus,
    PaymentStatusResponse,
    PremiumBreakdown,
    Quote,
    QuoteStatus,
    ShipmentApplication,
    StkPushGateway,
    StkPushRequest,
    StkPushResponse,
)
from .contracts.payments import classify_status, mask_phone
from .contracts.admin import AdminResource, DashboardSnapshot, Page

__all__ = [
    # interfaces
    "PaymentAttempt", "PaymentStatus", "PaymentStatusResponse", "PremiumBreakdown",
    "Quote", "QuoteStatus", "ShipmentApplication", "StkPushGateway",
    "StkPushRequest", "StkPushResponse",
    # payments
    "classify_status", "mask_phone",
    # admin
    "AdminResource", "DashboardSnapshot", "Page",
]
