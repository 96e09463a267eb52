"""
Admin Service

Back-office listings and dashboard data for the admin area.

Sessions carrying the admin flag are served the fixed mock datasets and
never reach the network. Every other session pages through the backend
list endpoints; a failed listing comes back as an empty page with a
user-facing error, and a failed dashboard falls back to the mock numbers.
"""

import logging
from typing import Any, Dict, Optional

from src.integrations.clients.mocks.admin_data import mock_dashboard, mock_listing
from src.integrations.clients.real_http.broker_api import BrokerApiClient, BrokerApiError
from src.integrations.contracts.admin import (
    EXPORT_COVER_REQUESTS,
    HIGH_RISK_SHIPMENTS,
    USERS,
    AdminResource,
    DashboardSnapshot,
    Page,
)
from src.integrations.policy.response_wrappers import IntegrationResponseError, normalize_page

logger = logging.getLogger(__name__)

DASHBOARD_PATH = "/admin/dashboard"

_TONES = {
    "completed": "success",
    "active": "success",
    "approved": "success",
    "paid": "success",
    "pending": "warning",
    "draft": "warning",
    "failed": "danger",
    "expired": "danger",
    "rejected": "danger",
    "critical": "danger",
    "inactive": "danger",
    "submitted": "info",
    "under review": "info",
    "high": "caution",
}


def status_tone(label: Any) -> str:
    """Display tone for a status or risk label; unknown labels are neutral."""
    return _TONES.get(str(label or "").strip().lower(), "neutral")


def with_tones(row: Dict[str, Any]) -> Dict[str, Any]:
    decorated = dict(row)
    if "status" in row:
        decorated["statusTone"] = status_tone(row["status"])
    if "riskLevel" in row:
        decorated["riskTone"] = status_tone(row["riskLevel"])
    return decorated


class AdminService:
    def __init__(self, api: BrokerApiClient, token: Optional[str] = None, *, use_mock_data: bool = False):
        self.api = api
        self.token = token
        self.use_mock_data = use_mock_data

    async def fetch_page(
        self,
        resource: AdminResource,
        *,
        page: int = 0,
        size: Optional[int] = None,
        filter_value: Optional[str] = None,
    ) -> Page:
        size = size or resource.page_size
        if self.use_mock_data:
            rows = mock_listing(resource.path)
            logger.info("Serving mock %s for admin session", resource.label)
            return Page(
                items=[with_tones(row) for row in rows],
                total=len(rows),
                page=page,
                size=size,
                mock=True,
            )

        result = Page(page=max(page, 0), size=size)
        params: Dict[str, Any] = {"offset": result.offset, "limit": size}
        if resource.filter_param and filter_value:
            params[resource.filter_param] = filter_value

        try:
            data = await self.api.get(resource.path, token=self.token, params=params)
            normalized = normalize_page(data)
        except (BrokerApiError, IntegrationResponseError) as e:
            logger.error(f"Failed to load {resource.label}: {e}")
            result.error = resource.error_message
            return result

        result.items = [with_tones(row) for row in normalized.items]
        result.total = normalized.total
        return result

    async def dashboard(self) -> DashboardSnapshot:
        if not self.use_mock_data:
            try:
                data = await self.api.get(DASHBOARD_PATH, token=self.token)
            except BrokerApiError as e:
                logger.warning(f"Dashboard metrics unavailable, using mock data: {e}")
            else:
                if isinstance(data, dict):
                    return DashboardSnapshot(
                        metrics=data.get("metrics") or {},
                        traffic=data.get("traffic") or [],
                        sales=data.get("sales") or [],
                        products=data.get("products") or [],
                        recent_transactions=[with_tones(row) for row in data.get("recentTransactions") or []],
                    )
                logger.warning("Dashboard payload was not an object, using mock data")

        snapshot = mock_dashboard()
        snapshot["recent_transactions"] = [with_tones(row) for row in snapshot["recent_transactions"]]
        return DashboardSnapshot(mock=True, **snapshot)

    async def create_user(self, details: Dict[str, Any]) -> Dict[str, Any]:
        logger.info("Creating admin-managed user %s", details.get("email"))
        return await self.api.post(USERS.path, details, token=self.token)

    async def delete_user(self, user_id: str) -> Dict[str, Any]:
        logger.info("Deleting user %s", user_id)
        return await self.api.delete(f"{USERS.path}/{user_id}", token=self.token)

    async def update_status(self, resource: AdminResource, record_id: str, status: str) -> Dict[str, Any]:
        if resource not in (HIGH_RISK_SHIPMENTS, EXPORT_COVER_REQUESTS):
            raise ValueError(f"{resource.label} do not accept status updates")
        logger.info("Setting %s %s status to %s", resource.label, record_id, status)
        return await self.api.put(f"{resource.path}/{record_id}", {"status": status}, token=self.token)
