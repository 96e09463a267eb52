"""
Admin contracts.

Read-only projections of the back-office list endpoints. Rows are kept
as plain dicts from the backend (camelCase keys) and wrapped in `Page`
together with the paging window that produced them.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

USERS_PAGE_SIZE = 10
DEFAULT_PAGE_SIZE = 20


@dataclass
class Page:
    items: List[Dict[str, Any]] = field(default_factory=list)
    total: int = 0
    page: int = 0
    size: int = DEFAULT_PAGE_SIZE
    error: Optional[str] = None
    mock: bool = False

    @property
    def offset(self) -> int:
        return self.page * self.size

    def as_dict(self) -> Dict[str, Any]:
        return {
            "items": self.items,
            "total": self.total,
            "page": self.page,
            "size": self.size,
            "error": self.error,
            "mock": self.mock,
        }


@dataclass(frozen=True)
class AdminResource:
    """One admin listing: backend path, default page size and the label used in errors."""

    path: str
    label: str
    page_size: int = DEFAULT_PAGE_SIZE
    filter_param: Optional[str] = None

    @property
    def error_message(self) -> str:
        return f"Failed to load {self.label}. Please try again."


USERS = AdminResource("/admin/users", "users", USERS_PAGE_SIZE, "search")
QUOTE_USERS = AdminResource("/admin/quote-users", "quote users")
PREMIUM_BUYERS = AdminResource("/admin/premium-buyers", "premium buyers", filter_param="productType")
TRANSACTIONS = AdminResource("/admin/transactions", "transactions", filter_param="status")
HIGH_RISK_SHIPMENTS = AdminResource("/admin/high-risk-shipments", "high risk shipments")
EXPORT_COVER_REQUESTS = AdminResource("/admin/export-cover-requests", "export cover requests")


@dataclass
class DashboardSnapshot:
    metrics: Dict[str, Any] = field(default_factory=dict)
    traffic: List[Dict[str, Any]] = field(default_factory=list)
    sales: List[Dict[str, Any]] = field(default_factory=list)
    products: List[Dict[str, Any]] = field(default_factory=list)
    recent_transactions: List[Dict[str, Any]] = field(default_factory=list)
    mock: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return {
            "metrics": self.metrics,
            "traffic": self.traffic,
            "sales": self.sales,
            "products": self.products,
            "recent_transactions": self.recent_transactions,
            "mock": self.mock,
        }
