from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class QuoteStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    PAID = "PAID"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class ShippingMode(str, Enum):
    SEA = "1"
    AIR = "2"


class CommodityType(str, Enum):
    CONTAINERIZED = "1"
    NON_CONTAINERIZED = "2"


class ProductType(str, Enum):
    MARINE_CARGO = "marine_cargo"
    TRAVEL = "travel"


# ---------------------------------------------------------------------------
# Shared data models
# ---------------------------------------------------------------------------

@dataclass
class PremiumBreakdown:
    premium: float                       # base premium before levies
    phcf: float = 0.0                    # policyholders compensation fund
    training_levy: float = 0.0
    stamp_duty: float = 0.0
    net_premium: float = 0.0             # total payable

    @property
    def tax(self) -> float:
        return round(self.phcf + self.training_levy + self.stamp_duty, 2)

    def as_dict(self) -> Dict[str, float]:
        return {
            "premium": self.premium,
            "phcf": self.phcf,
            "training_levy": self.training_levy,
            "stamp_duty": self.stamp_duty,
            "tax": self.tax,
            "net_premium": self.net_premium,
        }


@dataclass
class Quote:
    quote_id: str
    status: QuoteStatus
    sum_insured: float
    breakdown: Optional[PremiumBreakdown] = None
    ref_no: Optional[str] = None
    product: ProductType = ProductType.MARINE_CARGO
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    origin_country: Optional[str] = None
    destination: Optional[str] = None
    shipping_mode_id: Optional[str] = None
    category_id: Optional[str] = None
    cargo_type_id: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_locked(self) -> bool:
        return self.status == QuoteStatus.PAID


@dataclass
class ShipmentApplication:
    application_id: str
    quote_id: str
    payment_reference: str               # backend transactionId
    metadata: Dict[str, Any] = field(default_factory=dict)
    document_names: Dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class StkPushRequest:
    phone_number: str
    amount: float
    reference: str


@dataclass
class StkPushResponse:
    merchant_request_id: str
    checkout_request_id: str
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PaymentStatusResponse:
    result_code: int
    mpesa_code: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PaymentAttempt:
    reference: str
    phone_number: str
    amount: float
    merchant_request_id: Optional[str] = None
    checkout_request_id: Optional[str] = None
    status: PaymentStatus = PaymentStatus.PENDING
    attempts: int = 0                    # status queries made so far
    mpesa_receipt: Optional[str] = None
    message: Optional[str] = None
    started_at: datetime = field(default_factory=utc_now)
    finished_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status != PaymentStatus.PENDING


# ---------------------------------------------------------------------------
# Abstract gateway interface
# ---------------------------------------------------------------------------

class StkPushGateway(ABC):
    """Every M-Pesa gateway client (mock or real) must implement this interface."""

    @abstractmethod
    async def stk_push(self, request: StkPushRequest) -> StkPushResponse:
        """Ask the gateway to send a payment prompt to the subscriber handset."""

    @abstractmethod
    async def query_status(self, merchant_request_id: str, checkout_request_id: str) -> PaymentStatusResponse:
        """Query the state of a previously pushed payment prompt."""