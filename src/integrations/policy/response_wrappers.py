from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from src.integrations.contracts.interfaces import (
    PaymentStatusResponse,
    PremiumBreakdown,
    ProductType,
    Quote,
    QuoteStatus,
    StkPushResponse,
)


class IntegrationResponseError(ValueError):
    def __init__(self, message: str, *, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.payload = payload or {}


class PremiumResponseModel(BaseModel):
    premium: float
    phcf: float = 0.0
    training_levy: float = 0.0
    stamp_duty: float = 0.0
    net_premium: float
    raw: Dict[str, Any] = Field(default_factory=dict)

    def to_breakdown(self) -> PremiumBreakdown:
        return PremiumBreakdown(
            premium=self.premium,
            phcf=self.phcf,
            training_levy=self.training_levy,
            stamp_duty=self.stamp_duty,
            net_premium=self.net_premium,
        )


class QuoteResponseModel(BaseModel):
    quote_id: str
    status: QuoteStatus = QuoteStatus.DRAFT
    sum_insured: float = 0.0
    ref_no: Optional[str] = None
    premium: Optional[PremiumResponseModel] = None
    raw: Dict[str, Any] = Field(default_factory=dict)


class RecalculationResponseModel(BaseModel):
    premium: float
    tax: float
    total: float
    raw: Dict[str, Any] = Field(default_factory=dict)


class ApplicationResponseModel(BaseModel):
    application_id: str
    transaction_id: str
    raw: Dict[str, Any] = Field(default_factory=dict)


class PageResponseModel(BaseModel):
    items: List[Dict[str, Any]] = Field(default_factory=list)
    total: int = 0


def normalize_premium_response(raw: Dict[str, Any]) -> PremiumResponseModel:
    source = raw.get("result") if isinstance(raw.get("result"), dict) else raw
    premium = _coerce_positive_amount(_first_non_empty(source, "premium", "basicPremium", "basicprem"), "premium")
    phcf = _coerce_amount(source.get("phcf"), "phcf")
    training_levy = _coerce_amount(_first_non_empty(source, "tl", "traininglevy", "trainingLevy", default=0), "training levy")
    stamp_duty = _coerce_amount(_first_non_empty(source, "sd", "stampduty", "stampDuty", default=0), "stamp duty")
    net_default = round(premium + phcf + training_levy + stamp_duty, 2)
    net_premium = _coerce_positive_amount(
        _first_non_empty(source, "netprem", "netPremium", "total", default=net_default),
        "net premium",
    )

    return _build_model(
        PremiumResponseModel,
        {
            "premium": premium,
            "phcf": phcf,
            "training_levy": training_levy,
            "stamp_duty": stamp_duty,
            "net_premium": net_premium,
            "raw": raw,
        },
        raw,
    )


def normalize_quote_response(raw: Dict[str, Any], *, fallback_quote_id: Optional[str] = None) -> QuoteResponseModel:
    quote_id = _first_non_empty(raw, "quoteId", "quote_id", "id", default=fallback_quote_id)
    status = _map_quote_status(_first_non_empty(raw, "status", "quoteStatus", default="DRAFT"))
    sum_insured = _coerce_amount(_first_non_empty(raw, "sumassured", "suminsured", "sumInsured", default=0), "sum insured")
    ref_no = raw.get("refno") or raw.get("refNo")

    premium = None
    if any(raw.get(key) not in (None, "") for key in ("premium", "netprem")):
        premium = normalize_premium_response(raw)

    return _build_model(
        QuoteResponseModel,
        {
            "quote_id": str(quote_id),
            "status": status,
            "sum_insured": sum_insured,
            "ref_no": str(ref_no) if ref_no else None,
            "premium": premium,
            "raw": raw,
        },
        raw,
    )


def quote_from_response(model: QuoteResponseModel, **fields: Any) -> Quote:
    raw = model.raw
    if "product" not in fields:
        fields["product"] = ProductType.TRAVEL if raw.get("productType") == ProductType.TRAVEL.value else ProductType.MARINE_CARGO
    return Quote(
        quote_id=model.quote_id,
        status=model.status,
        sum_insured=model.sum_insured,
        breakdown=model.premium.to_breakdown() if model.premium else None,
        ref_no=model.ref_no,
        first_name=raw.get("firstName"),
        last_name=raw.get("lastName"),
        email=raw.get("email"),
        phone_number=raw.get("phoneNo") or raw.get("phoneNumber"),
        origin_country=raw.get("originCountry") or raw.get("countryOrigin"),
        destination=raw.get("destination"),
        shipping_mode_id=_as_optional_str(raw.get("shippingmodeId") or raw.get("shippingid")),
        category_id=_as_optional_str(raw.get("catId") or raw.get("categoryid")),
        cargo_type_id=_as_optional_str(raw.get("cargotypeId") or raw.get("cargoId")),
        raw=raw,
        **fields,
    )


def normalize_recalculation_response(raw: Dict[str, Any]) -> RecalculationResponseModel:
    premium = _coerce_positive_amount(_first_non_empty(raw, "premium"), "recalculated premium")
    if raw.get("tax") is not None:
        tax = _coerce_amount(raw.get("tax"), "tax")
    else:
        tax = round(
            sum(_coerce_amount(raw.get(key), key) for key in ("phcf", "tl", "sd")),
            2,
        )
    total = _coerce_positive_amount(_first_non_empty(raw, "total", "netprem", default=premium + tax), "total")

    return _build_model(
        RecalculationResponseModel,
        {"premium": premium, "tax": tax, "total": total, "raw": raw},
        raw,
    )


def normalize_application_response(raw: Dict[str, Any]) -> ApplicationResponseModel:
    transaction_id = _first_non_empty(raw, "transactionId", "transaction_id")
    application_id = _first_non_empty(raw, "resourceId", "applicationId", "id", default=transaction_id)

    return _build_model(
        ApplicationResponseModel,
        {
            "application_id": str(application_id),
            "transaction_id": str(transaction_id),
            "raw": raw,
        },
        raw,
    )


def normalize_stk_push_response(raw: Dict[str, Any]) -> StkPushResponse:
    merchant_request_id = _first_non_empty(raw, "merchantRequestId", "MerchantRequestID", "merchant_request_id")
    checkout_request_id = _first_non_empty(raw, "checkOutRequestId", "CheckoutRequestID", "checkout_request_id")
    return StkPushResponse(
        merchant_request_id=str(merchant_request_id),
        checkout_request_id=str(checkout_request_id),
        raw=raw,
    )


def normalize_payment_status_response(raw: Dict[str, Any]) -> PaymentStatusResponse:
    result_code = _first_non_empty(raw, "resultCode", "ResultCode", "result_code")
    try:
        code = int(str(result_code).strip())
    except (TypeError, ValueError) as exc:
        raise IntegrationResponseError(f"Invalid resultCode: {result_code!r}", payload=raw) from exc

    mpesa_code = raw.get("mpesaCode") or raw.get("MpesaReceiptNumber") or raw.get("mpesa_code")
    if isinstance(mpesa_code, str) and not mpesa_code.strip():
        mpesa_code = None
    return PaymentStatusResponse(result_code=code, mpesa_code=mpesa_code, raw=raw)


def normalize_page(raw: Any) -> PageResponseModel:
    if isinstance(raw, list):
        return PageResponseModel(items=raw, total=len(raw))
    if not isinstance(raw, dict):
        raise IntegrationResponseError(f"Unexpected page payload type: {type(raw).__name__}")

    items = raw.get("pageItems")
    if items is None:
        items = []
    if not isinstance(items, list):
        raise IntegrationResponseError("pageItems must be a list", payload=raw)
    total = raw.get("totalElements")
    return _build_model(
        PageResponseModel,
        {"items": items, "total": int(total) if total is not None else len(items)},
        raw,
    )


def _first_non_empty(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    if default is not None:
        return default
    raise IntegrationResponseError(f"Missing required field. Checked keys: {', '.join(keys)}", payload=data)


def _coerce_amount(value: Any, label: str) -> float:
    if value is None or value == "":
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError) as exc:
        raise IntegrationResponseError(f"Invalid {label}: {value!r}") from exc
    if amount < 0:
        raise IntegrationResponseError(f"{label.capitalize()} must be >= 0; got {amount}.")
    return amount


def _coerce_positive_amount(value: Any, label: str) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError) as exc:
        raise IntegrationResponseError(f"Invalid {label}: {value!r}") from exc
    if amount <= 0:
        raise IntegrationResponseError(f"{label.capitalize()} must be > 0; got {amount}.")
    return amount


def _map_quote_status(raw_status: Any) -> QuoteStatus:
    value = str(raw_status or "").strip().upper()
    mapping = {
        "DRAFT": QuoteStatus.DRAFT,
        "NEW": QuoteStatus.DRAFT,
        "PENDING": QuoteStatus.DRAFT,
        "SUBMITTED": QuoteStatus.SUBMITTED,
        "APPLIED": QuoteStatus.SUBMITTED,
        "PAID": QuoteStatus.PAID,
        "COMPLETED": QuoteStatus.PAID,
    }
    if value not in mapping:
        raise IntegrationResponseError(f"Unsupported quote status '{value}'.")
    return mapping[value]


def _as_optional_str(value: Any) -> Optional[str]:
    return None if value in (None, "") else str(value)


def _build_model(model_type, payload: Dict[str, Any], raw: Any):
    try:
        return model_type(**payload)
    except ValidationError as exc:
        raise IntegrationResponseError(
            f"Invalid {model_type.__name__} payload: {exc.errors()}",
            payload=raw if isinstance(raw, dict) else {"raw": raw},
        ) from exc
