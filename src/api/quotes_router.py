from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException

from src.api.dependencies import get_quotation_service
from src.forms.cover_requests import ACK_MESSAGES, validate_cover_request
from src.forms.input_formatters import format_amount
from src.forms.marine_quote import build_compute_payload, build_quote_metadata, validate_marine_quote
from src.forms.travel_quote import build_travel_metadata, validate_travel_quote
from src.forms.validation import parse_amount, raise_if_errors, require_str
from src.integrations.contracts.interfaces import ProductType, Quote
from src.integrations.policy.quotation_service import QuotationService

api = APIRouter()


def _quote_view(quote: Quote) -> Dict[str, Any]:
    breakdown = quote.breakdown.as_dict() if quote.breakdown else None
    return {
        "quote_id": quote.quote_id,
        "ref_no": quote.ref_no,
        "status": quote.status.value,
        "product": quote.product.value,
        "sum_insured": quote.sum_insured,
        "sum_insured_display": format_amount(quote.sum_insured),
        "premium": breakdown,
        "editable": not quote.is_locked,
        "customer": {
            "first_name": quote.first_name,
            "last_name": quote.last_name,
            "email": quote.email,
            "phone_number": quote.phone_number,
        },
        "shipment": {
            "origin_country": quote.origin_country,
            "destination": quote.destination,
            "shipping_mode_id": quote.shipping_mode_id,
            "category_id": quote.category_id,
            "cargo_type_id": quote.cargo_type_id,
        },
    }


@api.post("/quotes/marine", tags=["Quotes"])
async def create_marine_quote(payload: Dict[str, Any] = Body(...), service: QuotationService = Depends(get_quotation_service)):
    data = validate_marine_quote(payload)
    quote = await service.create_quote(build_quote_metadata(data), product=ProductType.MARINE_CARGO)
    return _quote_view(quote)


@api.put("/quotes/marine/{quote_id}", tags=["Quotes"])
async def update_marine_quote(
    quote_id: str,
    payload: Dict[str, Any] = Body(...),
    service: QuotationService = Depends(get_quotation_service),
):
    data = validate_marine_quote(payload)
    quote = await service.update_quote(quote_id, build_quote_metadata(data, edit_quote_id=quote_id))
    return _quote_view(quote)


@api.post("/quotes/travel", tags=["Quotes"])
async def create_travel_quote(payload: Dict[str, Any] = Body(...), service: QuotationService = Depends(get_quotation_service)):
    data = validate_travel_quote(payload)
    quote = await service.create_quote(build_travel_metadata(data), product=ProductType.TRAVEL)
    return _quote_view(quote)


@api.post("/quotes/compute-premium", tags=["Quotes"])
async def compute_premium(payload: Dict[str, Any] = Body(...), service: QuotationService = Depends(get_quotation_service)):
    errors: Dict[str, str] = {}
    sum_insured = parse_amount(payload, "sumInsured", errors, label="Sum Insured")
    shipping_mode = require_str(payload, "modeOfShipment", errors, label="Mode of Shipment")
    raise_if_errors(errors, "Enter the sum insured and mode of shipment")

    breakdown = await service.compute_premium(build_compute_payload(sum_insured, payload.get("marineCargoType"), shipping_mode))
    return breakdown.as_dict()


@api.get("/quotes/{quote_id}", tags=["Quotes"])
async def get_quote(quote_id: str, service: QuotationService = Depends(get_quotation_service)):
    quote = await service.get_quote(quote_id)
    return _quote_view(quote)


@api.post("/quotes/{quote_id}/recalculate", tags=["Quotes"])
async def recalculate_quote(
    quote_id: str,
    payload: Dict[str, Any] = Body(...),
    service: QuotationService = Depends(get_quotation_service),
):
    errors: Dict[str, str] = {}
    sum_insured = parse_amount(payload, "sumInsured", errors, label="Sum Insured")
    raise_if_errors(errors, "Invalid sum insured")

    result = await service.recalculate(quote_id, sum_insured)
    return {"quote_id": quote_id, "premium": result.premium, "tax": result.tax, "total": result.total}


@api.post("/cover-requests/{kind}", tags=["Quotes"])
async def submit_cover_request(kind: str, payload: Dict[str, Any] = Body(...)):
    if kind not in ACK_MESSAGES:
        raise HTTPException(status_code=404, detail="Unknown cover request type")
    data = validate_cover_request(kind, payload)
    return {"kind": kind, "message": ACK_MESSAGES[kind], "request": data}
