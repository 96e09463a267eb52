"""Shipment application ("buy now") form: KYC, cargo/transit details and documents.

Submitted once a quote is accepted. The backend answers with a
`transactionId`, which becomes the payment reference for the STK push.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from src.forms.documents import DocumentSet
from src.forms.input_formatters import (
    format_description,
    format_email,
    format_id_number,
    format_idf_number,
    format_kra_pin,
    format_mpesa_number,
    format_name,
    format_phone_number,
    format_ucr_number,
    format_vessel_name,
    normalize_payload,
)
from src.forms.validation import (
    FormValidationError,
    apply_check,
    check_email,
    check_first_name,
    check_id_number,
    check_idf_number,
    check_kra_pin,
    check_last_name,
    check_mpesa_number,
    check_phone_number,
    check_postal_code,
    check_ucr_number,
    check_vessel_name,
    check_word_count,
    parse_amount,
    raise_if_errors,
    require_str,
    require_true,
    validate_date_iso,
    validate_date_order,
    validate_in,
)
from src.integrations.contracts.interfaces import CommodityType, ShippingMode

DATE_FORMAT = "dd MMM yyyy"
LOCALE = "en_US"
DEFAULT_TRADE_TYPE = "Marine Cargo Import"
PAYMENT_METHOD_MPESA = "mpesa"

_FORMATTERS = {
    "firstName": format_name,
    "lastName": format_name,
    "emailAddress": format_email,
    "phoneNumber": format_phone_number,
    "kraPin": format_kra_pin,
    "idNumber": format_id_number,
    "gcrNumber": format_idf_number,
    "ucrNumber": format_ucr_number,
    "vesselName": format_vessel_name,
    "goodsDescription": format_description,
    "mpesaNumber": format_mpesa_number,
}


def validate_shipment_application(
    payload: Dict[str, Any],
    documents: Optional[DocumentSet] = None,
    *,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """Validate the buy-now form; document slot errors are merged into the same field map."""
    data = normalize_payload(payload, _FORMATTERS)
    data.setdefault("tradeType", DEFAULT_TRADE_TYPE)
    data.setdefault("commodityType", CommodityType.CONTAINERIZED.value)
    data.setdefault("paymentMethod", PAYMENT_METHOD_MPESA)
    errors: Dict[str, str] = {}

    # KYC
    apply_check(data, "firstName", check_first_name, errors, required=True, label="First Name")
    apply_check(data, "lastName", check_last_name, errors, required=True, label="Last Name")
    apply_check(data, "emailAddress", check_email, errors, required=True, label="Email Address")
    apply_check(data, "phoneNumber", check_phone_number, errors, required=True, label="Phone Number")
    apply_check(data, "kraPin", check_kra_pin, errors, required=True, label="KRA PIN")
    apply_check(data, "idNumber", check_id_number, errors, required=True, label="ID Number")
    require_str(data, "streetAddress", errors, label="Postal Address")
    apply_check(data, "postalCode", check_postal_code, errors, required=True, label="Postal Code")

    # Shipment
    validate_in(data.get("modeOfShipment"), [m.value for m in ShippingMode], errors, "modeOfShipment")
    validate_in(data.get("commodityType"), [c.value for c in CommodityType], errors, "commodityType")
    require_str(data, "tradeType", errors, label="Trade Type")
    require_str(data, "selectCategory", errors, label="Category")
    require_str(data, "salesCategory", errors, label="Cargo Type")
    require_str(data, "countryOfOrigin", errors, label="Country of Origin")
    apply_check(data, "gcrNumber", check_idf_number, errors, required=True, label="IDF Number")
    apply_check(data, "ucrNumber", check_ucr_number, errors)
    require_str(data, "loadingPort", errors, label="Loading Port")
    require_str(data, "portOfDischarge", errors, label="Port of Discharge")
    apply_check(data, "vesselName", check_vessel_name, errors)
    require_str(data, "finalDestination", errors, label="Final Destination")
    dispatch = validate_date_iso(data.get("dateOfDispatch"), errors, "dateOfDispatch", not_past=True, today=today)
    arrival = validate_date_iso(data.get("estimatedArrival"), errors, "estimatedArrival", not_past=True, today=today)
    validate_date_order(dispatch, arrival, errors, "estimatedArrival")
    data["sumInsured"] = parse_amount(data, "sumInsured", errors, label="Sum Insured")
    apply_check(data, "goodsDescription", check_word_count, errors, required=True, label="Goods Description")

    # Payment / consent
    apply_check(data, "mpesaNumber", check_mpesa_number, errors)
    validate_in(data.get("paymentMethod"), [PAYMENT_METHOD_MPESA], errors, "paymentMethod")
    require_true(data, "agreeToTerms", errors)

    if documents is not None:
        for slot, message in documents.validation_errors().items():
            errors.setdefault(slot, message)

    raise_if_errors(errors, "Please fill in all required fields correctly")
    data["dateOfDispatch"] = dispatch
    data["estimatedArrival"] = arrival
    return data


def _fmt(value: Optional[date]) -> Optional[str]:
    return value.strftime("%d %b %Y") if value else None


def build_application_metadata(quote_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Shape validated values into the `metadata` part of the shipping application request."""
    if not quote_id:
        raise FormValidationError(field_errors={"quoteId": "quoteId is required"}, message="A quote is required")
    return {
        "quoteId": quote_id,
        "suminsured": data.get("sumInsured"),
        "kraPin": data.get("kraPin"),
        "firstName": data.get("firstName"),
        "lastName": data.get("lastName"),
        "phoneNumber": data.get("phoneNumber"),
        "emailAddress": data.get("emailAddress"),
        "idNumber": data.get("idNumber"),
        "postalAddress": data.get("streetAddress"),
        "postalCode": data.get("postalCode"),
        "ucrnumber": data.get("ucrNumber") or None,
        "idfnumber": data.get("gcrNumber"),
        "selectCategory": data.get("selectCategory"),
        "salesCategory": data.get("salesCategory"),
        "modeOfShipment": data.get("modeOfShipment"),
        "tradeType": data.get("tradeType"),
        "vesselname": data.get("vesselName") or None,
        "loadingPort": data.get("loadingPort"),
        "portOfDischarge": data.get("portOfDischarge"),
        "finalDestinationCounty": data.get("finalDestination"),
        "dateOfDispatch": _fmt(data.get("dateOfDispatch")),
        "estimatedArrivalDate": _fmt(data.get("estimatedArrival")),
        "description": data.get("goodsDescription"),
        "dateFormat": DATE_FORMAT,
        "locale": LOCALE,
    }
