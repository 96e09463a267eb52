"""Travel insurance quotation form."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from src.forms.input_formatters import format_email, format_name, format_phone_number, normalize_payload
from src.forms.validation import (
    add_error,
    apply_check,
    check_email,
    check_first_name,
    check_last_name,
    check_phone_number,
    parse_amount,
    raise_if_errors,
    require_str,
    require_true,
    validate_date_iso,
)
from src.integrations.contracts.interfaces import ProductType

DATE_FORMAT = "dd MMM yyyy"
LOCALE = "en_US"
MAX_TRAVELLERS = 10

_FORMATTERS = {
    "firstName": format_name,
    "lastName": format_name,
    "email": format_email,
    "phoneNumber": format_phone_number,
}


def validate_travel_quote(payload: Dict[str, Any], *, today: Optional[date] = None) -> Dict[str, Any]:
    data = normalize_payload(payload, _FORMATTERS)
    errors: Dict[str, str] = {}

    apply_check(data, "firstName", check_first_name, errors, required=True, label="First Name")
    apply_check(data, "lastName", check_last_name, errors, required=True, label="Last Name")
    apply_check(data, "email", check_email, errors, required=True, label="Email")
    apply_check(data, "phoneNumber", check_phone_number, errors, required=True, label="Phone Number")
    require_str(data, "originCountry", errors, label="Origin Country")
    require_str(data, "destinationCountry", errors, label="Destination Country")

    departure = validate_date_iso(data.get("departureDate"), errors, "departureDate", not_past=True, today=today)
    ret = validate_date_iso(data.get("returnDate"), errors, "returnDate", not_past=True, today=today)
    if departure and ret and ret < departure:
        add_error(errors, "returnDate", "Return date cannot be before the departure date")

    travellers = data.get("travellers", 1)
    try:
        travellers = int(travellers)
    except (TypeError, ValueError):
        add_error(errors, "travellers", "travellers must be a whole number")
        travellers = 0
    if "travellers" not in errors and not 1 <= travellers <= MAX_TRAVELLERS:
        add_error(errors, "travellers", f"travellers must be between 1 and {MAX_TRAVELLERS}")
    data["travellers"] = travellers

    data["sumInsured"] = parse_amount(data, "sumInsured", errors, label="Sum Insured")
    require_true(data, "termsAndPolicyConsent", errors)

    raise_if_errors(errors, "Please fill in all required fields correctly")
    data["departureDate"] = departure
    data["returnDate"] = ret
    return data


def build_travel_metadata(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "productType": ProductType.TRAVEL.value,
        "suminsured": data.get("sumInsured"),
        "firstName": data.get("firstName"),
        "lastName": data.get("lastName"),
        "email": format_email(data.get("email")),
        "phoneNumber": data.get("phoneNumber"),
        "countryOrigin": data.get("originCountry"),
        "destination": data.get("destinationCountry"),
        "departureDate": _fmt(data.get("departureDate")),
        "returnDate": _fmt(data.get("returnDate")),
        "travellers": data.get("travellers"),
        "dateFormat": DATE_FORMAT,
        "locale": LOCALE,
    }


def _fmt(value: Optional[date]) -> Optional[str]:
    return value.strftime("%d %b %Y") if value else None
