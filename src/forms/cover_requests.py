"""Manual-underwriting requests raised from the quote page.

Export shipments (origin fixed to Kenya) and high-risk imports
(destination fixed to Kenya) cannot be quoted online; the buyer fills a
short form and an underwriter follows up.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from src.forms.input_formatters import format_email, format_name, format_phone_number, normalize_payload
from src.forms.validation import (
    apply_check,
    check_email,
    check_first_name,
    check_last_name,
    check_phone_number,
    check_word_count,
    parse_amount,
    raise_if_errors,
    require_str,
    require_true,
    validate_date_iso,
)

HOME_COUNTRY = "Kenya"

EXPORT_REQUEST = "export"
HIGH_RISK_REQUEST = "high_risk"

ACK_MESSAGES = {
    EXPORT_REQUEST: "Export request submitted. Our underwriter will contact you.",
    HIGH_RISK_REQUEST: "High-risk request submitted for manual review.",
}

_FORMATTERS = {
    "firstName": format_name,
    "lastName": format_name,
    "email": format_email,
    "phoneNumber": format_phone_number,
}


def validate_cover_request(kind: str, payload: Dict[str, Any], *, today: Optional[date] = None) -> Dict[str, Any]:
    if kind not in ACK_MESSAGES:
        raise ValueError(f"Unknown cover request kind: {kind}")

    data = normalize_payload(payload, _FORMATTERS)
    # Locked fields: whatever the client sent is replaced.
    if kind == EXPORT_REQUEST:
        data["originCountry"] = HOME_COUNTRY
    else:
        data["destinationCountry"] = HOME_COUNTRY

    errors: Dict[str, str] = {}
    apply_check(data, "firstName", check_first_name, errors, required=True, label="First Name")
    apply_check(data, "lastName", check_last_name, errors, required=True, label="Last Name")
    apply_check(data, "email", check_email, errors, required=True, label="Email")
    apply_check(data, "phoneNumber", check_phone_number, errors, required=True, label="Phone Number")
    require_str(data, "originCountry", errors, label="Origin Country")
    require_str(data, "destinationCountry", errors, label="Destination Country")
    data["shipmentDate"] = validate_date_iso(data.get("shipmentDate"), errors, "shipmentDate", not_past=True, today=today)
    data["sumInsured"] = parse_amount(data, "sumInsured", errors, label="Sum Insured")
    apply_check(data, "goodsDescription", check_word_count, errors, required=True, label="Goods Description")
    require_true(data, "termsAndPolicyConsent", errors)

    raise_if_errors(errors, "Please fill in all required fields correctly.")
    return data
