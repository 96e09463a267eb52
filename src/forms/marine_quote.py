"""Marine cargo quotation form: validation and the backend `metadata` payload."""

from __future__ import annotations

from typing import Any, Dict, Optional

from src.forms.input_formatters import format_email, format_name, format_phone_number, normalize_payload
from src.forms.validation import (
    apply_check,
    check_email,
    check_first_name,
    check_last_name,
    check_phone_number,
    parse_amount,
    raise_if_errors,
    require_str,
    require_true,
    validate_in,
)
from src.integrations.contracts.interfaces import ShippingMode

MARINE_PRODUCT_ID = 2416
DEFAULT_DESTINATION = "Kenya"
DEFAULT_CATEGORY = "ICC (A) All Risks"
DATE_FORMAT = "dd MMM yyyy"
LOCALE = "en_US"

_FORMATTERS = {
    "firstName": format_name,
    "lastName": format_name,
    "email": format_email,
    "phoneNumber": format_phone_number,
}


def validate_marine_quote(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a marine quote submission and return the normalized form values."""
    data = normalize_payload(payload, _FORMATTERS)
    errors: Dict[str, str] = {}

    apply_check(data, "firstName", check_first_name, errors, required=True, label="First Name")
    apply_check(data, "lastName", check_last_name, errors, required=True, label="Last Name")
    apply_check(data, "email", check_email, errors, required=True, label="Email")
    apply_check(data, "phoneNumber", check_phone_number, errors, required=True, label="Phone Number")

    validate_in(data.get("modeOfShipment"), [m.value for m in ShippingMode], errors, "modeOfShipment")
    data.setdefault("marineCategory", DEFAULT_CATEGORY)
    require_str(data, "marineCategory", errors, label="Category")
    require_str(data, "marineCargoType", errors, label="Cargo Type")
    require_str(data, "marinePackagingType", errors, label="Packaging Type")
    require_str(data, "tradeType", errors, label="Trade Type")
    require_str(data, "origin", errors, label="Country of Origin")
    data["sumInsured"] = parse_amount(data, "sumInsured", errors, label="Sum Insured")
    require_true(data, "termsAndPolicyConsent", errors)

    if not str(data.get("destination") or "").strip():
        data["destination"] = DEFAULT_DESTINATION
    data["selfAsImporter"] = bool(data.get("selfAsImporter", False))

    raise_if_errors(errors, "Please fill in all required fields correctly")
    return data


def build_quote_metadata(
    data: Dict[str, Any],
    *,
    category_id: Optional[Any] = None,
    cargo_type_id: Optional[Any] = None,
    edit_quote_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Shape validated form values into the `metadata` part of the quote multipart request.

    `category_id` / `cargo_type_id` are the backend ids for the chosen
    category and cargo type names; callers that only have names pass the
    values straight through (`marineCategoryId`, `marineCargoTypeId`).
    """
    metadata: Dict[str, Any] = {
        "suminsured": data.get("sumInsured"),
        "firstName": data.get("firstName"),
        "lastName": data.get("lastName"),
        "email": format_email(data.get("email")),
        "phoneNumber": data.get("phoneNumber"),
        "shippingid": data.get("modeOfShipment"),
        "tradeType": data.get("tradeType"),
        "countryOrigin": data.get("origin"),
        "destination": data.get("destination") or DEFAULT_DESTINATION,
        "dateFormat": DATE_FORMAT,
        "locale": LOCALE,
        "productId": MARINE_PRODUCT_ID,
        "packagetypeid": data.get("marinePackagingType"),
        "categoryid": category_id if category_id is not None else data.get("marineCategoryId"),
        "cargoId": cargo_type_id if cargo_type_id is not None else data.get("marineCargoTypeId"),
    }
    if edit_quote_id:
        metadata["editMode"] = True
        metadata["originalQuoteId"] = edit_quote_id
    return metadata


def build_compute_payload(sum_insured: float, cargo_type: Any, shipping_mode: Any) -> Dict[str, Any]:
    return {
        "suminsured": sum_insured,
        "cargotype": cargo_type,
        "shipping": shipping_mode,
        "locale": LOCALE,
    }
