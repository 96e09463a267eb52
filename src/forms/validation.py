"""Shared backend validation for quote, application and account submissions.

The frontend submits form payloads as dictionaries keyed by the form's
control names (`firstName`, `kraPin`, `dateOfDispatch`, ...). These
validators check presence and format without any server round-trip.

Field checks (`check_*`) return `None` for empty input, so optional fields
only fail on malformed values; `required` is enforced separately.

On validation failure, raise `FormValidationError` so the API can return HTTP 422
with structured `field_errors`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Iterable, Optional


@dataclass
class FormValidationError(Exception):
    """Exception raised for form validation failures.

    Attributes:
        field_errors: mapping of field name -> human-readable error message.
        message: optional top-level message.
    """

    field_errors: Dict[str, str]
    message: str = "Validation failed"

    def __str__(self) -> str:  # pragma: no cover
        return self.message


def _as_str(v: Any) -> str:
    return "" if v is None else str(v)


def _strip(v: Any) -> str:
    return _as_str(v).strip()


def add_error(errors: Dict[str, str], field: str, message: str) -> None:
    if field not in errors:
        errors[field] = message


def require_str(payload: Dict[str, Any], field: str, errors: Dict[str, str], *, label: Optional[str] = None) -> str:
    value = _strip(payload.get(field))
    if not value:
        add_error(errors, field, f"{label or field} is required")
    return value


def optional_str(payload: Dict[str, Any], field: str) -> str:
    return _strip(payload.get(field))


def require_true(payload: Dict[str, Any], field: str, errors: Dict[str, str], *, message: str = "You must agree to proceed.") -> bool:
    v = payload.get(field)
    if isinstance(v, bool):
        ok = v
    else:
        ok = _strip(v).lower() in ("true", "1", "yes", "y", "on")
    if not ok:
        add_error(errors, field, message)
    return ok


def parse_amount(payload: Dict[str, Any], field: str, errors: Dict[str, str], *, min_value: float = 1, label: Optional[str] = None) -> float:
    raw = _strip(payload.get(field)).replace(",", "")
    if not raw:
        add_error(errors, field, f"{label or field} is required")
        return 0.0
    try:
        val = float(raw)
    except ValueError:
        add_error(errors, field, f"{label or field} must be a number")
        return 0.0
    if val < min_value:
        add_error(errors, field, "Value must be greater than 0." if min_value == 1 else f"{label or field} must be at least {min_value:g}")
    return val


# ---------------------------------------------------------------------------
# Field format checks
# ---------------------------------------------------------------------------

IDF_NUMBER_RE = re.compile(r"^\d{2}NBOIM\d{9}$")
ID_NUMBER_RE = re.compile(r"^\d{8,9}$")
KRA_PIN_RE = re.compile(r"^[A-Z]\d{9}[A-Z]$")
NAME_RE = re.compile(r"^[A-Za-z]{3,}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\d{10}$")
MPESA_RE = re.compile(r"^(07\d{8}|011\d{6})$")
VESSEL_NAME_RE = re.compile(r"^[A-Za-z0-9\s]{3,}$")
UCR_NUMBER_RE = re.compile(r"^\d{2}[A-Z]{3}\d{9}[A-Z]\d{9}$")
INTERNATIONAL_PHONE_RE = re.compile(r"^[+]?\d{9,15}$")
POSTAL_CODE_RE = re.compile(r"^\d+$")


def _pattern_check(pattern: re.Pattern, message: str) -> Callable[[Any], Optional[str]]:
    def check(value: Any) -> Optional[str]:
        s = _as_str(value)
        if not s:
            return None
        return None if pattern.fullmatch(s) else message

    return check


check_idf_number = _pattern_check(IDF_NUMBER_RE, "IDF Number must be 2 digits + NBOIM + 9 digits (e.g., 24NBOIM000002014)")
check_id_number = _pattern_check(ID_NUMBER_RE, "ID Number must be 8-9 digits (e.g., 28184318)")
check_kra_pin = _pattern_check(KRA_PIN_RE, "KRA PIN must be 1 letter + 9 digits + 1 letter (e.g., A123456789B)")
check_first_name = _pattern_check(NAME_RE, "First Name must be at least 3 letters")
check_last_name = _pattern_check(NAME_RE, "Last Name must be at least 3 letters")
check_email = _pattern_check(EMAIL_RE, "Please enter a valid email address")
check_phone_number = _pattern_check(PHONE_RE, "Phone Number must be exactly 10 digits")
check_mpesa_number = _pattern_check(MPESA_RE, "M-Pesa Number must start with 07 (10 digits) or 011 (9 digits)")
check_vessel_name = _pattern_check(VESSEL_NAME_RE, "Vessel Name must be at least 3 characters (letters, numbers, and spaces)")
check_postal_code = _pattern_check(POSTAL_CODE_RE, "Postal code must contain only numbers.")


def check_ucr_number(value: Any) -> Optional[str]:
    s = _strip(value)
    if not s:
        return None
    return None if UCR_NUMBER_RE.match(s.upper()) else "Invalid UCR Number. Format: 12VNP011111123X0012345678."


def check_international_phone(value: Any) -> Optional[str]:
    s = re.sub(r"\s+", "", _as_str(value))
    if not s:
        return None
    return None if INTERNATIONAL_PHONE_RE.match(s) else "Invalid phone number. Format:0712345678"


def count_words(value: Any) -> int:
    return len(_strip(value).split())


def check_word_count(value: Any, *, min_words: int = 2, max_words: int = 100) -> Optional[str]:
    if not _strip(value):
        return None
    words = count_words(value)
    if words < min_words:
        return f"Minimum of {min_words} words is required."
    if words > max_words:
        return f"Maximum of {max_words} words is allowed."
    return None


def apply_check(payload: Dict[str, Any], field: str, check: Callable[[Any], Optional[str]], errors: Dict[str, str], *, required: bool = False, label: Optional[str] = None) -> str:
    """Run a format check on one payload field; with `required`, empty input is an error too."""
    value = payload.get(field)
    text = _strip(value)
    if not text:
        if required:
            add_error(errors, field, f"{label or field} is required")
        return text
    message = check(value)
    if message:
        add_error(errors, field, message)
    return text


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

def parse_iso_date(value: Any) -> Optional[date]:
    s = _strip(value)
    if not s:
        return None
    return date.fromisoformat(s[:10])


def validate_date_iso(value: Any, errors: Dict[str, str], field: str, *, required: bool = True, not_past: bool = False, today: Optional[date] = None) -> Optional[date]:
    raw = _strip(value)
    if not raw:
        if required:
            add_error(errors, field, f"{field} is required")
        return None
    try:
        d = date.fromisoformat(raw[:10])
    except ValueError:
        add_error(errors, field, f"{field} must be a valid date (YYYY-MM-DD)")
        return None
    if not_past and d < (today or date.today()):
        add_error(errors, field, "Date cannot be in the past.")
    return d


def validate_date_order(start: Optional[date], end: Optional[date], errors: Dict[str, str], field: str) -> None:
    """Arrival must not precede dispatch; the error is reported against the later field."""
    if start and end and end < start:
        add_error(errors, field, "Estimated arrival cannot be before the date of dispatch")


def validate_in(value: Any, allowed: Iterable[str], errors: Dict[str, str], field: str, *, required: bool = True) -> str:
    raw = _strip(value)
    if not raw:
        if required:
            add_error(errors, field, f"{field} is required")
        return raw
    if raw not in set(allowed):
        add_error(errors, field, f"{field} has an invalid value")
    return raw


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

_PASSWORD_RULES = (
    (re.compile(r"\d"), "at least one number"),
    (re.compile(r"[A-Z]"), "at least one uppercase letter"),
    (re.compile(r"[a-z]"), "at least one lowercase letter"),
    (re.compile(r"[#?!@$%^&*-]"), "at least one special character (#?!@$%^&*-)"),
)
PASSWORD_MIN_LENGTH = 8


def check_password_strength(value: Any) -> Optional[str]:
    s = _as_str(value)
    if not s:
        return None
    missing = [label for pattern, label in _PASSWORD_RULES if not pattern.search(s)]
    if len(s) < PASSWORD_MIN_LENGTH:
        missing.append(f"at least {PASSWORD_MIN_LENGTH} characters")
    if not missing:
        return None
    return "Password must contain " + ", ".join(missing)


def validate_password_confirmation(payload: Dict[str, Any], errors: Dict[str, str], *, field: str = "password", confirm_field: str = "passwordConfirm") -> None:
    if _as_str(payload.get(field)) != _as_str(payload.get(confirm_field)):
        add_error(errors, confirm_field, "Passwords do not match")


def raise_if_errors(errors: Dict[str, str], message: str = "Please correct the highlighted fields") -> None:
    if errors:
        raise FormValidationError(field_errors=errors, message=message)
