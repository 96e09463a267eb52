"""Input normalizers applied to raw form values before validation.

Normalizers only fix case and drop separators (whitespace, hyphens). They
never truncate or remove other characters, so an over-long or malformed
value reaches the validators unchanged and is rejected there.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Dict

_SEPARATORS = re.compile(r"[\s-]+")
_WHITESPACE = re.compile(r"\s+")


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def strip_separators(value: Any) -> str:
    return _SEPARATORS.sub("", _text(value))


def format_id_number(value: Any) -> str:
    return strip_separators(value)


def format_phone_number(value: Any) -> str:
    return strip_separators(value)


def format_mpesa_number(value: Any) -> str:
    s = strip_separators(value)
    if s.isdigit() and not s.startswith("0"):
        s = "0" + s
    return s


def format_kra_pin(value: Any) -> str:
    return strip_separators(value).upper()


def format_idf_number(value: Any) -> str:
    return strip_separators(value).upper()


def format_ucr_number(value: Any) -> str:
    return _text(value).upper()


def format_name(value: Any) -> str:
    s = _text(value)
    return s[:1].upper() + s[1:].lower() if s else s


def format_vessel_name(value: Any) -> str:
    s = _WHITESPACE.sub(" ", _text(value))
    return " ".join(word[:1].upper() + word[1:].lower() for word in s.split(" ") if word)


def format_description(value: Any) -> str:
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), _text(value))


def format_email(value: Any) -> str:
    return _WHITESPACE.sub("", _text(value))


def format_amount(value: Any) -> str:
    """Thousands separators; no decimals for whole numbers, otherwise two."""
    if value is None or value == "":
        return "0"
    try:
        number = float(value)
    except (TypeError, ValueError):
        return str(value)
    if number == int(number):
        return f"{int(number):,}"
    return f"{number:,.2f}"


def normalize_payload(payload: Dict[str, Any], formatters: Dict[str, Callable[[Any], str]]) -> Dict[str, Any]:
    """Return a copy of `payload` with each present field passed through its formatter."""
    out = dict(payload)
    for field, formatter in formatters.items():
        if out.get(field) is not None:
            out[field] = formatter(out[field])
    return out
