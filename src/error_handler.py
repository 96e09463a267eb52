"""Classification and user-facing reporting of failures surfaced by the API."""
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from src.integrations.clients.real_http.broker_api import BrokerApiError, extract_error_message

logger = logging.getLogger(__name__)

NETWORK_ERROR_MESSAGE = "Network connection problem. Please check your internet connection and try again."
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"


class ErrorCategory(str, Enum):
    NETWORK = "network"
    VALIDATION = "validation"
    GENERIC = "generic"


def _status_of(exc: Exception) -> Optional[int]:
    status = getattr(exc, "status", None)
    return status if isinstance(status, int) else None


def is_network_error(exc: Exception) -> bool:
    if _status_of(exc) == 0:
        return True
    if type(exc).__name__ in ("NetworkError", "ConnectError"):
        return True
    message = str(exc)
    return "Network" in message or "fetch" in message


def is_validation_error(exc: Exception) -> bool:
    status = _status_of(exc)
    return status is not None and 400 <= status < 500


def classify(exc: Exception) -> ErrorCategory:
    if is_network_error(exc):
        return ErrorCategory.NETWORK
    if is_validation_error(exc):
        return ErrorCategory.VALIDATION
    return ErrorCategory.GENERIC


def user_message(exc: Exception) -> str:
    if isinstance(exc, BrokerApiError):
        if exc.payload is not None:
            return extract_error_message(exc.payload, exc.status, fallback=exc.message)
        return exc.message
    return extract_error_message(None, _status_of(exc) or 0, fallback=str(exc) or None)


class GlobalErrorHandler:
    def __init__(self, tracker=None, *, is_production: bool = False, debug: bool = False):
        self.tracker = tracker
        self.is_production = is_production
        self.debug = debug

    def handle_exception(self, exc: Exception, context: Dict[str, Any] = None) -> Dict[str, Any]:
        """
        Build the notification payload for `exc`, log it and, in production,
        forward the report to the external tracker.
        """
        category = classify(exc)
        if category == ErrorCategory.NETWORK:
            message, severity = NETWORK_ERROR_MESSAGE, "error"
        elif category == ErrorCategory.VALIDATION:
            message, severity = user_message(exc), "warning"
        else:
            message, severity = user_message(exc), "error"

        report = {
            "message": message,
            "severity": severity,
            "category": category.value,
            "status": _status_of(exc),
            "url": getattr(exc, "url", "") or "",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **(context or {}),
        }

        logger.error("Request failed (%s): %s", category.value, str(exc) or UNEXPECTED_ERROR_MESSAGE, exc_info=self.debug)
        if self.is_production and self.tracker is not None:
            self.tracker.send(report)
        return report
