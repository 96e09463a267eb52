"""
M-Pesa STK push — MOCK client.

⚠️  This is a mock implementation for development and testing.
    No prompt reaches a handset. Each pushed request replays a scripted
    sequence of status answers, one per status query, so the whole
    polling loop can be exercised deterministically.
"""

import logging
import uuid
from typing import Dict, List, Optional, Sequence

from src.integrations.clients.real_http.broker_api import BrokerApiError
from src.integrations.contracts.interfaces import (
    PaymentStatusResponse,
    StkPushGateway,
    StkPushRequest,
    StkPushResponse,
)
from src.integrations.contracts.payments import mask_phone

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Scripted answers
# ---------------------------------------------------------------------------

def pending() -> PaymentStatusResponse:
    return PaymentStatusResponse(result_code=0, mpesa_code=None, raw={"resultCode": 0})


def succeeded(mpesa_code: Optional[str] = None) -> PaymentStatusResponse:
    code = mpesa_code or f"Q{uuid.uuid4().hex[:9].upper()}"
    return PaymentStatusResponse(result_code=0, mpesa_code=code, raw={"resultCode": 0, "mpesaCode": code})


def failed(result_code: int = 1032, description: str = "Request cancelled by user") -> PaymentStatusResponse:
    return PaymentStatusResponse(
        result_code=result_code,
        mpesa_code=None,
        raw={"resultCode": result_code, "resultDesc": description},
    )


DEFAULT_SCRIPT: Sequence[PaymentStatusResponse] = (pending(), pending(), succeeded("QKA1B2C3D4"))


# ---------------------------------------------------------------------------
# Mock client
# ---------------------------------------------------------------------------

class MpesaMockClient(StkPushGateway):
    """
    Mock STK-push gateway.

    Parameters
    ----------
    script : sequence of PaymentStatusResponse
        Answers returned by successive `query_status` calls for a request.
        The last answer repeats once the script is exhausted.
    push_error : Exception, optional
        Raised by `stk_push` instead of accepting the request.
    query_error_after : int, optional
        Raise a transport-level `BrokerApiError` on this query number (1-based), to simulate
        the network dropping mid-poll.
    """

    def __init__(
        self,
        script: Sequence[PaymentStatusResponse] = DEFAULT_SCRIPT,
        push_error: Optional[Exception] = None,
        query_error_after: Optional[int] = None,
    ):
        if not script:
            raise ValueError("script must contain at least one status answer")
        self._script: List[PaymentStatusResponse] = list(script)
        self._push_error = push_error
        self._query_error_after = query_error_after

        # In-memory stores (reset on restart)
        self.pushes: Dict[str, StkPushRequest] = {}
        self.query_counts: Dict[str, int] = {}

        logger.info("[MPESA MOCK] Client initialised (script length=%d)", len(self._script))

    async def stk_push(self, request: StkPushRequest) -> StkPushResponse:
        if self._push_error is not None:
            raise self._push_error

        merchant_request_id = f"MR-{uuid.uuid4().hex[:10].upper()}"
        checkout_request_id = f"ws_CO_{uuid.uuid4().hex[:16].upper()}"
        self.pushes[checkout_request_id] = request
        self.query_counts[checkout_request_id] = 0
        logger.info(
            "[MPESA MOCK] STK push ref=%s phone=%s amount=%s → %s",
            request.reference, mask_phone(request.phone_number), request.amount, checkout_request_id,
        )
        return StkPushResponse(
            merchant_request_id=merchant_request_id,
            checkout_request_id=checkout_request_id,
            raw={"merchantRequestId": merchant_request_id, "checkOutRequestId": checkout_request_id},
        )

    async def query_status(self, merchant_request_id: str, checkout_request_id: str) -> PaymentStatusResponse:
        if checkout_request_id not in self.query_counts:
            # Unknown request: the real gateway keeps answering "pending" until expiry.
            return pending()

        self.query_counts[checkout_request_id] += 1
        count = self.query_counts[checkout_request_id]
        if self._query_error_after is not None and count >= self._query_error_after:
            raise BrokerApiError("Network error: [MPESA MOCK] simulated connection drop", status=0)

        answer = self._script[min(count, len(self._script)) - 1]
        logger.info("[MPESA MOCK] Query %d for %s → resultCode=%s", count, checkout_request_id, answer.result_code)
        return answer
