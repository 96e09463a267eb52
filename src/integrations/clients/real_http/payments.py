"""
Real M-Pesa HTTP Client.

The broker API fronts the Daraja STK-push endpoints; both calls are GETs
with query parameters.
"""

from __future__ import annotations

from typing import Optional

from src.integrations.clients.real_http.broker_api import BrokerApiClient
from src.integrations.contracts.interfaces import (
    PaymentStatusResponse,
    StkPushGateway,
    StkPushRequest,
    StkPushResponse,
)
from src.integrations.policy.response_wrappers import (
    normalize_payment_status_response,
    normalize_stk_push_response,
)


class RealMpesaClient(StkPushGateway):
    def __init__(
        self,
        api: BrokerApiClient,
        token: Optional[str] = None,
        stk_push_path: str = "/payments/stkpush",
        validate_path: str = "/payments/validate",
    ) -> None:
        self.api = api
        self.token = token
        self.stk_push_path = stk_push_path
        self.validate_path = validate_path

    async def stk_push(self, request: StkPushRequest) -> StkPushResponse:
        # Sent once: every request prompts the handset.
        data = await self.api.get(
            self.stk_push_path,
            token=self.token,
            params={"phone": request.phone_number, "amount": request.amount, "refNo": request.reference},
            retries=0,
        )
        return normalize_stk_push_response(data)

    async def query_status(self, merchant_request_id: str, checkout_request_id: str) -> PaymentStatusResponse:
        data = await self.api.get(
            self.validate_path,
            token=self.token,
            params={"merchantId": merchant_request_id, "requestId": checkout_request_id},
        )
        return normalize_payment_status_response(data)
