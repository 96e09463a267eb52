from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from src.api.dependencies import get_config, get_payment_owner, get_payment_poller, get_payment_registry
from src.integrations.contracts.interfaces import PaymentAttempt
from src.integrations.policy.payment_service import PaymentRegistry, StkPaymentPoller, payment_outcome

api = APIRouter()
payments_api = api


class StkPushBody(BaseModel):
    reference: str = Field(..., description="Payment reference (the application's transactionId)")
    phone_number: str = Field(..., description="M-Pesa number that receives the payment prompt")
    amount: float = Field(..., description="Amount payable, normally the quote's net premium")


def _outcome(attempt: PaymentAttempt, config) -> Dict[str, Any]:
    return payment_outcome(
        attempt,
        success_redirect=config.payments.success_redirect,
        redirect_delay_seconds=config.payments.redirect_delay_seconds,
    )


@api.post("/stk-push", tags=["Payments"])
async def start_stk_push(
    body: StkPushBody,
    poller: StkPaymentPoller = Depends(get_payment_poller),
    registry: PaymentRegistry = Depends(get_payment_registry),
    owner: str = Depends(get_payment_owner),
    config=Depends(get_config),
):
    """
    Send the STK push and start confirming it in the background.
    Clients poll `GET /payments/{reference}` until `status` leaves PENDING.
    """
    attempt = await registry.start(poller, body.phone_number, body.amount, body.reference, owner=owner)
    return _outcome(attempt, config)


@api.get("/{reference}", tags=["Payments"])
async def get_payment(
    reference: str,
    registry: PaymentRegistry = Depends(get_payment_registry),
    owner: str = Depends(get_payment_owner),
    config=Depends(get_config),
):
    attempt = registry.get(reference, owner=owner)
    if attempt is None:
        raise HTTPException(status_code=404, detail="Payment not found")
    return _outcome(attempt, config)


@api.delete("/{reference}", tags=["Payments"])
async def cancel_payment(
    reference: str,
    registry: PaymentRegistry = Depends(get_payment_registry),
    owner: str = Depends(get_payment_owner),
    config=Depends(get_config),
):
    attempt = await registry.cancel(reference, owner=owner)
    if attempt is None:
        raise HTTPException(status_code=404, detail="Payment not found")
    return _outcome(attempt, config)
