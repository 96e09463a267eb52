"""
Payment contract: classification rules for M-Pesa STK-push status queries.

Both clients/mocks/mpesa.py and clients/real_http/payments.py return
`PaymentStatusResponse`; the poller only ever looks at it through
`classify_status` so the terminal rules live in one place.
"""

from typing import Optional

from .interfaces import PaymentAttempt, PaymentStatus, PaymentStatusResponse

SUCCESS_RESULT_CODE = 0

PAYMENT_FAILED_MESSAGE = "Payment was not completed. Please try again."
PAYMENT_ERROR_MESSAGE = "We could not confirm your payment. Please try again."
PAYMENT_CANCELLED_MESSAGE = "Payment confirmation was cancelled."


def classify_status(response: PaymentStatusResponse) -> PaymentStatus:
    """Map one status query onto the payment state machine.

    - resultCode 0 and no M-Pesa code: still waiting on the subscriber
    - resultCode 0 with an M-Pesa code: confirmed
    - any other resultCode: declined, timed out or cancelled on the handset
    """
    if response.result_code != SUCCESS_RESULT_CODE:
        return PaymentStatus.FAILED
    if response.mpesa_code:
        return PaymentStatus.SUCCESS
    return PaymentStatus.PENDING


def apply_status(attempt: PaymentAttempt, response: PaymentStatusResponse) -> PaymentStatus:
    status = classify_status(response)
    attempt.status = status
    if status == PaymentStatus.SUCCESS:
        attempt.mpesa_receipt = response.mpesa_code
        attempt.message = "Payment received"
    elif status == PaymentStatus.FAILED:
        attempt.message = str(response.raw.get("resultDesc") or PAYMENT_FAILED_MESSAGE)
    return status


def mask_phone(phone_number: Optional[str]) -> str:
    digits = (phone_number or "").strip()
    if len(digits) <= 4:
        return "*" * len(digits)
    return f"{digits[:2]}{'*' * (len(digits) - 4)}{digits[-2:]}"
