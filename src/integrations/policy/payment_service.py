"""
M-Pesa STK-push payment confirmation.

Flow:
1. `initiate` sends one STK push for the application's payment reference.
2. `poll` waits one interval, queries the status, and repeats while the
   answer is "pending". The terminal answer (success or failure) is
   consumed before the loop stops.
3. A transport or payload error aborts polling with a retryable failure.
4. Cancelling the polling task marks the attempt CANCELLED.

The interval defaults to 5 seconds and there is no attempt ceiling unless
`max_attempts` is configured.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from src.forms.input_formatters import format_mpesa_number
from src.forms.validation import FormValidationError, check_mpesa_number
from src.integrations.clients.real_http.broker_api import BrokerApiError
from src.integrations.contracts.interfaces import (
    PaymentAttempt,
    PaymentStatus,
    StkPushGateway,
    StkPushRequest,
    utc_now,
)
from src.integrations.contracts.payments import (
    PAYMENT_CANCELLED_MESSAGE,
    PAYMENT_ERROR_MESSAGE,
    apply_status,
    mask_phone,
)
from src.integrations.policy.response_wrappers import IntegrationResponseError

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]

TIMED_OUT_MESSAGE = "We did not receive a confirmation from M-Pesa in time. Please try again."


class PaymentInProgressError(RuntimeError):
    """A confirmation loop is already running for this payment reference."""


class StkPaymentPoller:
    def __init__(
        self,
        gateway: StkPushGateway,
        *,
        interval_seconds: float = 5.0,
        max_attempts: Optional[int] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.gateway = gateway
        self.interval_seconds = interval_seconds
        self.max_attempts = max_attempts
        self._sleep = sleep

    async def initiate(self, phone_number: str, amount: float, reference: str) -> PaymentAttempt:
        phone = format_mpesa_number(phone_number)
        if not phone:
            raise FormValidationError(
                field_errors={"mpesaNumber": "M-Pesa Number is required"},
                message="Enter the M-Pesa number to charge",
            )
        message = check_mpesa_number(phone)
        if message:
            raise FormValidationError(field_errors={"mpesaNumber": message}, message=message)
        if not reference:
            raise FormValidationError(field_errors={"reference": "reference is required"}, message="A payment reference is required")
        if amount <= 0:
            raise FormValidationError(field_errors={"amount": "Value must be greater than 0."}, message="Invalid amount")

        attempt = PaymentAttempt(reference=reference, phone_number=phone, amount=amount)
        logger.info("Sending STK push ref=%s phone=%s amount=%s", reference, mask_phone(phone), amount)
        pushed = await self.gateway.stk_push(StkPushRequest(phone_number=phone, amount=amount, reference=reference))
        attempt.merchant_request_id = pushed.merchant_request_id
        attempt.checkout_request_id = pushed.checkout_request_id
        return attempt

    async def poll(self, attempt: PaymentAttempt) -> PaymentAttempt:
        try:
            while True:
                await self._sleep(self.interval_seconds)
                response = await self.gateway.query_status(attempt.merchant_request_id, attempt.checkout_request_id)
                attempt.attempts += 1
                status = apply_status(attempt, response)
                logger.debug("Payment %s query %d → %s", attempt.reference, attempt.attempts, status.value)

                if status != PaymentStatus.PENDING:
                    break
                if self.max_attempts is not None and attempt.attempts >= self.max_attempts:
                    attempt.status = PaymentStatus.FAILED
                    attempt.message = TIMED_OUT_MESSAGE
                    break
        except asyncio.CancelledError:
            attempt.status = PaymentStatus.CANCELLED
            attempt.message = PAYMENT_CANCELLED_MESSAGE
            attempt.finished_at = utc_now()
            logger.info("Payment %s polling cancelled after %d queries", attempt.reference, attempt.attempts)
            raise
        except (BrokerApiError, IntegrationResponseError) as e:
            logger.error("Payment %s polling aborted: %s", attempt.reference, e)
            attempt.status = PaymentStatus.FAILED
            attempt.message = PAYMENT_ERROR_MESSAGE

        attempt.finished_at = utc_now()
        logger.info(
            "Payment %s finished: %s after %d queries", attempt.reference, attempt.status.value, attempt.attempts
        )
        return attempt

    async def pay(self, phone_number: str, amount: float, reference: str) -> PaymentAttempt:
        attempt = await self.initiate(phone_number, amount, reference)
        return await self.poll(attempt)


def payment_outcome(
    attempt: PaymentAttempt,
    *,
    success_redirect: str = "/dashboard",
    redirect_delay_seconds: float = 1.0,
) -> Dict[str, Any]:
    """Client-facing view of an attempt, with the redirect hint once it succeeded."""
    outcome: Dict[str, Any] = {
        "reference": attempt.reference,
        "status": attempt.status.value,
        "success": attempt.status == PaymentStatus.SUCCESS,
        "method": "stk",
        "mpesaReceipt": attempt.mpesa_receipt,
        "attempts": attempt.attempts,
        "message": attempt.message,
        "phone": mask_phone(attempt.phone_number),
        "amount": attempt.amount,
        "can_retry": attempt.status in (PaymentStatus.FAILED, PaymentStatus.CANCELLED),
        "redirect": None,
        "redirect_delay_seconds": None,
    }
    if attempt.status == PaymentStatus.SUCCESS:
        outcome["redirect"] = success_redirect
        outcome["redirect_delay_seconds"] = redirect_delay_seconds
    return outcome


class PaymentRegistry:
    """Background confirmation loops keyed by payment reference.

    A reference is reserved before its STK push is sent, so a second start
    for the same reference is refused while the first one is in flight.
    Each attempt belongs to the session that started it; other sessions
    cannot see or cancel it. Finished attempts are kept for
    `retention_seconds` and at most `max_finished` of them are held.
    """

    def __init__(
        self,
        *,
        retention_seconds: float = 3600.0,
        max_finished: int = 1000,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.retention = timedelta(seconds=retention_seconds)
        self.max_finished = max_finished
        self._clock = clock
        self._attempts: Dict[str, PaymentAttempt] = {}
        self._owners: Dict[str, Optional[str]] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self._starting: Set[str] = set()

    async def start(
        self,
        poller: StkPaymentPoller,
        phone_number: str,
        amount: float,
        reference: str,
        *,
        owner: Optional[str] = None,
    ) -> PaymentAttempt:
        self.evict_finished()
        current = self._attempts.get(reference)
        if reference in self._starting or (current is not None and not current.is_terminal):
            raise PaymentInProgressError(f"Payment {reference} is already awaiting confirmation")
        if current is not None and self._owners.get(reference) != owner:
            raise PaymentInProgressError(f"Payment {reference} belongs to another session")

        self._starting.add(reference)
        try:
            attempt = await poller.initiate(phone_number, amount, reference)
        finally:
            self._starting.discard(reference)

        self._attempts[reference] = attempt
        self._owners[reference] = owner
        task = asyncio.create_task(poller.poll(attempt), name=f"stk-poll-{reference}")
        self._tasks[reference] = task
        task.add_done_callback(functools.partial(self._forget_task, reference))
        return attempt

    def _forget_task(self, reference: str, task: asyncio.Task) -> None:
        if self._tasks.get(reference) is task:
            del self._tasks[reference]

    def get(self, reference: str, *, owner: Optional[str] = None) -> Optional[PaymentAttempt]:
        self.evict_finished()
        if reference not in self._attempts or self._owners.get(reference) != owner:
            return None
        return self._attempts[reference]

    async def cancel(self, reference: str, *, owner: Optional[str] = None) -> Optional[PaymentAttempt]:
        if self.get(reference, owner=owner) is None:
            return None
        return await self._cancel(reference)

    async def _cancel(self, reference: str) -> Optional[PaymentAttempt]:
        task = self._tasks.get(reference)
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        attempt = self._attempts.get(reference)
        # A task cancelled before its first step never reaches poll()'s handler.
        if attempt is not None and not attempt.is_terminal:
            attempt.status = PaymentStatus.CANCELLED
            attempt.message = PAYMENT_CANCELLED_MESSAGE
            attempt.finished_at = utc_now()
        return attempt

    def evict_finished(self) -> int:
        """Drop finished attempts past retention, then the oldest beyond `max_finished`."""
        now = self._clock()
        finished = sorted(
            (attempt.finished_at or attempt.started_at, reference)
            for reference, attempt in self._attempts.items()
            if attempt.is_terminal and reference not in self._tasks
        )
        expired = [reference for finished_at, reference in finished if now - finished_at >= self.retention]
        remaining = [reference for _, reference in finished[len(expired):]]
        if len(remaining) > self.max_finished:
            expired.extend(remaining[: len(remaining) - self.max_finished])

        for reference in expired:
            del self._attempts[reference]
            self._owners.pop(reference, None)
        if expired:
            logger.debug("Evicted %d finished payment attempts", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._attempts)

    async def shutdown(self) -> None:
        for reference in list(self._tasks):
            await self._cancel(reference)
