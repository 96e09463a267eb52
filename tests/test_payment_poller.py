import asyncio
from datetime import timedelta

import httpx
import pytest

from src.forms.validation import FormValidationError
from src.integrations.clients.mocks.mpesa import MpesaMockClient, failed, pending, succeeded
from src.integrations.clients.real_http.broker_api import BrokerApiClient, BrokerApiError
from src.integrations.clients.real_http.payments import RealMpesaClient
from src.integrations.contracts.interfaces import (
    PaymentAttempt,
    PaymentStatus,
    PaymentStatusResponse,
    StkPushRequest,
    utc_now,
)
from src.integrations.contracts.payments import (
    PAYMENT_CANCELLED_MESSAGE,
    PAYMENT_ERROR_MESSAGE,
    PAYMENT_FAILED_MESSAGE,
    apply_status,
    classify_status,
    mask_phone,
)
from src.integrations.policy.payment_service import (
    TIMED_OUT_MESSAGE,
    PaymentInProgressError,
    PaymentRegistry,
    StkPaymentPoller,
    payment_outcome,
)


class RecordingSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


def _poller(gateway, **kwargs):
    sleep = RecordingSleep()
    return StkPaymentPoller(gateway, sleep=sleep, **kwargs), sleep


@pytest.mark.asyncio
async def test_pending_then_success_stops_on_terminal_answer():
    gateway = MpesaMockClient([pending(), pending(), succeeded("QKA1B2C3D4")])
    poller, sleep = _poller(gateway)

    attempt = await poller.pay("0712345678", 2551.25, "TXN-1")

    assert attempt.status == PaymentStatus.SUCCESS
    assert attempt.attempts == 3
    assert attempt.mpesa_receipt == "QKA1B2C3D4"
    assert attempt.finished_at is not None
    assert sleep.calls == [5.0, 5.0, 5.0]
    assert gateway.query_counts[attempt.checkout_request_id] == 3


@pytest.mark.asyncio
async def test_failure_answer_is_consumed_and_stops_polling():
    gateway = MpesaMockClient([pending(), failed(1032, "Request cancelled by user"), succeeded()])
    poller, _ = _poller(gateway)

    attempt = await poller.pay("0712345678", 100, "TXN-2")

    assert attempt.status == PaymentStatus.FAILED
    assert attempt.attempts == 2
    assert attempt.message == "Request cancelled by user"
    assert gateway.query_counts[attempt.checkout_request_id] == 2


@pytest.mark.asyncio
async def test_transport_error_aborts_with_retryable_failure():
    gateway = MpesaMockClient([pending()], query_error_after=2)
    poller, _ = _poller(gateway)

    attempt = await poller.pay("0712345678", 100, "TXN-3")

    assert attempt.status == PaymentStatus.FAILED
    assert attempt.message == PAYMENT_ERROR_MESSAGE
    assert attempt.attempts == 1
    assert payment_outcome(attempt)["can_retry"] is True


@pytest.mark.asyncio
async def test_max_attempts_bounds_the_loop():
    gateway = MpesaMockClient([pending()])
    poller, sleep = _poller(gateway, interval_seconds=0.5, max_attempts=4)

    attempt = await poller.pay("0712345678", 100, "TXN-4")

    assert attempt.status == PaymentStatus.FAILED
    assert attempt.message == TIMED_OUT_MESSAGE
    assert attempt.attempts == 4
    assert sleep.calls == [0.5] * 4


@pytest.mark.asyncio
async def test_initiate_normalizes_and_validates_mpesa_number():
    gateway = MpesaMockClient()
    poller, _ = _poller(gateway)

    attempt = await poller.initiate("712 345 678", 100, "TXN-5")
    assert attempt.phone_number == "0712345678"
    assert gateway.pushes[attempt.checkout_request_id].reference == "TXN-5"

    with pytest.raises(FormValidationError) as exc_info:
        await poller.initiate("0812345678", 100, "TXN-5")
    assert "mpesaNumber" in exc_info.value.field_errors

    with pytest.raises(FormValidationError) as exc_info:
        await poller.initiate("", 100, "TXN-5")
    assert exc_info.value.field_errors == {"mpesaNumber": "M-Pesa Number is required"}


@pytest.mark.asyncio
async def test_initiate_rejects_missing_reference_and_amount():
    poller, _ = _poller(MpesaMockClient())

    with pytest.raises(FormValidationError) as exc_info:
        await poller.initiate("0712345678", 100, "")
    assert "reference" in exc_info.value.field_errors

    with pytest.raises(FormValidationError) as exc_info:
        await poller.initiate("0712345678", 0, "TXN-6")
    assert "amount" in exc_info.value.field_errors


@pytest.mark.asyncio
async def test_registry_runs_confirmation_in_background():
    registry = PaymentRegistry()
    poller, _ = _poller(MpesaMockClient([pending(), succeeded("QXYZ")]))

    attempt = await registry.start(poller, "0712345678", 100, "TXN-7")
    assert attempt.status == PaymentStatus.PENDING

    for _ in range(10):
        await asyncio.sleep(0)
        if registry.get("TXN-7").is_terminal:
            break

    assert registry.get("TXN-7").status == PaymentStatus.SUCCESS
    outcome = payment_outcome(registry.get("TXN-7"), success_redirect="/dashboard", redirect_delay_seconds=1.0)
    assert outcome["success"] is True
    assert outcome["redirect"] == "/dashboard"
    assert outcome["redirect_delay_seconds"] == 1.0
    assert outcome["mpesaReceipt"] == "QXYZ"
    assert outcome["phone"] == "07******78"


@pytest.mark.asyncio
async def test_registry_rejects_second_push_while_pending_and_cancels():
    registry = PaymentRegistry()
    poller = StkPaymentPoller(MpesaMockClient([pending()]), interval_seconds=60)

    await registry.start(poller, "0712345678", 100, "TXN-8")
    with pytest.raises(PaymentInProgressError):
        await registry.start(poller, "0712345678", 100, "TXN-8")

    attempt = await registry.cancel("TXN-8")

    assert attempt.status == PaymentStatus.CANCELLED
    assert attempt.message == PAYMENT_CANCELLED_MESSAGE
    assert payment_outcome(attempt)["redirect"] is None
    assert await registry.cancel("unknown") is None


@pytest.mark.asyncio
async def test_registry_allows_retry_after_failure():
    registry = PaymentRegistry()
    poller, _ = _poller(MpesaMockClient([failed()]))

    await registry.start(poller, "0712345678", 100, "TXN-9")
    for _ in range(10):
        await asyncio.sleep(0)
        if registry.get("TXN-9").is_terminal:
            break
    assert registry.get("TXN-9").status == PaymentStatus.FAILED

    retry = await registry.start(poller, "0712345678", 100, "TXN-9")
    assert retry.status == PaymentStatus.PENDING
    await registry.shutdown()


def test_classify_status_rules():
    assert classify_status(PaymentStatusResponse(result_code=0)) == PaymentStatus.PENDING
    assert classify_status(PaymentStatusResponse(result_code=0, mpesa_code="QABC")) == PaymentStatus.SUCCESS
    assert classify_status(PaymentStatusResponse(result_code=1037, mpesa_code="QABC")) == PaymentStatus.FAILED


def test_failed_answer_without_description_uses_default_message():
    attempt = PaymentAttempt(reference="TXN", phone_number="0712345678", amount=1)
    apply_status(attempt, PaymentStatusResponse(result_code=1, raw={"resultCode": 1}))

    assert attempt.message == PAYMENT_FAILED_MESSAGE


def test_mask_phone():
    assert mask_phone("0712345678") == "07******78"
    assert mask_phone("1234") == "****"
    assert mask_phone(None) == ""


@pytest.mark.asyncio
async def test_real_mpesa_client_calls_push_and_validate_endpoints():
    seen = []

    def handler(request):
        seen.append(request)
        if request.url.path.endswith("/payments/stkpush"):
            return httpx.Response(200, json={"merchantRequestId": "MR-1", "checkOutRequestId": "ws_CO_1"})
        return httpx.Response(200, json={"resultCode": "0", "mpesaCode": "QREAL123"})

    api = BrokerApiClient("http://broker.test/api", transport=httpx.MockTransport(handler))
    client = RealMpesaClient(api, token="tok")

    pushed = await client.stk_push(StkPushRequest(phone_number="0712345678", amount=150.0, reference="TXN-10"))
    status = await client.query_status(pushed.merchant_request_id, pushed.checkout_request_id)

    assert pushed.checkout_request_id == "ws_CO_1"
    assert dict(seen[0].url.params) == {"phone": "0712345678", "amount": "150.0", "refNo": "TXN-10"}
    assert dict(seen[1].url.params) == {"merchantId": "MR-1", "requestId": "ws_CO_1"}
    assert seen[1].headers["Authorization"] == "Bearer tok"
    assert status.result_code == 0
    assert status.mpesa_code == "QREAL123"


def _refuse_push(request):
    raise httpx.ConnectError("connection reset", request=request)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "answer",
    [lambda request: httpx.Response(500, json={"message": "Gateway timeout"}), _refuse_push],
)
async def test_real_stk_push_is_sent_once_even_when_it_fails(answer):
    seen = []

    def handler(request):
        seen.append(request)
        return answer(request)

    api = BrokerApiClient("http://broker.test/api", get_retries=3, transport=httpx.MockTransport(handler))
    client = RealMpesaClient(api, token="tok")

    with pytest.raises(BrokerApiError):
        await client.stk_push(StkPushRequest(phone_number="0712345678", amount=150.0, reference="TXN-11"))

    assert len(seen) == 1


@pytest.mark.asyncio
async def test_real_status_query_is_still_retried():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(500, json={"message": "Try again"})

    api = BrokerApiClient("http://broker.test/api", transport=httpx.MockTransport(handler))
    client = RealMpesaClient(api, token="tok")

    with pytest.raises(BrokerApiError):
        await client.query_status("MR-1", "ws_CO_1")

    assert len(seen) == 2


class SlowPushGateway(MpesaMockClient):
    """Yields to the loop before accepting a push, like a real network call."""

    async def stk_push(self, request):
        await asyncio.sleep(0)
        return await super().stk_push(request)


class FlakyPushGateway(MpesaMockClient):
    def __init__(self, script, failures=1):
        super().__init__(script)
        self.failures = failures

    async def stk_push(self, request):
        if self.failures:
            self.failures -= 1
            raise BrokerApiError("Network error: connection reset", status=0)
        return await super().stk_push(request)


class FakeClock:
    def __init__(self):
        self.now = utc_now()

    def __call__(self):
        return self.now


async def _settle():
    for _ in range(10):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_concurrent_starts_for_one_reference_push_once():
    registry = PaymentRegistry()
    gateway = SlowPushGateway([pending()])
    poller = StkPaymentPoller(gateway, interval_seconds=60)

    results = await asyncio.gather(
        registry.start(poller, "0712345678", 100, "TXN-R"),
        registry.start(poller, "0712345678", 100, "TXN-R"),
        return_exceptions=True,
    )

    refused = [r for r in results if isinstance(r, PaymentInProgressError)]
    started = [r for r in results if isinstance(r, PaymentAttempt)]
    assert len(refused) == 1
    assert len(started) == 1
    assert len(gateway.pushes) == 1
    await registry.shutdown()


@pytest.mark.asyncio
async def test_failed_push_releases_the_reference():
    registry = PaymentRegistry()
    gateway = FlakyPushGateway([pending()])
    poller = StkPaymentPoller(gateway, interval_seconds=60)

    with pytest.raises(BrokerApiError):
        await registry.start(poller, "0712345678", 100, "TXN-F")
    assert registry.get("TXN-F") is None

    retry = await registry.start(poller, "0712345678", 100, "TXN-F")

    assert retry.status == PaymentStatus.PENDING
    assert len(gateway.pushes) == 1
    await registry.shutdown()


@pytest.mark.asyncio
async def test_attempts_are_only_visible_to_their_session():
    registry = PaymentRegistry()
    poller = StkPaymentPoller(MpesaMockClient([pending()]), interval_seconds=60)

    attempt = await registry.start(poller, "0712345678", 100, "TXN-S", owner="session-a")

    assert registry.get("TXN-S", owner="session-a") is attempt
    assert registry.get("TXN-S", owner="session-b") is None
    assert registry.get("TXN-S") is None
    assert await registry.cancel("TXN-S", owner="session-b") is None
    assert attempt.status == PaymentStatus.PENDING
    with pytest.raises(PaymentInProgressError):
        await registry.start(poller, "0712345678", 100, "TXN-S", owner="session-b")

    cancelled = await registry.cancel("TXN-S", owner="session-a")
    assert cancelled.status == PaymentStatus.CANCELLED
    assert cancelled.started_at.tzinfo is not None
    assert cancelled.finished_at.tzinfo is not None

    with pytest.raises(PaymentInProgressError, match="another session"):
        await registry.start(poller, "0712345678", 100, "TXN-S", owner="session-b")
    retry = await registry.start(poller, "0712345678", 100, "TXN-S", owner="session-a")
    assert retry.status == PaymentStatus.PENDING
    await registry.shutdown()


@pytest.mark.asyncio
async def test_finished_attempts_expire_after_retention():
    clock = FakeClock()
    registry = PaymentRegistry(retention_seconds=60, clock=clock)
    poller, _ = _poller(MpesaMockClient([failed()]))

    await registry.start(poller, "0712345678", 100, "TXN-E1")
    await registry.start(poller, "0712345678", 100, "TXN-E2")
    await _settle()
    assert registry.get("TXN-E1").status == PaymentStatus.FAILED
    assert len(registry) == 2

    clock.now += timedelta(seconds=61)

    assert registry.get("TXN-E1") is None
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_pending_attempts_survive_retention():
    clock = FakeClock()
    registry = PaymentRegistry(retention_seconds=60, clock=clock)
    poller = StkPaymentPoller(MpesaMockClient([pending()]), interval_seconds=60)

    await registry.start(poller, "0712345678", 100, "TXN-P")
    clock.now += timedelta(hours=2)

    assert registry.evict_finished() == 0
    assert registry.get("TXN-P").status == PaymentStatus.PENDING
    await registry.shutdown()


@pytest.mark.asyncio
async def test_finished_attempts_are_capped_oldest_first():
    registry = PaymentRegistry(max_finished=2)
    poller, _ = _poller(MpesaMockClient([failed()]))

    for reference in ("TXN-A", "TXN-B", "TXN-C"):
        await registry.start(poller, "0712345678", 100, reference)
        await _settle()

    assert registry.evict_finished() == 1
    assert registry.get("TXN-A") is None
    assert registry.get("TXN-B").status == PaymentStatus.FAILED
    assert registry.get("TXN-C").status == PaymentStatus.FAILED
    assert len(registry) == 2
