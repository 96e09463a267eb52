import httpx
import pytest

from src.integrations.clients.mocks.broker_backend import MockBrokerBackend
from src.integrations.clients.real_http.broker_api import (
    BAD_REQUEST_MESSAGE,
    GENERIC_ERROR_MESSAGE,
    TENANT_HEADER,
    BrokerApiClient,
    BrokerApiError,
    extract_error_message,
)


@pytest.mark.asyncio
async def test_requests_carry_tenant_and_bearer_headers(backend, broker_api):
    await broker_api.post("/compute", {"suminsured": 1000000, "shipping": "1"}, token="tok-123")

    sent = backend.requests[0]
    assert sent.headers[TENANT_HEADER] == "default"
    assert sent.headers["Authorization"] == "Bearer tok-123"
    assert sent.url.path == "/api/compute"


@pytest.mark.asyncio
async def test_anonymous_requests_have_no_authorization_header(backend, broker_api):
    await broker_api.post("/compute", {"suminsured": 1000000})

    assert "Authorization" not in backend.requests[0].headers


@pytest.mark.asyncio
async def test_get_is_retried_once_then_raises():
    backend = MockBrokerBackend(fail_paths=("/admin/users",))
    api = BrokerApiClient("http://broker.test/api", transport=backend.transport())

    with pytest.raises(BrokerApiError) as exc_info:
        await api.get("/admin/users")

    assert len(backend.requests) == 2
    assert exc_info.value.status == 500
    assert exc_info.value.message == "Internal server error"


@pytest.mark.asyncio
async def test_post_is_never_retried():
    backend = MockBrokerBackend(fail_paths=("/compute",))
    api = BrokerApiClient("http://broker.test/api", transport=backend.transport())

    with pytest.raises(BrokerApiError):
        await api.post("/compute", {"suminsured": 1})

    assert len(backend.requests) == 1


@pytest.mark.asyncio
async def test_transport_failure_becomes_network_error():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    api = BrokerApiClient("http://broker.test/api", get_retries=0, transport=httpx.MockTransport(refuse))

    with pytest.raises(BrokerApiError) as exc_info:
        await api.get("/quote/singlequote/1")

    assert exc_info.value.is_network_error
    assert exc_info.value.status == 0
    assert exc_info.value.message.startswith("Network error:")


@pytest.mark.asyncio
async def test_missing_base_url_fails_without_request(monkeypatch):
    monkeypatch.delenv("BROKER_API_URL", raising=False)
    api = BrokerApiClient(None)

    with pytest.raises(BrokerApiError) as exc_info:
        await api.get("/admin/users")

    assert exc_info.value.is_network_error


@pytest.mark.asyncio
async def test_backend_message_is_extracted(broker_api):
    with pytest.raises(BrokerApiError) as exc_info:
        await broker_api.post("/login", {"username": ""})

    assert exc_info.value.status == 400
    assert exc_info.value.is_client_error
    assert exc_info.value.message == "Username and password are required"


@pytest.mark.asyncio
async def test_multipart_sends_metadata_and_files(backend, broker_api):
    files = [("invoiceUpload", ("invoice.pdf", b"%PDF-1.4", "application/pdf"))]
    await broker_api.send_multipart("POST", "/shippingapplication", {"quoteId": "1001"}, files=files)

    application = backend.applications["5001"]
    assert application["quoteId"] == "1001"
    assert application["documents"] == {"invoiceUpload": "invoice.pdf"}


def test_extract_error_message_prefers_developer_message():
    payload = {
        "errors": [{"developerMessage": "Sum insured is below the minimum", "defaultUserMessage": "Invalid"}],
        "message": "Bad request",
    }
    assert extract_error_message(payload, 400) == "Sum insured is below the minimum"


def test_extract_error_message_reads_nested_error():
    assert extract_error_message({"error": {"message": "Quote not found"}}, 404) == "Quote not found"


def test_extract_error_message_uses_plain_text_for_client_errors():
    assert extract_error_message("Invalid phone", 400) == "Invalid phone"
    assert extract_error_message("<html>Bad gateway</html>", 502) == GENERIC_ERROR_MESSAGE


def test_extract_error_message_falls_back_by_status():
    assert extract_error_message({}, 422) == BAD_REQUEST_MESSAGE
    assert extract_error_message(None, 500) == GENERIC_ERROR_MESSAGE
    assert extract_error_message(None, 500, fallback="Try later") == "Try later"


@pytest.mark.parametrize(
    "status,payload,expected",
    [
        (401, {"message": "Invalid token"}, True),
        (401, {"message": "Session expired, please log in"}, True),
        (401, {"message": "Wrong password"}, False),
        (403, {"message": "Unauthorized"}, False),
        (401, "Unauthorized", False),
    ],
)
def test_auth_failure_detection(status, payload, expected):
    error = BrokerApiError("x", status=status, payload=payload)
    assert error.is_auth_failure is expected
