import pytest

from src.integrations.clients.real_http.broker_api import BrokerApiError
from src.integrations.policy.auth_service import MISSING_TEMP_TOKEN_MESSAGE, AuthService, user_profile

ADMIN_USERNAME = "admin@geminia.com"


@pytest.mark.asyncio
async def test_sign_in_stores_temporary_token(broker_api, session):
    auth = AuthService(broker_api, session)

    result = await auth.sign_in({"username": "jane@example.com", "password": "Secret#123"})

    assert result == {"otp_required": True}
    assert session.temp_token.startswith("tmp-")
    assert session.is_logged_in is False


@pytest.mark.asyncio
async def test_verify_otp_establishes_customer_session(broker_api, session):
    auth = AuthService(broker_api, session)
    await auth.sign_in({"username": "jane@example.com", "password": "Secret#123"})

    result = await auth.verify_otp("123456")

    assert result["is_logged_in"] is True
    assert result["is_admin"] is False
    assert result["user_type"] == "C"
    assert result["user"]["username"] == "jane@example.com"
    assert result["user"]["name"] == "Jane"
    assert session.access_token
    assert session.temp_token == ""


@pytest.mark.asyncio
async def test_admin_flag_comes_from_backend_user_type(broker_api, session):
    auth = AuthService(broker_api, session)
    await auth.sign_in({"username": ADMIN_USERNAME, "password": "Secret#123"})

    result = await auth.verify_otp("123456")

    assert result["is_admin"] is True
    assert session.user_type == "A"


@pytest.mark.asyncio
async def test_wrong_otp_clears_temp_token_and_reports_backend_message(broker_api, session):
    auth = AuthService(broker_api, session)
    await auth.sign_in({"username": "jane@example.com", "password": "Secret#123"})

    with pytest.raises(BrokerApiError) as exc_info:
        await auth.verify_otp("000000")

    assert exc_info.value.message == "Invalid OTP"
    assert exc_info.value.status == 400
    assert session.temp_token == ""
    assert session.is_logged_in is False


@pytest.mark.asyncio
async def test_verify_without_sign_in_fails_locally(backend, broker_api, session):
    auth = AuthService(broker_api, session)

    with pytest.raises(BrokerApiError) as exc_info:
        await auth.verify_otp("123456")

    assert exc_info.value.message == MISSING_TEMP_TOKEN_MESSAGE
    assert exc_info.value.status == 401
    assert backend.requests == []


@pytest.mark.asyncio
async def test_sign_out_clears_auth_state(broker_api, session):
    auth = AuthService(broker_api, session)
    await auth.sign_in({"username": "jane@example.com", "password": "Secret#123"})
    await auth.verify_otp("123456")

    assert auth.sign_out() == {"signed_out": True}
    assert session.is_logged_in is False
    assert session.access_token == ""
    assert session.user_data == {}


@pytest.mark.asyncio
async def test_self_service_calls_hit_backend_paths(backend, broker_api, session):
    auth = AuthService(broker_api, session)

    await auth.forgot_password("jane@example.com")
    await auth.reset_password({"userid": "7", "tempToken": "t", "password": "Secret#123", "passwordConfirm": "Secret#123"})
    await auth.verify_user({"userid": "7", "tempToken": "t", "code": "4821"})

    assert [request.url.path for request in backend.requests] == [
        "/api/self/resetpass",
        "/api/self/updatepass",
        "/api/self/verifuser",
    ]


def test_user_profile_defaults():
    profile = user_profile({}, fallback_username="someone")

    assert profile == {"username": "someone", "name": "User", "email": "", "userType": "C", "phoneNumber": ""}
