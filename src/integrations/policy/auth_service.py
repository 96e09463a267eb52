"""
Auth Service

Two-step sign-in against the broker API:
1. `/login` with username and password returns a temporary token.
2. `/login/validate` with that token and the OTP returns the access token
   and the user profile, which are recorded on the session.

Also proxies the self-service password reset and account verification calls.
"""

import logging
from typing import Any, Dict

from src.integrations.clients.real_http.broker_api import BrokerApiClient, BrokerApiError
from src.session_context import SessionContext

logger = logging.getLogger(__name__)

INVALID_OTP_MESSAGE = "Invalid OTP. Please try again."
MISSING_TEMP_TOKEN_MESSAGE = "Your sign-in session has expired. Please sign in again."


def user_profile(response: Dict[str, Any], fallback_username: str = "") -> Dict[str, Any]:
    """User record kept on the session after a successful OTP check."""
    return {
        "username": response.get("username") or response.get("email") or fallback_username,
        "name": response.get("name") or response.get("fullName") or "User",
        "email": response.get("email") or response.get("username") or "",
        "userType": response.get("userType") or "C",
        "phoneNumber": response.get("phoneNumber") or response.get("phone") or "",
    }


class AuthService:
    def __init__(self, api: BrokerApiClient, session: SessionContext):
        self.api = api
        self.session = session

    async def sign_in(self, credentials: Dict[str, str]) -> Dict[str, Any]:
        logger.info("Sign-in requested for %s", credentials.get("username"))
        response = await self.api.post("/login", credentials)
        temp_token = str(response.get("tempToken") or "") if isinstance(response, dict) else ""
        if temp_token:
            self.session.store_temp_token(temp_token)
        else:
            logger.warning("Sign-in response carried no temporary token")
        return {"otp_required": bool(temp_token)}

    async def verify_otp(self, otp: str) -> Dict[str, Any]:
        temp_token = self.session.temp_token
        if not temp_token:
            raise BrokerApiError(MISSING_TEMP_TOKEN_MESSAGE, status=401)

        try:
            response = await self.api.post("/login/validate", {"tempToken": temp_token, "otp": otp})
        except BrokerApiError as e:
            self.session.clear_temp_token()
            developer_message = None
            if isinstance(e.payload, dict):
                errors = e.payload.get("errors")
                if isinstance(errors, list) and errors and isinstance(errors[0], dict):
                    developer_message = errors[0].get("developerMessage")
            logger.error(f"OTP verification failed: {e}")
            raise BrokerApiError(
                developer_message or INVALID_OTP_MESSAGE,
                status=e.status,
                payload=e.payload,
                url=e.url,
            ) from e

        access_token = response.get("base64EncodedAuthenticationKey") or response.get("token") or ""
        user = user_profile(response, fallback_username=temp_token)
        self.session.establish(access_token, user)
        logger.info("Session %s established for %s", self.session.session_id, user["username"])
        return self.session.as_dict()

    def sign_out(self) -> Dict[str, Any]:
        self.session.sign_out()
        return {"signed_out": True}

    async def forgot_password(self, email: str) -> Dict[str, Any]:
        return await self.api.post("/self/resetpass", {"email": email})

    async def reset_password(self, details: Dict[str, Any]) -> Dict[str, Any]:
        return await self.api.post("/self/updatepass", details)

    async def verify_user(self, details: Dict[str, Any]) -> Dict[str, Any]:
        return await self.api.post("/self/verifuser", details)
