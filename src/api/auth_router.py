"""
Sign-in (password, then OTP), sign-out and self-service password endpoints.

The session is identified by the X-Session-Id header. `POST /session`
hands out a new id for clients that do not have one yet.
"""

import uuid
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from src.api.dependencies import get_auth_service, get_session
from src.forms.account import (
    validate_forgot_password,
    validate_otp,
    validate_password_reset,
    validate_sign_in,
    validate_verify_user,
)
from src.integrations.policy.auth_service import AuthService
from src.session_context import SessionContext

api = APIRouter()


@api.post("/session", tags=["Auth"])
async def create_session():
    return {"session_id": uuid.uuid4().hex}


@api.get("/auth/session", tags=["Auth"])
async def get_current_session(session: SessionContext = Depends(get_session)):
    return session.as_dict()


@api.post("/auth/sign-in", tags=["Auth"])
async def sign_in(payload: Dict[str, Any] = Body(...), auth: AuthService = Depends(get_auth_service)):
    credentials = validate_sign_in(payload)
    return await auth.sign_in(credentials)


@api.post("/auth/verify-otp", tags=["Auth"])
async def verify_otp(payload: Dict[str, Any] = Body(...), auth: AuthService = Depends(get_auth_service)):
    otp = validate_otp(payload)
    return await auth.verify_otp(otp)


@api.post("/auth/sign-out", tags=["Auth"])
async def sign_out(auth: AuthService = Depends(get_auth_service)):
    return auth.sign_out()


@api.post("/auth/forgot-password", tags=["Auth"])
async def forgot_password(payload: Dict[str, Any] = Body(...), auth: AuthService = Depends(get_auth_service)):
    email = validate_forgot_password(payload)
    return await auth.forgot_password(email)


@api.post("/auth/reset-password", tags=["Auth"])
async def reset_password(payload: Dict[str, Any] = Body(...), auth: AuthService = Depends(get_auth_service)):
    details = validate_password_reset(payload)
    return await auth.reset_password(details)


@api.post("/auth/verify-user", tags=["Auth"])
async def verify_user(payload: Dict[str, Any] = Body(...), auth: AuthService = Depends(get_auth_service)):
    details = validate_verify_user(payload)
    return await auth.verify_user(details)
