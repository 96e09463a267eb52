"""Sign-in, OTP and password-reset payload checks."""

from __future__ import annotations

from typing import Any, Dict

from src.forms.validation import (
    add_error,
    apply_check,
    check_email,
    check_password_strength,
    raise_if_errors,
    require_str,
    validate_password_confirmation,
)


def validate_sign_in(payload: Dict[str, Any]) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    username = require_str(payload, "username", errors, label="Username")
    password = require_str(payload, "password", errors, label="Password")
    raise_if_errors(errors)
    return {"username": username, "password": password}


def validate_otp(payload: Dict[str, Any]) -> str:
    errors: Dict[str, str] = {}
    otp = require_str(payload, "otp", errors, label="OTP")
    if otp and not otp.isdigit():
        add_error(errors, "otp", "OTP must contain digits only")
    raise_if_errors(errors)
    return otp


def validate_forgot_password(payload: Dict[str, Any]) -> str:
    errors: Dict[str, str] = {}
    email = apply_check(payload, "email", check_email, errors, required=True, label="Email")
    raise_if_errors(errors)
    return email


def validate_password_reset(payload: Dict[str, Any]) -> Dict[str, Any]:
    errors: Dict[str, str] = {}
    require_str(payload, "userid", errors, label="User")
    require_str(payload, "tempToken", errors, label="Reset token")
    apply_check(payload, "password", check_password_strength, errors, required=True, label="Password")
    require_str(payload, "passwordConfirm", errors, label="Confirm Password")
    validate_password_confirmation(payload, errors)
    raise_if_errors(errors)
    return {
        "userid": payload["userid"],
        "tempToken": str(payload["tempToken"]).strip(),
        "password": payload["password"],
        "passwordConfirm": payload["passwordConfirm"],
    }


def validate_verify_user(payload: Dict[str, Any]) -> Dict[str, Any]:
    errors: Dict[str, str] = {}
    require_str(payload, "userid", errors, label="User")
    require_str(payload, "tempToken", errors, label="Verification token")
    code = require_str(payload, "code", errors, label="Verification code")
    raise_if_errors(errors)
    return {"userid": payload["userid"], "tempToken": str(payload["tempToken"]).strip(), "code": code}
