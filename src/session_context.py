"""
Typed access to per-session auth state.

Replaces ad-hoc reads of string flags ("isAdmin" == "true") scattered across
call sites: every read and write of session keys goes through SessionContext.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

ACCESS_TOKEN = "accessToken"
TEMP_TOKEN = "temp_auth_token"
IS_ADMIN = "isAdmin"
IS_LOGGED_IN = "isLoggedIn"
USER_TYPE = "userType"
USER_DATA = "userData"

ADMIN_USER_TYPE = "A"

_AUTH_KEYS = (ACCESS_TOKEN, TEMP_TOKEN, IS_ADMIN, IS_LOGGED_IN, USER_TYPE, USER_DATA)


class SessionContext:
    def __init__(self, store, session_id: str) -> None:
        self.store = store
        self.session_id = session_id

    def _get(self, key: str) -> Optional[str]:
        session = self.store.get_session(self.session_id) or {}
        return session.get(key)

    def _set(self, **values: Any) -> None:
        self.store.update_session(self.session_id, {k: v for k, v in values.items() if v is not None})

    @property
    def access_token(self) -> str:
        return self._get(ACCESS_TOKEN) or ""

    @property
    def temp_token(self) -> str:
        return self._get(TEMP_TOKEN) or ""

    @property
    def is_admin(self) -> bool:
        return self._get(IS_ADMIN) == "true"

    @property
    def is_logged_in(self) -> bool:
        return self._get(IS_LOGGED_IN) == "true" and bool(self.access_token)

    @property
    def user_type(self) -> Optional[str]:
        return self._get(USER_TYPE)

    @property
    def user_data(self) -> Dict[str, Any]:
        raw = self._get(USER_DATA)
        if not raw:
            return {}
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable user data for session %s", self.session_id)
            return {}

    def store_temp_token(self, token: str) -> None:
        self._set(**{TEMP_TOKEN: token})

    def clear_temp_token(self) -> None:
        self.store.remove_keys(self.session_id, TEMP_TOKEN)

    def establish(self, access_token: str, user: Dict[str, Any], *, is_admin: bool = False) -> None:
        """Record a verified login. The admin flag is only ever set from the backend's answer."""
        user_type = str(user.get("userType") or "C")
        self._set(
            **{
                ACCESS_TOKEN: access_token,
                IS_LOGGED_IN: "true",
                USER_TYPE: user_type,
                IS_ADMIN: "true" if (is_admin or user_type == ADMIN_USER_TYPE) else "false",
                USER_DATA: json.dumps(user, default=str),
            }
        )
        self.clear_temp_token()

    def sign_out(self) -> None:
        self.store.remove_keys(self.session_id, *_AUTH_KEYS)
        logger.info("Session %s signed out", self.session_id)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "is_logged_in": self.is_logged_in,
            "is_admin": self.is_admin,
            "user_type": self.user_type,
            "user": self.user_data,
        }
