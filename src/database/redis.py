"""
Lightweight in-memory RedisCache replacement for local development.

Sessions are flat string maps (the equivalent of the browser's session
storage): session_id -> {key: value}. `SessionContext` is the only caller.
"""

from __future__ import annotations

from typing import Dict, Optional


class RedisCache:
    def __init__(self) -> None:
        self._sessions: Dict[str, Dict[str, str]] = {}

    # --- Session helpers used by SessionContext --------------------------------

    def set_session(self, session_id: str, data: Dict[str, str], ttl: int = 1800) -> None:
        # TTL is ignored in this in-memory implementation.
        self._sessions[session_id] = {k: str(v) for k, v in data.items()}

    def get_session(self, session_id: str) -> Optional[Dict[str, str]]:
        session = self._sessions.get(session_id)
        return dict(session) if session is not None else None

    def update_session(self, session_id: str, updates: Dict[str, str]) -> None:
        session = self._sessions.setdefault(session_id, {})
        session.update({k: str(v) for k, v in updates.items()})

    def remove_keys(self, session_id: str, *keys: str) -> None:
        session = self._sessions.get(session_id)
        if session is None:
            return
        for key in keys:
            session.pop(key, None)

    def delete_session(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    # --- Misc -----------------------------------------------------------------

    def ping(self) -> bool:
        """
        Health check calls this; always True so the API reports the
        session store as "connected" in local/dev mode.
        """
        return True
