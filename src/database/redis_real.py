"""
Real Redis-backed session store for production when REDIS_URL is set.
Implements the same interface as src.database.redis (in-memory stub).
"""

from __future__ import annotations

from typing import Dict, Optional

import redis


class RedisCache:
    """
    Redis-backed session store. Each session is one Redis hash with a sliding TTL.
    """

    def __init__(self, url: str, default_ttl: int = 1800) -> None:
        self._client = redis.from_url(url, decode_responses=True)
        self._default_ttl = default_ttl

    def _key(self, session_id: str) -> str:
        return f"session:{session_id}"

    def set_session(self, session_id: str, data: Dict[str, str], ttl: int = 1800) -> None:
        key = self._key(session_id)
        pipe = self._client.pipeline()
        pipe.delete(key)
        if data:
            pipe.hset(key, mapping={k: str(v) for k, v in data.items()})
            pipe.expire(key, ttl or self._default_ttl)
        pipe.execute()

    def get_session(self, session_id: str) -> Optional[Dict[str, str]]:
        data = self._client.hgetall(self._key(session_id))
        return data or None

    def update_session(self, session_id: str, updates: Dict[str, str]) -> None:
        if not updates:
            return
        key = self._key(session_id)
        self._client.hset(key, mapping={k: str(v) for k, v in updates.items()})
        self._client.expire(key, self._default_ttl)

    def remove_keys(self, session_id: str, *keys: str) -> None:
        if keys:
            self._client.hdel(self._key(session_id), *keys)

    def delete_session(self, session_id: str) -> None:
        self._client.delete(self._key(session_id))

    def ping(self) -> bool:
        try:
            return self._client.ping()
        except redis.RedisError:
            return False
