"""
Broker REST API HTTP client.

Thin httpx wrapper shared by the quote, payment, admin and auth clients:
- adds the tenant header and the session's Bearer token
- retries GET requests once; other verbs are never retried
- converts HTTP and transport failures into BrokerApiError with the
  backend's user-facing message extracted
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)

TENANT_HEADER = "Fineract-Platform-TenantId"
DEFAULT_TENANT = "default"

BAD_REQUEST_MESSAGE = "Please check your input and try again."
GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again or contact support if the problem persists."

_AUTH_FAILURE_MARKERS = ("invalid token", "expired token", "unauthorized", "session expired")


class BrokerApiError(Exception):
    """Upstream call failed. `status` is 0 for transport failures (no HTTP response)."""

    def __init__(self, message: str, *, status: int = 0, payload: Any = None, url: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.payload = payload
        self.url = url

    @property
    def is_network_error(self) -> bool:
        return self.status == 0

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status < 500

    @property
    def is_auth_failure(self) -> bool:
        if self.status != 401:
            return False
        raw = ""
        if isinstance(self.payload, dict):
            raw = str(self.payload.get("message") or "")
        return any(marker in raw.lower() for marker in _AUTH_FAILURE_MARKERS)


def extract_error_message(payload: Any, status: int = 0, fallback: Optional[str] = None) -> str:
    """Pick the most specific message the backend sent.

    Checks errors[0].developerMessage, errors[0].defaultUserMessage,
    error.message, message and defaultUserMessage in that order.
    """
    if isinstance(payload, dict):
        errors = payload.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            for key in ("developerMessage", "defaultUserMessage"):
                if errors[0].get(key):
                    return str(errors[0][key])
        nested = payload.get("error")
        if isinstance(nested, dict) and nested.get("message"):
            return str(nested["message"])
        for key in ("message", "defaultUserMessage"):
            if payload.get(key):
                return str(payload[key])
    elif isinstance(payload, str) and payload.strip() and status and status < 500:
        return payload.strip()

    if fallback:
        return fallback
    if 400 <= status < 500:
        return BAD_REQUEST_MESSAGE
    return GENERIC_ERROR_MESSAGE


class BrokerApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout_seconds: float = 30.0,
        get_retries: int = 1,
        tenant: str = DEFAULT_TENANT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or os.getenv("BROKER_API_URL", "")).rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.get_retries = get_retries
        self.tenant = tenant
        self._transport = transport
        if not self.base_url:
            logger.warning("Broker API URL is not set.")

    def _headers(self, token: Optional[str]) -> Dict[str, str]:
        headers = {TENANT_HEADER: self.tenant, "Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport)

    async def request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        json_body: Any = None,
        files: Optional[List[Tuple[str, Tuple[Optional[str], Any, str]]]] = None,
        retries: Optional[int] = None,
    ) -> Any:
        """Send one request. GETs are retried `get_retries` times unless `retries` overrides it."""
        if not self.base_url:
            raise BrokerApiError("BROKER_API_URL is not configured.", status=0)

        url = f"{self.base_url}{path}"
        method = method.upper()
        if retries is None:
            retries = self.get_retries if method == "GET" else 0
        attempts = 1 + retries
        clean_params = {k: v for k, v in (params or {}).items() if v is not None and v != ""}

        for attempt in range(1, attempts + 1):
            try:
                logger.info("%s %s (attempt %d/%d)", method, url, attempt, attempts)
                async with self._client() as client:
                    response = await client.request(
                        method,
                        url,
                        params=clean_params or None,
                        json=json_body,
                        files=files,
                        headers=self._headers(token),
                    )
                    response.raise_for_status()
                    return _decode(response)
            except httpx.HTTPStatusError as e:
                payload = _decode_error(e.response)
                logger.error(f"HTTP error from broker API: {e.response.status_code} {method} {url}")
                error = BrokerApiError(
                    extract_error_message(payload, e.response.status_code),
                    status=e.response.status_code,
                    payload=payload,
                    url=url,
                )
            except httpx.RequestError as e:
                logger.error(f"Request error connecting to broker API: {e}")
                error = BrokerApiError(f"Network error: {e}", status=0, url=url)

            if attempt < attempts:
                logger.warning("Retrying %s %s after failure: %s", method, url, error.message)

        raise error

    async def get(
        self,
        path: str,
        *,
        token: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        retries: Optional[int] = None,
    ) -> Any:
        return await self.request("GET", path, token=token, params=params, retries=retries)

    async def post(self, path: str, body: Any = None, *, token: Optional[str] = None) -> Any:
        return await self.request("POST", path, token=token, json_body=body)

    async def put(self, path: str, body: Any = None, *, token: Optional[str] = None) -> Any:
        return await self.request("PUT", path, token=token, json_body=body)

    async def delete(self, path: str, *, token: Optional[str] = None) -> Any:
        return await self.request("DELETE", path, token=token)

    async def send_multipart(
        self,
        method: str,
        path: str,
        metadata: Dict[str, Any],
        *,
        files: Optional[List[Tuple[str, Tuple[Optional[str], Any, str]]]] = None,
        token: Optional[str] = None,
    ) -> Any:
        """Multipart request with a JSON `metadata` part, the shape quote and application endpoints accept."""
        parts: List[Tuple[str, Tuple[Optional[str], Any, str]]] = [
            ("metadata", (None, json.dumps(metadata, default=str), "application/json")),
        ]
        parts.extend(files or [])
        return await self.request(method, path, token=token, files=parts)


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return {"raw": response.text}


def _decode_error(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text
