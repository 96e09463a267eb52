"""
Broker REST API — MOCK backend.

⚠️  This is a mock implementation for development and testing.
    It plugs into BrokerApiClient as an httpx.MockTransport, so the real
    request building, header handling and error mapping all run while no
    request leaves the process.

Served endpoints:
- /login, /login/validate, /self/resetpass, /self/updatepass, /self/verifuser
- /compute, /quote, /quote/singlequote/{id}, /quote/{id}, /quote/{id}/recalculate
- /shippingapplication, /shippingapplication/{id}
- /admin/dashboard and the admin listings, user create/delete, status updates

Premium rates are illustrative only; the real figures are computed upstream.
"""

import json
import logging
import re
import uuid
from email import policy
from email.parser import BytesParser
from typing import Any, Callable, Dict, List, Tuple

import httpx

from src.integrations.clients.mocks.admin_data import MOCK_LISTINGS, mock_dashboard, mock_listing

logger = logging.getLogger(__name__)

MOCK_OTP = "123456"

BASE_RATES = {"1": 0.0025, "2": 0.0035}  # sea, air
PHCF_RATE = 0.0025
TRAINING_LEVY_RATE = 0.002
STAMP_DUTY = 40.0


def compute_mock_premium(sum_insured: float, shipping: Any = "1") -> Dict[str, float]:
    premium = round(sum_insured * BASE_RATES.get(str(shipping), BASE_RATES["1"]), 2)
    phcf = round(premium * PHCF_RATE, 2)
    tl = round(premium * TRAINING_LEVY_RATE, 2)
    return {
        "premium": premium,
        "phcf": phcf,
        "tl": tl,
        "sd": STAMP_DUTY,
        "netprem": round(premium + phcf + tl + STAMP_DUTY, 2),
    }


def _error(status: int, message: str) -> httpx.Response:
    return httpx.Response(
        status,
        json={"defaultUserMessage": message, "errors": [{"developerMessage": message}]},
    )


def read_multipart(request: httpx.Request) -> Tuple[Dict[str, Any], Dict[str, str]]:
    """Return the decoded `metadata` part and `{field name: filename}` for uploaded files."""
    content_type = request.headers.get("content-type", "")
    body = request.read()
    message = BytesParser(policy=policy.HTTP).parsebytes(
        b"Content-Type: " + content_type.encode() + b"\r\n\r\n" + body
    )
    metadata: Dict[str, Any] = {}
    files: Dict[str, str] = {}
    for part in message.iter_parts():
        name = part.get_param("name", header="content-disposition")
        filename = part.get_filename()
        if filename:
            files[name] = filename
        elif name == "metadata":
            metadata = json.loads(part.get_payload(decode=True) or b"{}")
    return metadata, files


class MockBrokerBackend:
    """
    In-memory broker backend.

    Parameters
    ----------
    admin_usernames : tuple of str
        Usernames whose OTP verification answers with userType "A".
    fail_paths : tuple of str
        Path prefixes answered with HTTP 500, to exercise error handling.
    """

    def __init__(self, admin_usernames: Tuple[str, ...] = (), fail_paths: Tuple[str, ...] = ()):
        self.admin_usernames = set(admin_usernames)
        self.fail_paths = fail_paths

        # In-memory stores (reset on restart)
        self.quotes: Dict[str, Dict[str, Any]] = {}
        self.applications: Dict[str, Dict[str, Any]] = {}
        self.temp_tokens: Dict[str, str] = {}
        self.listings: Dict[str, List[Dict[str, Any]]] = {path: mock_listing(path) for path in MOCK_LISTINGS}
        self.requests: List[httpx.Request] = []

        self._routes: List[Tuple[str, "re.Pattern[str]", Callable[..., httpx.Response]]] = [
            ("POST", re.compile(r"^/login$"), self._login),
            ("POST", re.compile(r"^/login/validate$"), self._validate_login),
            ("POST", re.compile(r"^/self/(resetpass|updatepass|verifuser)$"), self._self_service),
            ("POST", re.compile(r"^/compute$"), self._compute),
            ("POST", re.compile(r"^/quote$"), self._create_quote),
            ("GET", re.compile(r"^/quote/singlequote/(?P<quote_id>[^/]+)$"), self._get_quote),
            ("PUT", re.compile(r"^/quote/(?P<quote_id>[^/]+)$"), self._update_quote),
            ("POST", re.compile(r"^/quote/(?P<quote_id>[^/]+)/recalculate$"), self._recalculate),
            ("POST", re.compile(r"^/shippingapplication$"), self._create_application),
            ("GET", re.compile(r"^/shippingapplication/(?P<application_id>[^/]+)$"), self._get_application),
            ("POST", re.compile(r"^/shippingapplication/(?P<application_id>[^/]+)$"), self._update_application),
            ("GET", re.compile(r"^/admin/dashboard$"), self._dashboard),
            ("GET", re.compile(r"^(?P<path>/admin/[a-z-]+)$"), self._listing),
            ("POST", re.compile(r"^/admin/users$"), self._create_user),
            ("DELETE", re.compile(r"^/admin/users/(?P<record_id>[^/]+)$"), self._delete_user),
            ("PUT", re.compile(r"^(?P<path>/admin/(high-risk-shipments|export-cover-requests))/(?P<record_id>[^/]+)$"), self._update_status),
        ]

        logger.info("[BROKER MOCK] Backend initialised")

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def mark_paid(self, quote_id: str) -> None:
        self.quotes[quote_id]["status"] = "PAID"

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = self._relative_path(request.url.path)
        logger.info("[BROKER MOCK] %s %s", request.method, path)

        if any(path.startswith(prefix) for prefix in self.fail_paths):
            return _error(500, "Internal server error")

        for method, pattern, handler in self._routes:
            if method != request.method:
                continue
            match = pattern.match(path)
            if match:
                return handler(request, **match.groupdict())
        return _error(404, f"No mock route for {request.method} {path}")

    @staticmethod
    def _relative_path(path: str) -> str:
        # Base URLs such as http://localhost:3000/api carry a prefix.
        anchors = ("/login", "/self/", "/compute", "/quote", "/shippingapplication", "/admin/")
        found = [index for index in (path.find(anchor) for anchor in anchors) if index >= 0]
        return path[min(found):] if found else path

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def _login(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content or b"{}")
        username = str(body.get("username") or "")
        if not username or not body.get("password"):
            return _error(400, "Username and password are required")
        temp_token = f"tmp-{uuid.uuid4().hex[:12]}"
        self.temp_tokens[temp_token] = username
        return httpx.Response(200, json={"tempToken": temp_token, "message": "OTP sent"})

    def _validate_login(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content or b"{}")
        username = self.temp_tokens.get(str(body.get("tempToken") or ""))
        if username is None:
            return _error(401, "Session expired")
        if str(body.get("otp")) != MOCK_OTP:
            return _error(400, "Invalid OTP")
        del self.temp_tokens[body["tempToken"]]
        return httpx.Response(
            200,
            json={
                "base64EncodedAuthenticationKey": uuid.uuid4().hex,
                "username": username,
                "name": username.split("@")[0].title(),
                "email": username if "@" in username else "",
                "userType": "A" if username in self.admin_usernames else "C",
            },
        )

    def _self_service(self, request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "OK"})

    # ------------------------------------------------------------------
    # Quotes
    # ------------------------------------------------------------------

    def _compute(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content or b"{}")
        try:
            sum_insured = float(body.get("suminsured"))
        except (TypeError, ValueError):
            return _error(400, "suminsured is required")
        return httpx.Response(200, json={"result": compute_mock_premium(sum_insured, body.get("shipping", "1"))})

    def _create_quote(self, request: httpx.Request) -> httpx.Response:
        metadata, _ = read_multipart(request)
        quote_id = str(len(self.quotes) + 1001)
        quote = dict(metadata)
        quote.update(
            {
                "quoteId": quote_id,
                "refno": f"QT-{quote_id}",
                "status": "DRAFT",
                **compute_mock_premium(float(metadata.get("suminsured") or 0), metadata.get("shippingid", "1")),
            }
        )
        self.quotes[quote_id] = quote
        return httpx.Response(200, json=quote)

    def _get_quote(self, request: httpx.Request, quote_id: str) -> httpx.Response:
        quote = self.quotes.get(quote_id)
        if quote is None:
            return _error(404, f"Quote {quote_id} not found")
        return httpx.Response(200, json=quote)

    def _update_quote(self, request: httpx.Request, quote_id: str) -> httpx.Response:
        quote = self.quotes.get(quote_id)
        if quote is None:
            return _error(404, f"Quote {quote_id} not found")
        metadata, _ = read_multipart(request)
        quote.update(metadata)
        quote.update(compute_mock_premium(float(quote.get("suminsured") or 0), quote.get("shippingid", "1")))
        return httpx.Response(200, json=quote)

    def _recalculate(self, request: httpx.Request, quote_id: str) -> httpx.Response:
        quote = self.quotes.get(quote_id)
        if quote is None:
            return _error(404, f"Quote {quote_id} not found")
        body = json.loads(request.content or b"{}")
        quote["suminsured"] = body.get("sumInsured")
        quote.update(compute_mock_premium(float(quote["suminsured"] or 0), quote.get("shippingid", "1")))
        return httpx.Response(200, json={key: quote[key] for key in ("premium", "phcf", "tl", "sd", "netprem")})

    # ------------------------------------------------------------------
    # Shipping applications
    # ------------------------------------------------------------------

    def _create_application(self, request: httpx.Request) -> httpx.Response:
        metadata, files = read_multipart(request)
        application_id = str(len(self.applications) + 5001)
        transaction_id = f"TXN-{uuid.uuid4().hex[:8].upper()}"
        self.applications[application_id] = {
            **metadata,
            "applicationId": application_id,
            "transactionId": transaction_id,
            "documents": files,
        }
        quote = self.quotes.get(str(metadata.get("quoteId")))
        if quote is not None:
            quote["status"] = "SUBMITTED"
        return httpx.Response(200, json={"resourceId": application_id, "transactionId": transaction_id})

    def _get_application(self, request: httpx.Request, application_id: str) -> httpx.Response:
        application = self.applications.get(application_id)
        if application is None:
            return _error(404, f"Application {application_id} not found")
        return httpx.Response(200, json=application)

    def _update_application(self, request: httpx.Request, application_id: str) -> httpx.Response:
        application = self.applications.get(application_id)
        if application is None:
            return _error(404, f"Application {application_id} not found")
        application.update(json.loads(request.content or b"{}"))
        return httpx.Response(200, json=application)

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def _dashboard(self, request: httpx.Request) -> httpx.Response:
        snapshot = mock_dashboard()
        snapshot["recentTransactions"] = snapshot.pop("recent_transactions")
        return httpx.Response(200, json=snapshot)

    def _listing(self, request: httpx.Request, path: str) -> httpx.Response:
        rows = self.listings.get(path)
        if rows is None:
            return _error(404, f"Unknown listing {path}")
        offset = int(request.url.params.get("offset", 0))
        limit = int(request.url.params.get("limit", 20))
        for key, value in request.url.params.items():
            if key in ("offset", "limit"):
                continue
            rows = [row for row in rows if value.lower() in json.dumps(row).lower()]
        return httpx.Response(200, json={"pageItems": rows[offset:offset + limit], "totalElements": len(rows)})

    def _create_user(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content or b"{}")
        users = self.listings["/admin/users"]
        user = {"id": max((row["id"] for row in users), default=0) + 1, "status": "Active", "role": "user", **body}
        users.append(user)
        return httpx.Response(201, json=user)

    def _delete_user(self, request: httpx.Request, record_id: str) -> httpx.Response:
        users = self.listings["/admin/users"]
        remaining = [row for row in users if str(row["id"]) != record_id]
        if len(remaining) == len(users):
            return _error(404, f"User {record_id} not found")
        self.listings["/admin/users"] = remaining
        return httpx.Response(200, json={"resourceId": record_id})

    def _update_status(self, request: httpx.Request, path: str, record_id: str) -> httpx.Response:
        body = json.loads(request.content or b"{}")
        for row in self.listings[path]:
            if str(row["id"]) == record_id:
                row["status"] = body.get("status", row["status"])
                return httpx.Response(200, json=row)
        return _error(404, f"Record {record_id} not found")
