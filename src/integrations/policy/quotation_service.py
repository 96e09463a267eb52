"""
Quotation Service for the broker API

Quotes, premium computation and shipping applications. Premiums are always
computed upstream; this module only shapes requests and normalizes answers.
"""

import logging
from typing import Any, Dict, Optional

from src.forms.documents import DocumentSet
from src.integrations.clients.real_http.broker_api import BrokerApiClient
from src.integrations.contracts.interfaces import PremiumBreakdown, ProductType, Quote, ShipmentApplication
from src.integrations.policy.response_wrappers import (
    RecalculationResponseModel,
    normalize_application_response,
    normalize_premium_response,
    normalize_quote_response,
    normalize_recalculation_response,
    quote_from_response,
)

logger = logging.getLogger(__name__)


class QuoteLockedError(ValueError):
    """Paid quotes are immutable."""

    def __init__(self, quote_id: str) -> None:
        super().__init__(f"Quote {quote_id} has been paid and can no longer be changed.")
        self.quote_id = quote_id


class QuotationService:
    def __init__(self, api: BrokerApiClient, token: Optional[str] = None):
        self.api = api
        self.token = token

    async def compute_premium(self, payload: Dict[str, Any]) -> PremiumBreakdown:
        """
        Provisional premium for `{suminsured, cargotype, shipping, locale}`.
        """
        data = await self.api.post("/compute", payload, token=self.token)
        return normalize_premium_response(data).to_breakdown()

    async def create_quote(self, metadata: Dict[str, Any], *, product: ProductType = ProductType.MARINE_CARGO) -> Quote:
        logger.info("Creating %s quote (sum insured=%s)", product.value, metadata.get("suminsured"))
        data = await self.api.send_multipart("POST", "/quote", metadata, token=self.token)
        return quote_from_response(normalize_quote_response(data), product=product)

    async def get_quote(self, quote_id: str) -> Quote:
        data = await self.api.get(f"/quote/singlequote/{quote_id}", token=self.token)
        return quote_from_response(normalize_quote_response(data, fallback_quote_id=quote_id))

    async def update_quote(self, quote_id: str, metadata: Dict[str, Any]) -> Quote:
        await self._ensure_editable(quote_id)
        logger.info("Updating quote %s", quote_id)
        data = await self.api.send_multipart("PUT", f"/quote/{quote_id}", metadata, token=self.token)
        return quote_from_response(normalize_quote_response(data, fallback_quote_id=quote_id))

    async def recalculate(self, quote_id: str, sum_insured: float) -> RecalculationResponseModel:
        await self._ensure_editable(quote_id)
        data = await self.api.post(f"/quote/{quote_id}/recalculate", {"sumInsured": sum_insured}, token=self.token)
        return normalize_recalculation_response(data)

    async def _ensure_editable(self, quote_id: str) -> Quote:
        quote = await self.get_quote(quote_id)
        if quote.is_locked:
            raise QuoteLockedError(quote_id)
        return quote

    async def create_application(self, metadata: Dict[str, Any], documents: DocumentSet) -> ShipmentApplication:
        """
        Submit the shipping application with its four KYC documents.
        The returned `payment_reference` is what the STK push is raised against.
        """
        quote_id = str(metadata.get("quoteId") or "")
        data = await self.api.send_multipart(
            "POST",
            "/shippingapplication",
            metadata,
            files=documents.multipart_files(),
            token=self.token,
        )
        normalized = normalize_application_response(data)
        logger.info("Shipping application %s created for quote %s", normalized.application_id, quote_id)
        return ShipmentApplication(
            application_id=normalized.application_id,
            quote_id=quote_id,
            payment_reference=normalized.transaction_id,
            metadata=metadata,
            document_names=documents.names(),
        )

    async def get_application(self, application_id: str) -> Dict[str, Any]:
        return await self.api.get(f"/shippingapplication/{application_id}", token=self.token)

    async def update_application(self, application_id: str, details: Dict[str, Any]) -> Dict[str, Any]:
        return await self.api.post(f"/shippingapplication/{application_id}", details, token=self.token)
