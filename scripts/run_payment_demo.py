#!/usr/bin/env python3
"""
Run a marine quote → shipping application → STK push confirmation flow
against the in-process mock backend and print each stage to the terminal.

Usage (from repo root, after `pip install -e .`):
  python scripts/run_payment_demo.py
  python scripts/run_payment_demo.py --outcome declined
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import date, timedelta

from src.forms.documents import DocumentFile, DocumentSet
from src.forms.marine_quote import build_quote_metadata, validate_marine_quote
from src.forms.shipment_application import build_application_metadata, validate_shipment_application
from src.integrations.clients.mocks.broker_backend import MockBrokerBackend
from src.integrations.clients.mocks.mpesa import MpesaMockClient, failed, pending, succeeded
from src.integrations.clients.real_http.broker_api import BrokerApiClient
from src.integrations.policy.payment_service import StkPaymentPoller, payment_outcome
from src.integrations.policy.quotation_service import QuotationService

SCRIPTS = {
    "success": (pending(), pending(), succeeded("QKA1B2C3D4")),
    "declined": (pending(), failed(1032, "Request cancelled by user")),
}


def setup_logging():
    """Log to terminal at INFO so every stage is visible."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
    )


def print_stage(title: str, data):
    """Print a stage header and data to the terminal."""
    print("\n" + "=" * 60)
    print(f"  {title}")
    print("=" * 60)
    if isinstance(data, (dict, list)):
        print(json.dumps(data, indent=2, default=str))
    else:
        print(data)
    print()


def demo_documents() -> DocumentSet:
    documents = DocumentSet()
    for i, slot in enumerate(("idfDocument", "invoice", "kraPinCertificate", "nationalId")):
        content = f"%PDF-1.4 {slot}".encode()
        documents.attach(
            slot,
            DocumentFile(name=f"{slot}.pdf", size=len(content), content_type="application/pdf", last_modified=i, content=content),
        )
    return documents


async def main(outcome: str, interval: float) -> int:
    setup_logging()
    backend = MockBrokerBackend()
    api = BrokerApiClient("http://mock-broker/api", transport=backend.transport())
    quotes = QuotationService(api, token="demo-token")

    # --- Quote ---
    form = validate_marine_quote({
        "firstName": "Jane",
        "lastName": "Wanjiru",
        "email": "jane.wanjiru@example.com",
        "phoneNumber": "0712345678",
        "modeOfShipment": "1",
        "marineCargoType": "General Cargo",
        "marinePackagingType": "Containerized",
        "tradeType": "Marine Cargo Import",
        "origin": "China",
        "sumInsured": "1,500,000",
        "termsAndPolicyConsent": True,
    })
    quote = await quotes.create_quote(build_quote_metadata(form))
    print_stage("QUOTE", {"quote_id": quote.quote_id, "status": quote.status.value, "premium": quote.breakdown.as_dict()})

    # --- Shipping application ---
    dispatch = date.today() + timedelta(days=7)
    documents = demo_documents()
    data = validate_shipment_application(
        {
            "firstName": "Jane",
            "lastName": "Wanjiru",
            "emailAddress": "jane.wanjiru@example.com",
            "phoneNumber": "0712345678",
            "kraPin": "A123456789B",
            "idNumber": "28184318",
            "streetAddress": "P.O. Box 100",
            "postalCode": "00100",
            "modeOfShipment": "1",
            "selectCategory": "ICC (A) All Risks",
            "salesCategory": "General Cargo",
            "countryOfOrigin": "China",
            "gcrNumber": "24NBOIM000002014",
            "loadingPort": "Shanghai",
            "portOfDischarge": "Mombasa",
            "finalDestination": "Nairobi",
            "dateOfDispatch": dispatch.isoformat(),
            "estimatedArrival": (dispatch + timedelta(days=21)).isoformat(),
            "sumInsured": "1500000",
            "goodsDescription": "Assorted household electronics",
            "mpesaNumber": "0712345678",
            "agreeToTerms": True,
        },
        documents,
    )
    application = await quotes.create_application(build_application_metadata(quote.quote_id, data), documents)
    print_stage("SHIPPING APPLICATION", {
        "application_id": application.application_id,
        "payment_reference": application.payment_reference,
        "documents": application.document_names,
    })

    # --- STK push + confirmation ---
    poller = StkPaymentPoller(MpesaMockClient(SCRIPTS[outcome]), interval_seconds=interval)
    attempt = await poller.pay(data["mpesaNumber"], quote.breakdown.net_premium, application.payment_reference)
    result = payment_outcome(attempt)
    print_stage("PAYMENT", result)

    if result["success"]:
        backend.mark_paid(quote.quote_id)
        paid = await quotes.get_quote(quote.quote_id)
        print_stage("QUOTE AFTER PAYMENT", {"quote_id": paid.quote_id, "status": paid.status.value, "locked": paid.is_locked})
    return 0 if result["success"] else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Mock quote → application → M-Pesa payment flow")
    parser.add_argument("--outcome", choices=sorted(SCRIPTS), default="success", help="Scripted M-Pesa answer sequence")
    parser.add_argument("--interval", type=float, default=0.5, help="Seconds between status queries")
    args = parser.parse_args()
    raise SystemExit(asyncio.run(main(args.outcome, args.interval)))
