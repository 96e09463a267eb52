"""
Shipping application ("buy now") endpoints.

The application is a multipart request: a JSON `metadata` form field with
the KYC and shipment details, plus one file per document slot. The
response carries the payment reference the STK push is raised against.
"""

import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, File, Form, UploadFile

from src.api.dependencies import get_config, get_quotation_service
from src.forms.documents import DocumentFile, DocumentSet
from src.forms.shipment_application import build_application_metadata, validate_shipment_application
from src.forms.validation import FormValidationError
from src.integrations.policy.quotation_service import QuotationService

logger = logging.getLogger(__name__)

api = APIRouter()


def _parse_json_field(raw: Optional[str], field: str) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise FormValidationError(field_errors={field: "Must be valid JSON"}, message=f"Invalid {field}") from e
    if not isinstance(value, dict):
        raise FormValidationError(field_errors={field: "Must be a JSON object"}, message=f"Invalid {field}")
    return value


def _parse_timestamp(value: Any, slot: str) -> Optional[int]:
    """`lastModified` entries are epoch milliseconds, as browsers report them."""
    if value is None or value == "":
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise FormValidationError(
        field_errors={"lastModified": f"Timestamp for {slot} must be whole milliseconds"},
        message="Invalid lastModified",
    )


async def _to_document(upload: UploadFile, slot: str, last_modified: Any) -> DocumentFile:
    timestamp = _parse_timestamp(last_modified, slot)
    content = await upload.read()
    return DocumentFile(
        name=upload.filename or "",
        size=len(content),
        content_type=upload.content_type or "",
        last_modified=timestamp,
        content=content,
    )


@api.post("/applications/shipping", tags=["Applications"])
async def create_shipping_application(
    metadata: str = Form(...),
    lastModified: Optional[str] = Form(default=None),
    idfDocument: Optional[UploadFile] = File(default=None),
    invoice: Optional[UploadFile] = File(default=None),
    kraPinCertificate: Optional[UploadFile] = File(default=None),
    nationalId: Optional[UploadFile] = File(default=None),
    service: QuotationService = Depends(get_quotation_service),
    config=Depends(get_config),
):
    form = _parse_json_field(metadata, "metadata")
    timestamps = _parse_json_field(lastModified, "lastModified")

    documents = DocumentSet(
        allowed_mime_types=config.uploads.allowed_mime_types,
        max_file_size_bytes=config.uploads.max_file_size_bytes,
    )
    uploads = {
        "idfDocument": idfDocument,
        "invoice": invoice,
        "kraPinCertificate": kraPinCertificate,
        "nationalId": nationalId,
    }
    for slot, upload in uploads.items():
        if upload is not None and upload.filename:
            documents.attach(slot, await _to_document(upload, slot, timestamps.get(slot)))

    data = validate_shipment_application(form, documents)
    application = await service.create_application(
        build_application_metadata(str(form.get("quoteId") or ""), data),
        documents,
    )
    return {
        "application_id": application.application_id,
        "quote_id": application.quote_id,
        "payment_reference": application.payment_reference,
        "documents": application.document_names,
        "mpesa_number": data.get("mpesaNumber") or data.get("phoneNumber"),
    }


@api.get("/applications/shipping/{application_id}", tags=["Applications"])
async def get_shipping_application(application_id: str, service: QuotationService = Depends(get_quotation_service)):
    return await service.get_application(application_id)


@api.put("/applications/shipping/{application_id}", tags=["Applications"])
async def update_shipping_application(
    application_id: str,
    payload: Dict[str, Any] = Body(...),
    service: QuotationService = Depends(get_quotation_service),
):
    logger.info("Updating shipment details for application %s", application_id)
    return await service.update_application(application_id, payload)
