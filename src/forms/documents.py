"""KYC document slots for a shipment application.

A `DocumentSet` holds at most one file per slot. Attaching runs the
type, size and cross-slot duplicate checks in that order; a rejected
file leaves its slot empty and records one error for that slot.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = ("application/pdf", "image/jpeg", "image/jpg", "image/png")
MAX_FILE_SIZE_BYTES = 500 * 1024

INVALID_TYPE_MESSAGE = "Only PDF, JPG, and PNG files are allowed"
TOO_LARGE_MESSAGE = "File size must be less than 500KB"
MISSING_MESSAGE = "This field is required."

# slot -> (display label, multipart field name expected by the backend)
DOCUMENT_SLOTS: Dict[str, Tuple[str, str]] = {
    "idfDocument": ("IDF Document", "idfUpload"),
    "invoice": ("Invoice", "invoiceUpload"),
    "kraPinCertificate": ("KRA PIN Certificate", "kraPinUpload"),
    "nationalId": ("National ID", "nationalIdUpload"),
}


@dataclass
class DocumentFile:
    name: str
    size: int
    content_type: str
    last_modified: Optional[int] = None
    content: bytes = b""

    @property
    def fingerprint(self) -> Tuple[str, int, Optional[int]]:
        return (self.name, self.size, self.last_modified)


class DocumentSet:
    def __init__(
        self,
        *,
        allowed_mime_types: Iterable[str] = ALLOWED_MIME_TYPES,
        max_file_size_bytes: int = MAX_FILE_SIZE_BYTES,
    ) -> None:
        self.allowed_mime_types = {t.lower() for t in allowed_mime_types}
        self.max_file_size_bytes = max_file_size_bytes
        self._files: Dict[str, DocumentFile] = {}
        self.errors: Dict[str, str] = {}

    def attach(self, slot: str, document: DocumentFile) -> bool:
        """Attach `document` to `slot`; returns False (and records an error) when rejected."""
        if slot not in DOCUMENT_SLOTS:
            raise KeyError(f"Unknown document slot: {slot}")

        self.clear_error(slot)
        message = self._check(slot, document)
        if message:
            self._files.pop(slot, None)
            self.errors[slot] = message
            logger.info("Rejected %s for %s: %s", document.name, slot, message)
            return False

        self._files[slot] = document
        return True

    def _check(self, slot: str, document: DocumentFile) -> Optional[str]:
        if (document.content_type or "").lower() not in self.allowed_mime_types:
            return INVALID_TYPE_MESSAGE
        if document.size > self.max_file_size_bytes:
            return TOO_LARGE_MESSAGE
        duplicate_of = self.find_duplicate(slot, document)
        if duplicate_of:
            return f'The file is already uploaded as "{DOCUMENT_SLOTS[duplicate_of][0]}"'
        return None

    def find_duplicate(self, slot: str, document: DocumentFile) -> Optional[str]:
        for other_slot, other in self._files.items():
            if other_slot != slot and other.fingerprint == document.fingerprint:
                return other_slot
        return None

    def clear(self, slot: str) -> None:
        self._files.pop(slot, None)
        self.clear_error(slot)

    def clear_error(self, slot: str) -> None:
        self.errors.pop(slot, None)

    def get(self, slot: str) -> Optional[DocumentFile]:
        return self._files.get(slot)

    def missing_slots(self) -> List[str]:
        return [slot for slot in DOCUMENT_SLOTS if slot not in self._files]

    def validation_errors(self) -> Dict[str, str]:
        """Per-slot errors, plus a required error for every empty slot."""
        errors = dict(self.errors)
        for slot in self.missing_slots():
            errors.setdefault(slot, MISSING_MESSAGE)
        return errors

    def is_complete(self) -> bool:
        return not self.validation_errors()

    def multipart_files(self) -> List[Tuple[str, Tuple[str, bytes, str]]]:
        """httpx `files=` entries keyed by the backend's multipart field names."""
        return [
            (DOCUMENT_SLOTS[slot][1], (doc.name, doc.content, doc.content_type))
            for slot, doc in self._files.items()
        ]

    def names(self) -> Dict[str, str]:
        return {slot: doc.name for slot, doc in self._files.items()}
