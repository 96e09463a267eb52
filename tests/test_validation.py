"""
Validation tests for the quote, application, cover request and account forms.

Run:
    pytest tests/test_validation.py -q
"""

from __future__ import annotations

from datetime import date

import pytest

from src.forms.account import validate_otp, validate_password_reset, validate_sign_in
from src.forms.cover_requests import validate_cover_request
from src.forms.documents import DocumentFile, DocumentSet
from src.forms.marine_quote import build_compute_payload, build_quote_metadata, validate_marine_quote
from src.forms.shipment_application import build_application_metadata, validate_shipment_application
from src.forms.travel_quote import build_travel_metadata, validate_travel_quote
from src.forms.validation import (
    FormValidationError,
    check_idf_number,
    check_international_phone,
    check_kra_pin,
    check_mpesa_number,
    check_password_strength,
    check_ucr_number,
    check_word_count,
    parse_amount,
)

TODAY = date(2026, 3, 1)


def _marine_payload(**overrides):
    payload = {
        "firstName": "jane",
        "lastName": "wanjiru",
        "email": " jane@example.com ",
        "phoneNumber": "0712-345-678",
        "modeOfShipment": "1",
        "marineCargoType": "General Cargo",
        "marinePackagingType": "Containerized",
        "tradeType": "Marine Cargo Import",
        "origin": "China",
        "sumInsured": "1,500,000",
        "termsAndPolicyConsent": True,
    }
    payload.update(overrides)
    return payload


def _application_payload(**overrides):
    payload = {
        "firstName": "Jane",
        "lastName": "Wanjiru",
        "emailAddress": "jane@example.com",
        "phoneNumber": "0712345678",
        "kraPin": "a123456789b",
        "idNumber": "28184318",
        "streetAddress": "P.O. Box 100",
        "postalCode": "00100",
        "modeOfShipment": "1",
        "selectCategory": "ICC (A) All Risks",
        "salesCategory": "General Cargo",
        "countryOfOrigin": "China",
        "gcrNumber": "24nboim000002014",
        "loadingPort": "Shanghai",
        "portOfDischarge": "Mombasa",
        "finalDestination": "Nairobi",
        "dateOfDispatch": "2026-03-10",
        "estimatedArrival": "2026-04-01",
        "sumInsured": "1500000",
        "goodsDescription": "assorted household electronics",
        "mpesaNumber": "712345678",
        "agreeToTerms": True,
    }
    payload.update(overrides)
    return payload


def _full_documents():
    documents = DocumentSet()
    for i, slot in enumerate(("idfDocument", "invoice", "kraPinCertificate", "nationalId")):
        documents.attach(slot, DocumentFile(name=f"{slot}.pdf", size=1000, content_type="application/pdf", last_modified=i))
    return documents


# ---------------------------------------------------------------------------
# Marine quote
# ---------------------------------------------------------------------------

def test_marine_quote_normalizes_values():
    data = validate_marine_quote(_marine_payload())

    assert data["firstName"] == "Jane"
    assert data["email"] == "jane@example.com"
    assert data["phoneNumber"] == "0712345678"
    assert data["sumInsured"] == 1500000.0
    assert data["destination"] == "Kenya"
    assert data["marineCategory"] == "ICC (A) All Risks"
    assert data["selfAsImporter"] is False


def test_marine_quote_reports_every_invalid_field():
    payload = _marine_payload(firstName="Jo", email="not-an-email", modeOfShipment="3", sumInsured="0", termsAndPolicyConsent=False)
    payload.pop("origin")

    with pytest.raises(FormValidationError) as exc_info:
        validate_marine_quote(payload)

    errors = exc_info.value.field_errors
    assert errors["firstName"] == "First Name must be at least 3 letters"
    assert errors["email"] == "Please enter a valid email address"
    assert errors["modeOfShipment"] == "modeOfShipment has an invalid value"
    assert errors["sumInsured"] == "Value must be greater than 0."
    assert errors["termsAndPolicyConsent"] == "You must agree to proceed."
    assert errors["origin"] == "Country of Origin is required"
    assert exc_info.value.message == "Please fill in all required fields correctly"


def test_quote_metadata_for_create_and_edit():
    data = validate_marine_quote(_marine_payload(marineCategoryId=3, marineCargoTypeId=8))

    created = build_quote_metadata(data)
    edited = build_quote_metadata(data, edit_quote_id="1001")

    assert created["suminsured"] == 1500000.0
    assert created["shippingid"] == "1"
    assert created["categoryid"] == 3
    assert created["cargoId"] == 8
    assert created["productId"] == 2416
    assert "editMode" not in created
    assert edited["editMode"] is True
    assert edited["originalQuoteId"] == "1001"


def test_compute_payload_shape():
    assert build_compute_payload(1000000.0, "General Cargo", "2") == {
        "suminsured": 1000000.0,
        "cargotype": "General Cargo",
        "shipping": "2",
        "locale": "en_US",
    }


# ---------------------------------------------------------------------------
# Shipment application
# ---------------------------------------------------------------------------

def test_application_normalizes_and_accepts_complete_form():
    data = validate_shipment_application(_application_payload(), _full_documents(), today=TODAY)

    assert data["kraPin"] == "A123456789B"
    assert data["gcrNumber"] == "24NBOIM000002014"
    assert data["mpesaNumber"] == "0712345678"
    assert data["goodsDescription"] == "Assorted Household Electronics"
    assert data["dateOfDispatch"] == date(2026, 3, 10)
    assert data["paymentMethod"] == "mpesa"


def test_application_metadata_formats_dates():
    data = validate_shipment_application(_application_payload(), _full_documents(), today=TODAY)

    metadata = build_application_metadata("1001", data)

    assert metadata["quoteId"] == "1001"
    assert metadata["dateOfDispatch"] == "10 Mar 2026"
    assert metadata["estimatedArrivalDate"] == "01 Apr 2026"
    assert metadata["postalAddress"] == "P.O. Box 100"
    assert metadata["idfnumber"] == "24NBOIM000002014"
    assert metadata["ucrnumber"] is None
    assert metadata["dateFormat"] == "dd MMM yyyy"


def test_application_requires_quote_id():
    with pytest.raises(FormValidationError) as exc_info:
        build_application_metadata("", {})
    assert "quoteId" in exc_info.value.field_errors


def test_application_rejects_past_dates_and_reversed_order():
    payload = _application_payload(dateOfDispatch="2026-02-01", estimatedArrival="2026-03-05")
    with pytest.raises(FormValidationError) as exc_info:
        validate_shipment_application(payload, _full_documents(), today=TODAY)
    assert exc_info.value.field_errors["dateOfDispatch"] == "Date cannot be in the past."

    payload = _application_payload(dateOfDispatch="2026-03-20", estimatedArrival="2026-03-10")
    with pytest.raises(FormValidationError) as exc_info:
        validate_shipment_application(payload, _full_documents(), today=TODAY)
    assert exc_info.value.field_errors["estimatedArrival"] == "Estimated arrival cannot be before the date of dispatch"


def test_application_merges_document_errors():
    documents = DocumentSet()
    documents.attach("invoice", DocumentFile(name="invoice.exe", size=10, content_type="application/x-msdownload"))

    with pytest.raises(FormValidationError) as exc_info:
        validate_shipment_application(_application_payload(), documents, today=TODAY)

    errors = exc_info.value.field_errors
    assert errors["invoice"] == "Only PDF, JPG, and PNG files are allowed"
    assert errors["idfDocument"] == "This field is required."
    assert set(errors) == {"idfDocument", "invoice", "kraPinCertificate", "nationalId"}


def test_application_checks_identity_formats():
    payload = _application_payload(kraPin="123", idNumber="12", gcrNumber="ABC", mpesaNumber="0812345678", goodsDescription="tea")

    with pytest.raises(FormValidationError) as exc_info:
        validate_shipment_application(payload, _full_documents(), today=TODAY)

    errors = exc_info.value.field_errors
    assert errors["kraPin"].startswith("KRA PIN must be")
    assert errors["idNumber"].startswith("ID Number must be")
    assert errors["gcrNumber"].startswith("IDF Number must be")
    assert errors["mpesaNumber"].startswith("M-Pesa Number must start")
    assert errors["goodsDescription"] == "Minimum of 2 words is required."


def test_application_rejects_overlong_identifiers_instead_of_shortening():
    payload = _application_payload(
        gcrNumber="24NBOIM0000020149999",
        kraPin="A123456789B9",
        idNumber="2818431899",
        phoneNumber="0712345678999",
        mpesaNumber="0712345678999",
    )

    with pytest.raises(FormValidationError) as exc_info:
        validate_shipment_application(payload, _full_documents(), today=TODAY)

    errors = exc_info.value.field_errors
    assert set(errors) == {"gcrNumber", "kraPin", "idNumber", "phoneNumber", "mpesaNumber"}


def test_application_rejects_identifiers_with_stray_characters():
    payload = _application_payload(gcrNumber="24NBOIM00000201#", idNumber="2818431x", phoneNumber="+254712345")

    with pytest.raises(FormValidationError) as exc_info:
        validate_shipment_application(payload, _full_documents(), today=TODAY)

    assert set(exc_info.value.field_errors) == {"gcrNumber", "idNumber", "phoneNumber"}


def test_identifier_checks_reject_any_deviation():
    assert check_idf_number("24NBOIM000002014") is None
    assert check_idf_number("24NBOIM0000020149999") is not None
    assert check_idf_number("24NBOIM000002014\n") is not None
    assert check_kra_pin("A123456789BC") is not None
    assert check_mpesa_number("0712345678999") is not None


# ---------------------------------------------------------------------------
# Travel quote
# ---------------------------------------------------------------------------

def _travel_payload(**overrides):
    payload = {
        "firstName": "Amina",
        "lastName": "Otieno",
        "email": "amina@example.com",
        "phoneNumber": "0722000111",
        "originCountry": "Kenya",
        "destinationCountry": "Germany",
        "departureDate": "2026-04-01",
        "returnDate": "2026-04-15",
        "travellers": "2",
        "sumInsured": "150000",
        "termsAndPolicyConsent": "true",
    }
    payload.update(overrides)
    return payload


def test_travel_quote_metadata():
    data = validate_travel_quote(_travel_payload(), today=TODAY)
    metadata = build_travel_metadata(data)

    assert data["travellers"] == 2
    assert metadata["productType"] == "travel"
    assert metadata["departureDate"] == "01 Apr 2026"
    assert metadata["destination"] == "Germany"


@pytest.mark.parametrize("travellers", ["0", "11", "two"])
def test_travel_quote_traveller_bounds(travellers):
    with pytest.raises(FormValidationError) as exc_info:
        validate_travel_quote(_travel_payload(travellers=travellers), today=TODAY)
    assert "travellers" in exc_info.value.field_errors


def test_travel_return_before_departure():
    with pytest.raises(FormValidationError) as exc_info:
        validate_travel_quote(_travel_payload(returnDate="2026-03-20"), today=TODAY)
    assert exc_info.value.field_errors["returnDate"] == "Return date cannot be before the departure date"


# ---------------------------------------------------------------------------
# Cover requests
# ---------------------------------------------------------------------------

def _cover_payload(**overrides):
    payload = {
        "firstName": "Peter",
        "lastName": "Kamau",
        "email": "peter@example.com",
        "phoneNumber": "0733000222",
        "originCountry": "Uganda",
        "destinationCountry": "United Kingdom",
        "shipmentDate": "2026-03-15",
        "sumInsured": "2000000",
        "goodsDescription": "Cut flowers in cold storage",
        "termsAndPolicyConsent": True,
    }
    payload.update(overrides)
    return payload


def test_export_request_locks_origin_to_kenya():
    data = validate_cover_request("export", _cover_payload(), today=TODAY)

    assert data["originCountry"] == "Kenya"
    assert data["destinationCountry"] == "United Kingdom"
    assert data["shipmentDate"] == date(2026, 3, 15)


def test_high_risk_request_locks_destination_to_kenya():
    data = validate_cover_request("high_risk", _cover_payload(), today=TODAY)

    assert data["destinationCountry"] == "Kenya"
    assert data["originCountry"] == "Uganda"


def test_unknown_cover_request_kind():
    with pytest.raises(ValueError):
        validate_cover_request("domestic", _cover_payload(), today=TODAY)


# ---------------------------------------------------------------------------
# Account
# ---------------------------------------------------------------------------

def test_sign_in_requires_both_fields():
    with pytest.raises(FormValidationError) as exc_info:
        validate_sign_in({"username": "jane"})
    assert exc_info.value.field_errors == {"password": "Password is required"}


def test_otp_must_be_digits():
    assert validate_otp({"otp": " 123456 "}) == "123456"
    with pytest.raises(FormValidationError):
        validate_otp({"otp": "12ab56"})


def test_password_reset_checks_strength_and_confirmation():
    with pytest.raises(FormValidationError) as exc_info:
        validate_password_reset({"userid": "7", "tempToken": "t", "password": "Secret#123", "passwordConfirm": "Secret#124"})
    assert exc_info.value.field_errors == {"passwordConfirm": "Passwords do not match"}

    message = check_password_strength("password")
    assert "at least one number" in message
    assert "at least one uppercase letter" in message
    assert "at least one special character (#?!@$%^&*-)" in message
    assert check_password_strength("Secret#123") is None


# ---------------------------------------------------------------------------
# Field checks
# ---------------------------------------------------------------------------

def test_field_checks_ignore_empty_input():
    for check in (check_kra_pin, check_idf_number, check_mpesa_number, check_ucr_number, check_international_phone, check_word_count):
        assert check("") is None


def test_mpesa_number_prefixes():
    assert check_mpesa_number("0712345678") is None
    assert check_mpesa_number("011234567") is None
    assert check_mpesa_number("0112345678") is not None


def test_ucr_number_is_case_insensitive():
    assert check_ucr_number("12vnp011111123x001234567") is None
    assert check_ucr_number("12VNP0111") is not None


def test_international_phone_ignores_spaces():
    assert check_international_phone("+254 712 345 678") is None
    assert check_international_phone("12-34") is not None


def test_word_count_limits():
    assert check_word_count("one") == "Minimum of 2 words is required."
    assert check_word_count(" ".join(["word"] * 101)) == "Maximum of 100 words is allowed."


def test_parse_amount_messages():
    errors = {}
    assert parse_amount({"sumInsured": "12,500.50"}, "sumInsured", errors) == 12500.5
    assert parse_amount({"sumInsured": "abc"}, "sumInsured", errors, label="Sum Insured") == 0.0
    assert errors == {"sumInsured": "Sum Insured must be a number"}
