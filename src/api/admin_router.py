from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query

from src.api.dependencies import get_admin_service, get_config
from src.forms.validation import apply_check, check_email, check_phone_number, raise_if_errors, require_str
from src.integrations.contracts.admin import (
    EXPORT_COVER_REQUESTS,
    HIGH_RISK_SHIPMENTS,
    PREMIUM_BUYERS,
    QUOTE_USERS,
    TRANSACTIONS,
    USERS,
    AdminResource,
)
from src.integrations.policy.admin_service import AdminService

api = APIRouter()


async def _listing(service: AdminService, resource: AdminResource, page: int, size: Optional[int], filter_value: Optional[str], config):
    if size is not None:
        size = min(size, config.pagination.max_page_size)
    result = await service.fetch_page(resource, page=page, size=size, filter_value=filter_value)
    return result.as_dict()


@api.get("/admin/dashboard", tags=["Admin"])
async def admin_dashboard(service: AdminService = Depends(get_admin_service)):
    snapshot = await service.dashboard()
    return snapshot.as_dict()


@api.get("/admin/users", tags=["Admin"])
async def list_users(
    page: int = Query(0, ge=0),
    size: Optional[int] = Query(None, ge=1),
    search: Optional[str] = None,
    service: AdminService = Depends(get_admin_service),
    config=Depends(get_config),
):
    return await _listing(service, USERS, page, size, search, config)


@api.post("/admin/users", tags=["Admin"])
async def create_user(payload: Dict[str, Any] = Body(...), service: AdminService = Depends(get_admin_service)):
    errors: Dict[str, str] = {}
    require_str(payload, "firstName", errors, label="First Name")
    require_str(payload, "lastName", errors, label="Last Name")
    apply_check(payload, "email", check_email, errors, required=True, label="Email")
    apply_check(payload, "phone", check_phone_number, errors, label="Phone Number")
    raise_if_errors(errors)
    return await service.create_user(payload)


@api.delete("/admin/users/{user_id}", tags=["Admin"])
async def delete_user(user_id: str, service: AdminService = Depends(get_admin_service)):
    return await service.delete_user(user_id)


@api.get("/admin/quote-users", tags=["Admin"])
async def list_quote_users(
    page: int = Query(0, ge=0),
    size: Optional[int] = Query(None, ge=1),
    service: AdminService = Depends(get_admin_service),
    config=Depends(get_config),
):
    return await _listing(service, QUOTE_USERS, page, size, None, config)


@api.get("/admin/premium-buyers", tags=["Admin"])
async def list_premium_buyers(
    page: int = Query(0, ge=0),
    size: Optional[int] = Query(None, ge=1),
    productType: Optional[str] = None,
    service: AdminService = Depends(get_admin_service),
    config=Depends(get_config),
):
    return await _listing(service, PREMIUM_BUYERS, page, size, productType, config)


@api.get("/admin/transactions", tags=["Admin"])
async def list_transactions(
    page: int = Query(0, ge=0),
    size: Optional[int] = Query(None, ge=1),
    status: Optional[str] = None,
    service: AdminService = Depends(get_admin_service),
    config=Depends(get_config),
):
    return await _listing(service, TRANSACTIONS, page, size, status, config)


@api.get("/admin/high-risk-shipments", tags=["Admin"])
async def list_high_risk_shipments(
    page: int = Query(0, ge=0),
    size: Optional[int] = Query(None, ge=1),
    service: AdminService = Depends(get_admin_service),
    config=Depends(get_config),
):
    return await _listing(service, HIGH_RISK_SHIPMENTS, page, size, None, config)


@api.get("/admin/export-cover-requests", tags=["Admin"])
async def list_export_cover_requests(
    page: int = Query(0, ge=0),
    size: Optional[int] = Query(None, ge=1),
    service: AdminService = Depends(get_admin_service),
    config=Depends(get_config),
):
    return await _listing(service, EXPORT_COVER_REQUESTS, page, size, None, config)


@api.put("/admin/high-risk-shipments/{record_id}", tags=["Admin"])
async def update_high_risk_shipment(record_id: str, payload: Dict[str, Any] = Body(...), service: AdminService = Depends(get_admin_service)):
    errors: Dict[str, str] = {}
    status = require_str(payload, "status", errors, label="Status")
    raise_if_errors(errors)
    return await service.update_status(HIGH_RISK_SHIPMENTS, record_id, status)


@api.put("/admin/export-cover-requests/{record_id}", tags=["Admin"])
async def update_export_cover_request(record_id: str, payload: Dict[str, Any] = Body(...), service: AdminService = Depends(get_admin_service)):
    errors: Dict[str, str] = {}
    status = require_str(payload, "status", errors, label="Status")
    raise_if_errors(errors)
    return await service.update_status(EXPORT_COVER_REQUESTS, record_id, status)
