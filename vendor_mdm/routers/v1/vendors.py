"""Vendor lookup against the upstream ERP (mocked)."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from vendor_mdm.core.config import Settings
from vendor_mdm.core.dependencies import get_settings
from vendor_mdm.core.response import DataResponse
from vendor_mdm.schemas.vendor import VendorLookupOut
from vendor_mdm.services.vendor import VendorLookupService

router = APIRouter(prefix="/vendors", tags=["Vendors"])


def _svc(settings: Settings = Depends(get_settings)) -> VendorLookupService:
    return VendorLookupService(settings.sap_environment_code)


@router.get("/{vendor_id}", response_model=DataResponse[VendorLookupOut])
async def get_vendor(vendor_id: str, svc: VendorLookupService = Depends(_svc)):
    return {"data": await svc.get_vendor(vendor_id)}
