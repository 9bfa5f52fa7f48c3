"""Admin-editable reference data and field validation rules."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from vendor_mdm.core.dependencies import get_metadata_service
from vendor_mdm.core.response import DataResponse
from vendor_mdm.schemas.documents import ReferenceDataItem, ValidationRule
from vendor_mdm.schemas.metadata import PayloadValidationRequest, PayloadValidationResult
from vendor_mdm.services.metadata import MetadataService

router = APIRouter(prefix="/metadata", tags=["Metadata"])


# ------------------------------------------------------------------
# Reference data
# ------------------------------------------------------------------

@router.get("/reference/{category}", response_model=DataResponse[list[ReferenceDataItem]])
async def get_reference_data(
    category: str,
    svc: MetadataService = Depends(get_metadata_service),
):
    """Active lookup values for a category (Country, Currency, VendorType, ...)."""
    return {"data": await svc.get_reference_data(category)}


@router.post(
    "/reference", response_model=DataResponse[ReferenceDataItem], status_code=status.HTTP_201_CREATED
)
async def upsert_reference_data(
    body: ReferenceDataItem,
    svc: MetadataService = Depends(get_metadata_service),
):
    return {"data": await svc.upsert_reference_data(body)}


@router.delete("/reference/{category}/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reference_data(
    category: str,
    item_id: str,
    svc: MetadataService = Depends(get_metadata_service),
):
    await svc.delete_reference_data(item_id, category)


# ------------------------------------------------------------------
# Validation rules
# ------------------------------------------------------------------

@router.get("/rules/{entity_type}", response_model=DataResponse[list[ValidationRule]])
async def get_validation_rules(
    entity_type: str,
    svc: MetadataService = Depends(get_metadata_service),
):
    return {"data": await svc.get_validation_rules(entity_type)}


@router.post(
    "/rules", response_model=DataResponse[ValidationRule], status_code=status.HTTP_201_CREATED
)
async def upsert_validation_rule(
    body: ValidationRule,
    svc: MetadataService = Depends(get_metadata_service),
):
    """400 when a Regex rule carries a pattern that does not compile."""
    return {"data": await svc.upsert_validation_rule(body)}


@router.delete("/rules/{entity_type}/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_validation_rule(
    entity_type: str,
    rule_id: str,
    svc: MetadataService = Depends(get_metadata_service),
):
    await svc.delete_validation_rule(rule_id, entity_type)


@router.post("/rules/{entity_type}/validate", response_model=DataResponse[PayloadValidationResult])
async def validate_payload(
    entity_type: str,
    body: PayloadValidationRequest,
    svc: MetadataService = Depends(get_metadata_service),
):
    """Run the entity type's rules against a payload; 400 with the first failing rule."""
    rule_set = await svc.validate_payload(entity_type, body.payload)
    return {
        "data": PayloadValidationResult(
            entity_type=entity_type, is_valid=True, rules_checked=len(rule_set)
        )
    }
