"""
Vendor Field Mappings API - FastAPI router for mapping contracts.
"""
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException

from ..services.mapping_service import (
    DuplicateMappingError,
    InvalidTransitionError,
    MappingNotFoundError,
    MappingService,
    VendorFieldMapping,
)
from .pricing_api import CamelModel
from .state import get_mapping_service

router = APIRouter(prefix="/api/admin/vendor-field-mappings", tags=["vendor-field-mappings"])


class MappingCreate(CamelModel):
    """Request model for creating a mapping."""
    vendor_source: str
    mapping_name: str = "Default"
    column_mappings: dict[str, str]


class MappingUpdate(CamelModel):
    column_mappings: dict[str, str]


class TransitionRequest(CamelModel):
    actor: Optional[str] = None


class PreviewRequest(CamelModel):
    vendor_source: str
    mapping_name: str = "Default"
    sample_data: list[dict[str, Any]]


class MappingResponse(CamelModel):
    """Response model for a mapping."""
    mapping_id: int
    vendor_source: str
    mapping_name: str
    column_mappings: dict[str, str]
    status: str
    approved_by: Optional[str]
    approved_at: Optional[str]
    last_used: Optional[str]
    created_at: Optional[str]
    updated_at: Optional[str]


class PreviewResponse(CamelModel):
    mapping_id: int
    status: str
    rows: list[dict[str, Any]]
    unmapped_fields: list[str]
    unused_columns: list[str]
    warnings: list[str]


def _response(mapping: VendorFieldMapping) -> MappingResponse:
    return MappingResponse(**mapping.to_dict())


@router.get("", response_model=list[MappingResponse])
async def list_mappings(vendor_source: Optional[str] = None, service: MappingService = Depends(get_mapping_service)):
    """List vendor field mappings."""
    return [_response(m) for m in service.list_mappings(vendor_source)]


@router.post("", response_model=MappingResponse)
async def create_mapping(data: MappingCreate, service: MappingService = Depends(get_mapping_service)):
    """Create a draft mapping."""
    try:
        return _response(service.create_mapping(data.vendor_source, data.column_mappings, data.mapping_name))
    except DuplicateMappingError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/preview", response_model=PreviewResponse)
async def preview_mapping(request: PreviewRequest, service: MappingService = Depends(get_mapping_service)):
    """Run sample rows through a mapping."""
    try:
        result = service.preview(request.vendor_source, request.mapping_name, request.sample_data)
    except MappingNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return PreviewResponse(
        mapping_id=result.mapping_id,
        status=result.status.value,
        rows=result.rows,
        unmapped_fields=result.unmapped_fields,
        unused_columns=result.unused_columns,
        warnings=result.warnings,
    )


@router.get("/{mapping_id}", response_model=MappingResponse)
async def get_mapping(mapping_id: int, service: MappingService = Depends(get_mapping_service)):
    try:
        return _response(service.get_mapping(mapping_id))
    except MappingNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/{mapping_id}", response_model=MappingResponse)
async def update_mapping(mapping_id: int, data: MappingUpdate, service: MappingService = Depends(get_mapping_service)):
    """Edit the column mappings of a draft."""
    try:
        return _response(service.update_columns(mapping_id, data.column_mappings))
    except MappingNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _transition(action, mapping_id: int, actor: Optional[str]) -> MappingResponse:
    try:
        return _response(action(mapping_id, actor))
    except MappingNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/{mapping_id}/approve", response_model=MappingResponse)
async def approve_mapping(
    mapping_id: int,
    request: Optional[TransitionRequest] = None,
    service: MappingService = Depends(get_mapping_service),
):
    """Approve a draft mapping for imports."""
    return _transition(service.approve, mapping_id, request.actor if request else None)


@router.post("/{mapping_id}/activate", response_model=MappingResponse)
async def activate_mapping(
    mapping_id: int,
    request: Optional[TransitionRequest] = None,
    service: MappingService = Depends(get_mapping_service),
):
    return _transition(service.activate, mapping_id, request.actor if request else None)


@router.post("/{mapping_id}/deprecate", response_model=MappingResponse)
async def deprecate_mapping(
    mapping_id: int,
    request: Optional[TransitionRequest] = None,
    service: MappingService = Depends(get_mapping_service),
):
    return _transition(service.deprecate, mapping_id, request.actor if request else None)
