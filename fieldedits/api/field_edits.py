"""
Field edit endpoints for units and buildings.
"""

import json
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..core.aggregate import aggregate_entity, entity_field_edits
from ..core.conflicts import record_scraper_value
from ..core.dao import unresolved_conflicts
from ..core.errors import ValidationError
from ..core.overlay import create_field_edit, field_history, resolve_field
from ..core.ownership import OwnershipResolver
from ..core.resolution import resolve_conflict
from .deps import get_editor_id, get_ownership
from .schemas import (
    ERROR_RESPONSES,
    ConflictListResponse,
    ConflictResolveRequest,
    EntityEditsResponse,
    EntityOverlayRequest,
    EntityOverlayResponse,
    FieldCurrentResponse,
    FieldEditCreateRequest,
    FieldEditRecordModel,
    FieldEditResponse,
    FieldHistoryResponse,
    FieldWithEditModel,
    ScraperValueRequest,
    ScraperValueResponse,
    SuccessResponse,
)

router = APIRouter(responses=ERROR_RESPONSES)


@router.post("", response_model=FieldEditResponse)
def create_field_edit_endpoint(request: FieldEditCreateRequest,
                               editor_id: str = Depends(get_editor_id),
                               ownership: OwnershipResolver = Depends(get_ownership)):
    """Record a locator or admin correction."""
    ownership.assert_can_modify(request.target_type, request.target_id, editor_id)

    record = create_field_edit(
        target_type=request.target_type,
        target_id=request.target_id,
        field_name=request.field_name,
        new_value=request.new_value,
        edited_by=editor_id,
        source=request.source,
        scraped_value=request.scraped_value,
    )
    return FieldEditResponse(edit=FieldEditRecordModel.from_record(record))


@router.get("")
def get_field_edits_endpoint(target_type: str, target_id: str, field_name: str,
                             mode: str = Query("history", pattern="^(history|current)$"),
                             scraped_value: Optional[str] = None,
                             editor_id: str = Depends(get_editor_id)):
    """Edit history for a field, or its current overlay value (mode=current)."""
    if mode == "current":
        try:
            parsed = json.loads(scraped_value) if scraped_value else None
        except (json.JSONDecodeError, ValueError):
            raise ValidationError("scraped_value must be JSON")

        field = resolve_field(target_type, target_id, field_name, parsed)
        return FieldCurrentResponse(field=FieldWithEditModel.from_overlay(field))

    history = field_history(target_type, target_id, field_name)
    return FieldHistoryResponse(history=[FieldEditRecordModel.from_record(r) for r in history])


@router.get("/entity", response_model=EntityEditsResponse)
def get_entity_edits_endpoint(target_type: str, target_id: str, editor_id: str = Depends(get_editor_id)):
    """Most recent edit per field for one entity."""
    edits = entity_field_edits(target_type, target_id)
    return EntityEditsResponse(edits={
        name: FieldEditRecordModel.from_record(record) for name, record in edits.items()
    })


@router.post("/entity/overlay", response_model=EntityOverlayResponse)
def overlay_entity_endpoint(request: EntityOverlayRequest, editor_id: str = Depends(get_editor_id)):
    """Overlay edits onto a scraped entity snapshot supplied by the caller."""
    fields = aggregate_entity(request.target_type, request.target_id, request.snapshot)
    return EntityOverlayResponse(fields={
        name: FieldWithEditModel.from_overlay(field) for name, field in fields.items()
    })


@router.post("/scraper", response_model=ScraperValueResponse)
def record_scraper_value_endpoint(request: ScraperValueRequest,
                                  editor_id: str = Depends(get_editor_id),
                                  ownership: OwnershipResolver = Depends(get_ownership)):
    """Report a freshly scraped value so conflicts can be detected."""
    ownership.assert_can_modify(request.target_type, request.target_id, editor_id)

    result = record_scraper_value(request.target_type, request.target_id,
                                  request.field_name, request.scraped_value)
    return ScraperValueResponse(**result.to_dict())


@router.get("/conflicts", response_model=ConflictListResponse)
def list_conflicts_endpoint(editor_id: str = Depends(get_editor_id)):
    """All unresolved conflicts, system-wide."""
    return ConflictListResponse(conflicts=[
        FieldEditRecordModel.from_record(record) for record in unresolved_conflicts()
    ])


@router.post("/conflicts", response_model=SuccessResponse)
def resolve_conflict_endpoint(request: ConflictResolveRequest,
                              editor_id: str = Depends(get_editor_id),
                              ownership: OwnershipResolver = Depends(get_ownership)):
    """Apply keep_locator or accept_scraper to a flagged edit."""
    resolve_conflict(request.edit_id, request.resolution, editor_id, ownership=ownership)
    return SuccessResponse(success=True)
