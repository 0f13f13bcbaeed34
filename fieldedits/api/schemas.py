"""
Request and response models for the field-edit API.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, field_validator


class FieldEditCreateRequest(BaseModel):
    target_type: str
    target_id: str
    field_name: str
    new_value: Any
    source: str = "locator"
    scraped_value: Any = None

    @field_validator('target_type')
    @classmethod
    def target_type_must_be_valid(cls, v):
        valid_targets = ['unit', 'building']
        if v not in valid_targets:
            raise ValueError(f'target_type must be one of: {valid_targets}')
        return v

    @field_validator('target_id', 'field_name')
    @classmethod
    def must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('value cannot be empty')
        return v

    @field_validator('source')
    @classmethod
    def source_must_be_human(cls, v):
        valid_sources = ['locator', 'admin']
        if v not in valid_sources:
            raise ValueError(f'source must be one of: {valid_sources}')
        return v


class FieldEditRecordModel(BaseModel):
    id: str
    target_type: str
    target_id: str
    field_name: str
    previous_value: Any = None
    new_value: Any = None
    source: str
    edited_by: Optional[str] = None
    has_conflict: bool
    conflict_value: Any = None
    created_at: datetime

    @classmethod
    def from_record(cls, record) -> "FieldEditRecordModel":
        return cls(
            id=record.id,
            target_type=record.target_type.value,
            target_id=record.target_id,
            field_name=record.field_name.value,
            previous_value=record.previous_value,
            new_value=record.new_value,
            source=record.source.value,
            edited_by=record.edited_by,
            has_conflict=record.has_conflict,
            conflict_value=record.conflict_value,
            created_at=record.created_at,
        )


class FieldEditResponse(BaseModel):
    edit: FieldEditRecordModel


class FieldHistoryResponse(BaseModel):
    history: List[FieldEditRecordModel]


class FieldWithEditModel(BaseModel):
    current_value: Any = None
    scraped_value: Any = None
    last_edit: Optional[FieldEditRecordModel] = None
    has_conflict: bool
    conflict_value: Any = None

    @classmethod
    def from_overlay(cls, field) -> "FieldWithEditModel":
        return cls(
            current_value=field.current_value,
            scraped_value=field.scraped_value,
            last_edit=FieldEditRecordModel.from_record(field.last_edit) if field.last_edit else None,
            has_conflict=field.has_conflict,
            conflict_value=field.conflict_value,
        )


class FieldCurrentResponse(BaseModel):
    field: FieldWithEditModel


class EntityEditsResponse(BaseModel):
    edits: Dict[str, FieldEditRecordModel]


class EntityOverlayRequest(BaseModel):
    target_type: str
    target_id: str
    snapshot: Dict[str, Any]


class EntityOverlayResponse(BaseModel):
    fields: Dict[str, FieldWithEditModel]


class ScraperValueRequest(BaseModel):
    target_type: str
    target_id: str
    field_name: str
    scraped_value: Any = None


class ScraperValueResponse(BaseModel):
    outcome: str
    has_conflict: bool
    edit_id: Optional[str] = None


class ConflictListResponse(BaseModel):
    conflicts: List[FieldEditRecordModel]


class ConflictResolveRequest(BaseModel):
    edit_id: str
    resolution: str

    @field_validator('edit_id')
    @classmethod
    def edit_id_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('edit_id cannot be empty')
        return v


class SuccessResponse(BaseModel):
    success: bool


class ClientEditCreateRequest(BaseModel):
    field_name: str
    new_value: Any
    source: str = "locator"


class ClientFieldEditModel(BaseModel):
    id: str
    client_id: str
    field_name: str
    previous_value: Any = None
    new_value: Any = None
    source: str
    edited_by: Optional[str] = None
    created_at: datetime
    is_preference_field: bool

    @classmethod
    def from_record(cls, record) -> "ClientFieldEditModel":
        return cls(
            id=record.id,
            client_id=record.client_id,
            field_name=record.field_name.value,
            previous_value=record.previous_value,
            new_value=record.new_value,
            source=record.source.value,
            edited_by=record.edited_by,
            created_at=record.created_at,
            is_preference_field=record.is_preference_field,
        )


class ClientEditResponse(BaseModel):
    edit: ClientFieldEditModel
    requires_rematch: bool


class ClientHistoryResponse(BaseModel):
    history: List[ClientFieldEditModel]


class ClientLastEditsResponse(BaseModel):
    edits: Dict[str, ClientFieldEditModel]


class HealthResponse(BaseModel):
    status: str
    version: str
    db_health: bool
    open_conflicts: int


class ErrorResponse(BaseModel):
    error_type: str
    message: str


# Error bodies produced by the FieldEditError handlers in main
ERROR_RESPONSES = {status: {"model": ErrorResponse} for status in (400, 403, 404, 409, 503)}
