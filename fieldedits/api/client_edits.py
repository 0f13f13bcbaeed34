"""
Client field edit endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..core.client_edits import (
    client_field_history,
    client_last_edits,
    create_client_field_edit,
    edits_require_rematch,
)
from ..core.errors import ValidationError
from ..core.ownership import OwnershipResolver
from .deps import get_editor_id, get_ownership
from .schemas import (
    ERROR_RESPONSES,
    ClientEditCreateRequest,
    ClientEditResponse,
    ClientFieldEditModel,
    ClientHistoryResponse,
    ClientLastEditsResponse,
)

CLIENT_ENTITY = "client"

router = APIRouter(responses=ERROR_RESPONSES)


@router.post("/{client_id}/edits", response_model=ClientEditResponse)
def create_client_edit_endpoint(client_id: str, request: ClientEditCreateRequest,
                                editor_id: str = Depends(get_editor_id),
                                ownership: OwnershipResolver = Depends(get_ownership)):
    """Record a correction to one client field."""
    ownership.assert_can_modify(CLIENT_ENTITY, client_id, editor_id)

    record = create_client_field_edit(client_id, request.field_name, request.new_value,
                                      edited_by=editor_id, source=request.source)
    return ClientEditResponse(
        edit=ClientFieldEditModel.from_record(record),
        requires_rematch=edits_require_rematch([record]),
    )


@router.get("/{client_id}/history")
def get_client_history_endpoint(client_id: str,
                                field_name: Optional[str] = None,
                                mode: str = Query("last", pattern="^(last|history)$"),
                                editor_id: str = Depends(get_editor_id),
                                ownership: OwnershipResolver = Depends(get_ownership)):
    """Last edit per field (default) or full history of one field."""
    ownership.assert_can_modify(CLIENT_ENTITY, client_id, editor_id)

    if mode == "history":
        if not field_name:
            raise ValidationError("field_name is required for mode=history")
        history = client_field_history(client_id, field_name)
        return ClientHistoryResponse(history=[ClientFieldEditModel.from_record(r) for r in history])

    edits = client_last_edits(client_id)
    return ClientLastEditsResponse(edits={
        name: ClientFieldEditModel.from_record(record) for name, record in edits.items()
    })
