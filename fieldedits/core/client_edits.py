"""
Client field edits: the same append-only log, scoped to a client record.

Clients have no scraped counterpart, so these records never conflict.
"""

from typing import Any, Dict, Iterable, List, Union

from . import dao
from .errors import ValidationError
from .fields import parse_client_field, requires_rematch, validate_client_value
from .schema import ClientField, ClientFieldEditRecord, ClientFieldWithEdit, EditSource
from ..util.logging import audit_event, logger


class _Unset:
    def __repr__(self):
        return "UNSET"


UNSET = _Unset()


def create_client_field_edit(client_id: str, field_name: Union[str, ClientField], new_value: Any,
                             edited_by: str, previous_value: Any = UNSET,
                             source: Union[str, EditSource] = EditSource.LOCATOR) -> ClientFieldEditRecord:
    """
    Record a correction to a client field.

    When previous_value is not given it is taken from the field's latest edit,
    falling back to None for a field that was never edited.
    """
    field = parse_client_field(field_name)
    validate_client_value(field, new_value)

    try:
        source = EditSource(source)
    except ValueError:
        raise ValidationError(f"Invalid source '{source}'")
    if source == EditSource.SCRAPER:
        raise ValidationError("Client fields have no scraper source")
    if not edited_by:
        raise ValidationError("edited_by is required for a client edit")
    if not client_id:
        raise ValidationError("client_id is required")

    with dao.transaction() as conn:
        if previous_value is UNSET:
            history = dao.client_history_for(client_id, field, conn=conn)
            previous_value = history[0].new_value if history else None

        record = dao.append_client_edit(client_id, field, previous_value, new_value,
                                        source, edited_by, conn=conn)

    logger.log_edit_created(record.id, f"client:{client_id}", field.value, source.value, edited_by)
    # Keyed by field name so contact fields are redacted
    audit_event("edit.client", {"edit_id": record.id, "client_id": client_id, "edited_by": edited_by}, {
        field.value: {"previous_value": previous_value, "new_value": new_value},
    })
    return record


def client_field_history(client_id: str, field_name: Union[str, ClientField]) -> List[ClientFieldEditRecord]:
    """Edit history for one client field, most recent first."""
    return dao.client_history_for(client_id, parse_client_field(field_name))


def client_last_edits(client_id: str) -> Dict[str, ClientFieldEditRecord]:
    """Most recent edit for each edited field of a client."""
    return dao.client_last_records(client_id)


def resolve_client_field(client_id: str, field_name: Union[str, ClientField],
                         stored_value: Any) -> ClientFieldWithEdit:
    """Current value of a client field: the latest edit, else the stored value."""
    history = client_field_history(client_id, field_name)
    if not history:
        return ClientFieldWithEdit(current_value=stored_value, last_edit=None)
    return ClientFieldWithEdit(current_value=history[0].new_value, last_edit=history[0])


def preference_fields_changed(records: Iterable[ClientFieldEditRecord]) -> List[str]:
    """Names of preference fields among the given edits, in first-seen order."""
    seen = []
    for record in records:
        if record.is_preference_field and record.field_name.value not in seen:
            seen.append(record.field_name.value)
    return seen


def edits_require_rematch(records: Iterable[ClientFieldEditRecord]) -> bool:
    return requires_rematch(record.field_name for record in records)
