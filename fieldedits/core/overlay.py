"""
Overlay resolver: the value of a field right now, given the scraper's current
snapshot and the field's edit history. Also the human correction write path.
"""

from typing import Any, List, Optional, Union

from . import dao
from .errors import ConflictStateError, ValidationError
from .fields import parse_field, parse_target_type, validate_value
from .schema import (
    EditSource,
    FieldEditRecord,
    FieldWithEdit,
    FlagUpdate,
    ListingField,
    NewFieldEdit,
    TargetType,
)
from ..util.logging import logger


def overlay(last_edit: Optional[FieldEditRecord], scraped_value: Any) -> FieldWithEdit:
    """Layer the most recent edit (if any) over a scraped value.

    The edit's new_value wins whether or not it is conflicted; a conflicted
    edit stays authoritative for display until a human resolves it.
    """
    if last_edit is None:
        return FieldWithEdit(
            current_value=scraped_value,
            scraped_value=scraped_value,
            last_edit=None,
            has_conflict=False,
        )

    return FieldWithEdit(
        current_value=last_edit.new_value,
        scraped_value=scraped_value,
        last_edit=last_edit,
        has_conflict=last_edit.has_conflict,
    )


def resolve_field(target_type: Union[str, TargetType], target_id: str,
                  field_name: Union[str, ListingField], scraped_value: Any) -> FieldWithEdit:
    """Current value of one field. Pure read; store failures propagate."""
    target = parse_target_type(target_type)
    field = parse_field(target, field_name)
    return overlay(dao.latest_for(target, target_id, field), scraped_value)


def field_history(target_type: Union[str, TargetType], target_id: str,
                  field_name: Union[str, ListingField]) -> List[FieldEditRecord]:
    """Full edit history for a field, most recent first."""
    target = parse_target_type(target_type)
    field = parse_field(target, field_name)
    return dao.history_for(target, target_id, field)


def create_field_edit(target_type: Union[str, TargetType], target_id: str,
                      field_name: Union[str, ListingField], new_value: Any, edited_by: str,
                      source: Union[str, EditSource] = EditSource.LOCATOR,
                      scraped_value: Any = None) -> FieldEditRecord:
    """
    Record a human correction.

    Validation happens before any write. previous_value is the current
    overlay value: the latest edit's new_value, or ``scraped_value`` when the
    field has never been edited. Concurrent corrections are last-writer-wins.
    """
    target = parse_target_type(target_type)
    field = parse_field(target, field_name)
    validate_value(field, new_value)

    try:
        source = EditSource(source)
    except ValueError:
        raise ValidationError(f"Invalid source '{source}'")
    if source == EditSource.SCRAPER:
        raise ValidationError("Scraper values are recorded through conflict detection, not as corrections")
    if not edited_by:
        raise ValidationError("edited_by is required for a human correction")
    if not target_id:
        raise ValidationError("target_id is required")

    with dao.transaction() as conn:
        latest = dao.latest_for(target, target_id, field, conn=conn)
        previous_value = latest.new_value if latest else scraped_value

        record = dao.append(NewFieldEdit(
            target_type=target,
            target_id=target_id,
            field_name=field,
            previous_value=previous_value,
            new_value=new_value,
            source=source,
            edited_by=edited_by,
        ), conn=conn)

        # A fresh correction acknowledges whatever the pending conflict showed
        if latest is not None and latest.has_conflict:
            if not dao.apply_flag_update(FlagUpdate.clear(latest), conn=conn):
                raise ConflictStateError(f"Edit {latest.id} changed concurrently; correction not applied")
            dao.add_event(edited_by, "conflict_superseded", latest, {
                "superseded_by": record.id,
                "conflict_value": latest.conflict_value,
            }, conn=conn)

        dao.add_event(edited_by, "edit_created", record, {
            "previous_value": previous_value,
            "new_value": new_value,
            "source": source.value,
        }, conn=conn)

    logger.log_edit_created(record.id, f"{target.value}:{target_id}", field.value, source.value, edited_by)
    if latest is not None and latest.has_conflict:
        logger.log_conflict_cleared(latest.id, "superseded_by_new_edit")

    return record
