"""
Resolution engine: applies a human decision to a flagged conflict.
"""

from typing import Optional, Union

from . import dao
from .errors import ConflictStateError, InvalidResolutionError, NotFoundError
from .ownership import OwnershipResolver, ownership as default_ownership
from .schema import EditSource, FieldEditRecord, FlagUpdate, NewFieldEdit, Resolution
from ..util.logging import logger


def parse_resolution(resolution: Union[str, Resolution]) -> Resolution:
    try:
        return Resolution(resolution)
    except ValueError:
        valid = [r.value for r in Resolution]
        raise InvalidResolutionError(f"Invalid resolution '{resolution}'. Must be one of: {valid}")


def resolve_conflict(edit_id: str, resolution: Union[str, Resolution], resolved_by: str,
                     ownership: Optional[OwnershipResolver] = None) -> Optional[FieldEditRecord]:
    """
    Close a conflict on an edit record.

    keep_locator clears the flags and leaves the correction standing.
    accept_scraper appends a scraper-sourced record carrying the conflict value
    and clears the old record's flags; both writes commit together or not at
    all. A record that is not currently flagged raises ConflictStateError, so
    a resolution can never be applied twice.

    Returns the new record for accept_scraper, None for keep_locator.
    """
    decision = parse_resolution(resolution)
    ownership = ownership or default_ownership

    new_record = None
    with dao.transaction() as conn:
        record = dao.get_edit(edit_id, conn=conn)
        if record is None:
            raise NotFoundError(f"Edit {edit_id} not found")

        ownership.assert_can_modify(record.target_type.value, record.target_id, resolved_by)

        if not record.has_conflict:
            raise ConflictStateError(f"Edit {edit_id} has no conflict to resolve")

        if decision == Resolution.ACCEPT_SCRAPER:
            new_record = dao.append(NewFieldEdit(
                target_type=record.target_type,
                target_id=record.target_id,
                field_name=record.field_name,
                previous_value=record.new_value,
                new_value=record.conflict_value,
                source=EditSource.SCRAPER,
                edited_by=None,
            ), conn=conn)

        if not dao.apply_flag_update(FlagUpdate.clear(record), conn=conn):
            raise ConflictStateError(f"Edit {edit_id} was resolved concurrently")

        if decision == Resolution.KEEP_LOCATOR:
            dao.add_event(resolved_by, "conflict_kept", record, {
                "dismissed_value": record.conflict_value,
                "kept_value": record.new_value,
            }, conn=conn)
        else:
            dao.add_event(resolved_by, "conflict_accepted", record, {
                "accepted_value": record.conflict_value,
                "replaced_value": record.new_value,
                "new_edit_id": new_record.id,
            }, conn=conn)

    logger.log_conflict_resolved(edit_id, decision.value, resolved_by,
                                 new_edit_id=new_record.id if new_record else None)
    return new_record
