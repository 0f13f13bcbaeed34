"""
Entity edit aggregator: overlay results for every edited field of one entity.
"""

from typing import Any, Dict, Mapping, Union

from . import dao
from .fields import parse_target_type
from .overlay import overlay
from .schema import FieldEditRecord, FieldWithEdit, TargetType


def entity_field_edits(target_type: Union[str, TargetType], target_id: str) -> Dict[str, FieldEditRecord]:
    """Most recent edit per field for an entity."""
    return dao.last_records_for(parse_target_type(target_type), target_id)


def aggregate_entity(target_type: Union[str, TargetType], target_id: str,
                     snapshot: Mapping[str, Any]) -> Dict[str, FieldWithEdit]:
    """
    Overlay every edited field of an entity onto the caller's scraped snapshot.

    Reads the store once. Fields with no edit history are left out of the
    result; callers treat a missing field as equal to its scraped baseline.
    """
    last_edits = entity_field_edits(target_type, target_id)
    return {
        field_name: overlay(record, snapshot.get(field_name))
        for field_name, record in last_edits.items()
    }
