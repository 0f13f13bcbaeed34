"""
Conflict detector: decides at scraper-refresh time whether an incoming
scraped value is just the new baseline or must wait for a human.
"""

import sqlite3
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from . import dao
from .config import audit_superseded_conflicts
from .errors import ConflictStateError
from .fields import parse_field, parse_target_type, validate_value, values_equal
from .schema import (
    EditSource,
    FieldEditRecord,
    FIELDS_BY_TARGET,
    FlagUpdate,
    ListingField,
    TargetType,
)
from ..util.logging import logger

SCRAPER_ACTOR = "scraper"


class DetectionOutcome(str, Enum):
    BASELINE = "baseline"          # no edit history, scraped value is the baseline
    CONVERGED = "converged"        # scraped value now equals the human correction
    RECONFIRMED = "reconfirmed"    # scraper repeated a value the human already saw
    UNCHANGED = "unchanged"        # same conflicting value as before
    FLAGGED = "flagged"            # new conflict raised
    REPLACED = "replaced"          # conflict value replaced by a newer one


@dataclass
class DetectionResult:
    outcome: DetectionOutcome
    has_conflict: bool
    edit_id: Optional[str] = None

    def to_dict(self) -> Dict:
        return {"outcome": self.outcome.value, "has_conflict": self.has_conflict, "edit_id": self.edit_id}


def acknowledged_values(history: List[FieldEditRecord]) -> List[Any]:
    """
    Scraped values the humans behind the latest edit had already seen.

    Walks the previous_value chain back to the last scraper-sourced record.
    A scraper-sourced latest record acknowledges nothing beyond its own
    new_value.
    """
    if history[0].source == EditSource.SCRAPER:
        return []

    values = []
    for record in history:
        if record.source == EditSource.SCRAPER:
            values.append(record.new_value)
            break
        values.append(record.previous_value)
    return values


def _compare_and_set(update: FlagUpdate, conn: sqlite3.Connection):
    if not dao.apply_flag_update(update, conn=conn):
        raise ConflictStateError(f"Edit {update.edit_id} changed concurrently; flag update not applied")


def _clear(latest: FieldEditRecord, reason: str, conn: sqlite3.Connection):
    _compare_and_set(FlagUpdate.clear(latest), conn)
    dao.add_event(SCRAPER_ACTOR, "conflict_cleared", latest, {
        "reason": reason,
        "conflict_value": latest.conflict_value,
    }, conn=conn)


def record_scraper_value(target_type: Union[str, TargetType], target_id: str,
                         field_name: Union[str, ListingField], scraped_value: Any) -> DetectionResult:
    """Compare a freshly scraped value against the field's latest edit record.

    Never creates an edit record; at most it flips the conflict flags of the
    latest one, under a compare-and-set inside a write transaction.
    """
    target = parse_target_type(target_type)
    field = parse_field(target, field_name)
    validate_value(field, scraped_value)

    with dao.transaction() as conn:
        history = dao.history_for(target, target_id, field, conn=conn)
        if not history:
            return DetectionResult(DetectionOutcome.BASELINE, False)

        latest = history[0]

        if values_equal(scraped_value, latest.new_value):
            if latest.has_conflict:
                _clear(latest, DetectionOutcome.CONVERGED.value, conn)
            result = DetectionResult(DetectionOutcome.CONVERGED, False, latest.id)

        elif latest.has_conflict and values_equal(scraped_value, latest.conflict_value):
            result = DetectionResult(DetectionOutcome.UNCHANGED, True, latest.id)

        elif latest.has_conflict:
            # Most recent differing value wins, even one the edit chain already saw
            _compare_and_set(FlagUpdate.flag(latest, scraped_value), conn)
            if audit_superseded_conflicts():
                dao.add_event(SCRAPER_ACTOR, "conflict_value_superseded", latest, {
                    "superseded_value": latest.conflict_value,
                    "conflict_value": scraped_value,
                }, conn=conn)
            result = DetectionResult(DetectionOutcome.REPLACED, True, latest.id)

        elif any(values_equal(scraped_value, value) for value in acknowledged_values(history)):
            result = DetectionResult(DetectionOutcome.RECONFIRMED, False, latest.id)

        else:
            _compare_and_set(FlagUpdate.flag(latest, scraped_value), conn)
            dao.add_event(SCRAPER_ACTOR, "conflict_flagged", latest, {
                "edit_value": latest.new_value,
                "conflict_value": scraped_value,
            }, conn=conn)
            result = DetectionResult(DetectionOutcome.FLAGGED, True, latest.id)

    if result.outcome in (DetectionOutcome.FLAGGED, DetectionOutcome.REPLACED):
        logger.log_conflict_flagged(latest.id, field.value, replaced=result.outcome == DetectionOutcome.REPLACED)
    elif latest.has_conflict and not result.has_conflict:
        logger.log_conflict_cleared(latest.id, result.outcome.value)

    return result


def record_scraper_snapshot(target_type: Union[str, TargetType], target_id: str,
                            snapshot: Mapping[str, Any]) -> Dict[str, DetectionResult]:
    """Run detection for every editable field present in a scraped entity snapshot.

    Each field is checked in its own short transaction.
    """
    target = parse_target_type(target_type)
    results = {}
    for field in FIELDS_BY_TARGET[target]:
        if field.value in snapshot:
            results[field.value] = record_scraper_value(target, target_id, field, snapshot[field.value])
    return results
