"""
Record types for the edit overlay.

Field names are closed enums partitioned by target type; a record can only be
built with a field that belongs to its target type's enum.
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union


class TargetType(str, Enum):
    UNIT = "unit"
    BUILDING = "building"


class UnitField(str, Enum):
    RENT_MIN = "rent_min"
    RENT_MAX = "rent_max"


class BuildingField(str, Enum):
    DEPOSIT = "deposit"
    ADMIN_FEE = "admin_fee"
    SPECIALS = "specials"
    PET_POLICY = "pet_policy"
    PARKING_TYPE = "parking_type"


class ClientField(str, Enum):
    # Contact info
    NAME = "name"
    EMAIL = "email"
    PHONE = "phone"
    CONTACT_PREFERENCE = "contact_preference"
    # Budget
    BUDGET_MIN = "budget_min"
    BUDGET_MAX = "budget_max"
    # Requirements
    BEDROOMS = "bedrooms"
    NEIGHBORHOODS = "neighborhoods"
    AMENITIES = "amenities"
    MOVE_IN_DATE = "move_in_date"
    # Lifestyle
    VIBES = "vibes"
    PRIORITIES = "priorities"
    HAS_DOG = "has_dog"
    HAS_CAT = "has_cat"
    HAS_KIDS = "has_kids"
    WORKS_FROM_HOME = "works_from_home"
    NEEDS_PARKING = "needs_parking"
    # Commute
    COMMUTE_ADDRESS = "commute_address"
    COMMUTE_PREFERENCE = "commute_preference"
    # Other
    NOTES = "notes"
    STATUS = "status"


ListingField = Union[UnitField, BuildingField]

FIELDS_BY_TARGET = {
    TargetType.UNIT: UnitField,
    TargetType.BUILDING: BuildingField,
}


class EditSource(str, Enum):
    SCRAPER = "scraper"
    LOCATOR = "locator"
    ADMIN = "admin"


class Resolution(str, Enum):
    KEEP_LOCATOR = "keep_locator"
    ACCEPT_SCRAPER = "accept_scraper"


class FieldDataType(str, Enum):
    NUMBER = "number"
    TEXT = "text"
    ARRAY = "array"
    BOOLEAN = "boolean"
    DATE = "date"


@dataclass(frozen=True)
class EditableField:
    target_type: TargetType
    field: ListingField
    data_type: FieldDataType
    label: str
    prefix: Optional[str] = None
    suffix: Optional[str] = None
    placeholder: Optional[str] = None


@dataclass(frozen=True)
class ClientEditableField:
    field: ClientField
    data_type: FieldDataType
    label: str
    is_preference_field: bool
    placeholder: Optional[str] = None


@dataclass(frozen=True)
class NewFieldEdit:
    """Draft of an edit record; the store assigns id and created_at."""
    target_type: TargetType
    target_id: str
    field_name: ListingField
    previous_value: Any
    new_value: Any
    source: EditSource
    edited_by: Optional[str]


@dataclass(frozen=True)
class FieldEditRecord:
    id: str
    target_type: TargetType
    target_id: str
    field_name: ListingField
    previous_value: Any
    new_value: Any
    source: EditSource
    edited_by: Optional[str]
    has_conflict: bool
    conflict_value: Any
    created_at: datetime
    flag_version: int = 0

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["target_type"] = self.target_type.value
        data["field_name"] = self.field_name.value
        data["source"] = self.source.value
        data["created_at"] = self.created_at.isoformat()
        return data


@dataclass(frozen=True)
class FlagUpdate:
    """The one permitted mutation: conflict flags of an existing record.

    Applied as a compare-and-set against ``expected_version``.
    """
    edit_id: str
    expected_version: int
    has_conflict: bool
    conflict_value: Any = None

    @classmethod
    def clear(cls, record: FieldEditRecord) -> "FlagUpdate":
        return cls(edit_id=record.id, expected_version=record.flag_version,
                   has_conflict=False, conflict_value=None)

    @classmethod
    def flag(cls, record: FieldEditRecord, conflict_value: Any) -> "FlagUpdate":
        return cls(edit_id=record.id, expected_version=record.flag_version,
                   has_conflict=True, conflict_value=conflict_value)


@dataclass
class FieldWithEdit:
    current_value: Any
    scraped_value: Any
    last_edit: Optional[FieldEditRecord]
    has_conflict: bool

    @property
    def conflict_value(self) -> Any:
        if self.has_conflict and self.last_edit is not None:
            return self.last_edit.conflict_value
        return None


@dataclass(frozen=True)
class ClientFieldEditRecord:
    id: str
    client_id: str
    field_name: ClientField
    previous_value: Any
    new_value: Any
    source: EditSource
    edited_by: Optional[str]
    created_at: datetime

    @property
    def is_preference_field(self) -> bool:
        from .fields import CLIENT_FIELD_CONFIGS
        return CLIENT_FIELD_CONFIGS[self.field_name].is_preference_field


@dataclass
class ClientFieldWithEdit:
    current_value: Any
    last_edit: Optional[ClientFieldEditRecord]
