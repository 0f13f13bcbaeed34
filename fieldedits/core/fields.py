"""
Editable field registry and value validation.
"""

from datetime import date
from typing import Any, Dict, FrozenSet, Iterable, Union

from .errors import ValidationError
from .schema import (
    BuildingField,
    ClientEditableField,
    ClientField,
    EditableField,
    FieldDataType,
    FIELDS_BY_TARGET,
    ListingField,
    TargetType,
    UnitField,
)


EDITABLE_FIELD_CONFIGS: Dict[ListingField, EditableField] = {
    UnitField.RENT_MIN: EditableField(
        target_type=TargetType.UNIT, field=UnitField.RENT_MIN, data_type=FieldDataType.NUMBER,
        label="Monthly Rent (Min)", prefix="$", suffix="/mo", placeholder="e.g., 1500",
    ),
    UnitField.RENT_MAX: EditableField(
        target_type=TargetType.UNIT, field=UnitField.RENT_MAX, data_type=FieldDataType.NUMBER,
        label="Monthly Rent (Max)", prefix="$", suffix="/mo", placeholder="e.g., 2000",
    ),
    BuildingField.DEPOSIT: EditableField(
        target_type=TargetType.BUILDING, field=BuildingField.DEPOSIT, data_type=FieldDataType.NUMBER,
        label="Security Deposit", prefix="$", placeholder="e.g., 500",
    ),
    BuildingField.ADMIN_FEE: EditableField(
        target_type=TargetType.BUILDING, field=BuildingField.ADMIN_FEE, data_type=FieldDataType.NUMBER,
        label="Application Fee", prefix="$", placeholder="e.g., 75",
    ),
    BuildingField.SPECIALS: EditableField(
        target_type=TargetType.BUILDING, field=BuildingField.SPECIALS, data_type=FieldDataType.TEXT,
        label="Current Specials", placeholder="e.g., 1 month free on 12+ month lease",
    ),
    BuildingField.PET_POLICY: EditableField(
        target_type=TargetType.BUILDING, field=BuildingField.PET_POLICY, data_type=FieldDataType.TEXT,
        label="Pet Policy", placeholder="e.g., Dogs allowed up to 50lbs",
    ),
    BuildingField.PARKING_TYPE: EditableField(
        target_type=TargetType.BUILDING, field=BuildingField.PARKING_TYPE, data_type=FieldDataType.TEXT,
        label="Parking", placeholder="e.g., Covered garage, $100/mo",
    ),
}


def _client(field, data_type, label, preference, placeholder=None):
    return ClientEditableField(field=field, data_type=data_type, label=label,
                               is_preference_field=preference, placeholder=placeholder)


CLIENT_FIELD_CONFIGS: Dict[ClientField, ClientEditableField] = {
    ClientField.NAME: _client(ClientField.NAME, FieldDataType.TEXT, "Name", False, "Client name"),
    ClientField.EMAIL: _client(ClientField.EMAIL, FieldDataType.TEXT, "Email", False, "email@example.com"),
    ClientField.PHONE: _client(ClientField.PHONE, FieldDataType.TEXT, "Phone", False, "(555) 555-5555"),
    ClientField.CONTACT_PREFERENCE: _client(ClientField.CONTACT_PREFERENCE, FieldDataType.TEXT,
                                            "Contact Preference", False, "e.g., Text, Email, Call"),
    ClientField.BUDGET_MIN: _client(ClientField.BUDGET_MIN, FieldDataType.NUMBER, "Min Budget", True, "1000"),
    ClientField.BUDGET_MAX: _client(ClientField.BUDGET_MAX, FieldDataType.NUMBER, "Max Budget", True, "2000"),
    ClientField.BEDROOMS: _client(ClientField.BEDROOMS, FieldDataType.ARRAY, "Bedrooms", True),
    ClientField.NEIGHBORHOODS: _client(ClientField.NEIGHBORHOODS, FieldDataType.ARRAY, "Preferred Neighborhoods", True),
    ClientField.AMENITIES: _client(ClientField.AMENITIES, FieldDataType.ARRAY, "Amenities", True),
    ClientField.MOVE_IN_DATE: _client(ClientField.MOVE_IN_DATE, FieldDataType.DATE, "Move-In Date", False),
    ClientField.VIBES: _client(ClientField.VIBES, FieldDataType.ARRAY, "Vibes", True),
    ClientField.PRIORITIES: _client(ClientField.PRIORITIES, FieldDataType.ARRAY, "Priorities", True),
    ClientField.HAS_DOG: _client(ClientField.HAS_DOG, FieldDataType.BOOLEAN, "Has Dog", True),
    ClientField.HAS_CAT: _client(ClientField.HAS_CAT, FieldDataType.BOOLEAN, "Has Cat", True),
    ClientField.HAS_KIDS: _client(ClientField.HAS_KIDS, FieldDataType.BOOLEAN, "Has Kids", True),
    ClientField.WORKS_FROM_HOME: _client(ClientField.WORKS_FROM_HOME, FieldDataType.BOOLEAN, "Works From Home", True),
    ClientField.NEEDS_PARKING: _client(ClientField.NEEDS_PARKING, FieldDataType.BOOLEAN, "Needs Parking", True),
    ClientField.COMMUTE_ADDRESS: _client(ClientField.COMMUTE_ADDRESS, FieldDataType.TEXT, "Commute To", True, "Work address"),
    ClientField.COMMUTE_PREFERENCE: _client(ClientField.COMMUTE_PREFERENCE, FieldDataType.TEXT,
                                            "Commute Preference", True, "e.g., driving, transit"),
    ClientField.NOTES: _client(ClientField.NOTES, FieldDataType.TEXT, "Notes", False, "Additional notes"),
    ClientField.STATUS: _client(ClientField.STATUS, FieldDataType.TEXT, "Status", False),
}

PREFERENCE_FIELDS: FrozenSet[ClientField] = frozenset(
    field for field, config in CLIENT_FIELD_CONFIGS.items() if config.is_preference_field
)


def parse_target_type(target_type: Union[str, TargetType]) -> TargetType:
    try:
        return TargetType(target_type)
    except ValueError:
        valid = [t.value for t in TargetType]
        raise ValidationError(f"Invalid target_type '{target_type}'. Must be one of: {valid}")


def parse_field(target_type: Union[str, TargetType], field_name: Union[str, ListingField]) -> ListingField:
    """Return the field enum member, or raise if it is not editable on this target type."""
    target = parse_target_type(target_type)
    field_enum = FIELDS_BY_TARGET[target]
    try:
        return field_enum(field_name)
    except ValueError:
        valid = [f.value for f in field_enum]
        raise ValidationError(
            f"Field '{getattr(field_name, 'value', field_name)}' is not editable on a {target.value}. "
            f"Must be one of: {valid}"
        )


def parse_client_field(field_name: Union[str, ClientField]) -> ClientField:
    try:
        return ClientField(field_name)
    except ValueError:
        raise ValidationError(f"Field '{field_name}' is not an editable client field")


def _check_type(data_type: FieldDataType, value: Any, name: str) -> Any:
    if value is None:
        return value

    if data_type == FieldDataType.NUMBER:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(f"Field '{name}' expects a number, got {type(value).__name__}")
    elif data_type == FieldDataType.TEXT:
        if not isinstance(value, str):
            raise ValidationError(f"Field '{name}' expects text, got {type(value).__name__}")
    elif data_type == FieldDataType.ARRAY:
        if not isinstance(value, list):
            raise ValidationError(f"Field '{name}' expects a list, got {type(value).__name__}")
    elif data_type == FieldDataType.BOOLEAN:
        if not isinstance(value, bool):
            raise ValidationError(f"Field '{name}' expects a boolean, got {type(value).__name__}")
    elif data_type == FieldDataType.DATE:
        if not isinstance(value, str):
            raise ValidationError(f"Field '{name}' expects an ISO date string, got {type(value).__name__}")
        try:
            date.fromisoformat(value)
        except ValueError:
            raise ValidationError(f"Field '{name}' expects an ISO date (YYYY-MM-DD), got '{value}'")
    return value


def validate_value(field: ListingField, value: Any) -> Any:
    """Check a listing field value against the field's declared data type."""
    return _check_type(EDITABLE_FIELD_CONFIGS[field].data_type, value, field.value)


def validate_client_value(field: ClientField, value: Any) -> Any:
    return _check_type(CLIENT_FIELD_CONFIGS[field].data_type, value, field.value)


def is_preference_field(field_name: Union[str, ClientField]) -> bool:
    try:
        return ClientField(field_name) in PREFERENCE_FIELDS
    except ValueError:
        return False


def requires_rematch(field_names: Iterable[Union[str, ClientField]]) -> bool:
    """True when any changed client field should trigger a re-run of matching."""
    return any(is_preference_field(name) for name in field_names)


def values_equal(left: Any, right: Any) -> bool:
    """Value equality for stored JSON values; 1500 == 1500.0 but True != 1."""
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(values_equal(a, b) for a, b in zip(left, right))
    return left == right
