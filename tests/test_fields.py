"""
Tests for the editable field registry and value validation.
"""

import pytest

from fieldedits.core.errors import ValidationError
from fieldedits.core.fields import (
    CLIENT_FIELD_CONFIGS,
    EDITABLE_FIELD_CONFIGS,
    PREFERENCE_FIELDS,
    is_preference_field,
    parse_client_field,
    parse_field,
    parse_target_type,
    requires_rematch,
    validate_client_value,
    validate_value,
    values_equal,
)
from fieldedits.core.schema import (
    BuildingField,
    ClientField,
    FieldDataType,
    TargetType,
    UnitField,
)


class TestFieldRegistry:
    """Field names are partitioned by target type."""

    def test_every_listing_field_has_a_config(self):
        for field in list(UnitField) + list(BuildingField):
            assert field in EDITABLE_FIELD_CONFIGS

    def test_config_target_matches_enum(self):
        for field in UnitField:
            assert EDITABLE_FIELD_CONFIGS[field].target_type == TargetType.UNIT
        for field in BuildingField:
            assert EDITABLE_FIELD_CONFIGS[field].target_type == TargetType.BUILDING

    def test_rent_is_a_number_with_display_formatting(self):
        config = EDITABLE_FIELD_CONFIGS[UnitField.RENT_MIN]
        assert config.data_type == FieldDataType.NUMBER
        assert config.prefix == "$"
        assert config.suffix == "/mo"
        assert config.label == "Monthly Rent (Min)"

    def test_parse_field_accepts_matching_partition(self):
        assert parse_field("unit", "rent_min") is UnitField.RENT_MIN
        assert parse_field(TargetType.BUILDING, "pet_policy") is BuildingField.PET_POLICY

    def test_parse_field_rejects_field_of_other_target(self):
        with pytest.raises(ValidationError):
            parse_field("unit", "deposit")
        with pytest.raises(ValidationError):
            parse_field("building", "rent_max")

    def test_parse_field_rejects_unknown_names(self):
        with pytest.raises(ValidationError):
            parse_field("unit", "rentMin")
        with pytest.raises(ValidationError):
            parse_field("unit", "square_feet")

    def test_parse_target_type_rejects_unknown(self):
        with pytest.raises(ValidationError):
            parse_target_type("parcel")

    def test_client_fields(self):
        assert parse_client_field("budget_min") is ClientField.BUDGET_MIN
        with pytest.raises(ValidationError):
            parse_client_field("rent_min")
        assert set(CLIENT_FIELD_CONFIGS) == set(ClientField)


class TestPreferenceFields:

    def test_preference_fields(self):
        for name in ["budget_min", "budget_max", "bedrooms", "neighborhoods", "amenities", "vibes",
                     "priorities", "has_dog", "has_cat", "has_kids", "works_from_home",
                     "needs_parking", "commute_address", "commute_preference"]:
            assert is_preference_field(name), name

    def test_contact_and_free_text_fields_are_not_preferences(self):
        for name in ["name", "email", "phone", "contact_preference", "notes", "status", "move_in_date"]:
            assert not is_preference_field(name), name

    def test_requires_rematch(self):
        assert requires_rematch(["email", "budget_max"])
        assert not requires_rematch(["email", "notes"])
        assert not requires_rematch([])
        assert len(PREFERENCE_FIELDS) == 14


class TestValueValidation:

    def test_number_field_accepts_int_and_float(self):
        assert validate_value(UnitField.RENT_MIN, 1500) == 1500
        assert validate_value(UnitField.RENT_MIN, 1499.5) == 1499.5

    def test_number_field_rejects_numeric_string_and_bool(self):
        with pytest.raises(ValidationError):
            validate_value(UnitField.RENT_MIN, "1500")
        with pytest.raises(ValidationError):
            validate_value(UnitField.RENT_MIN, True)

    def test_text_field_rejects_number(self):
        with pytest.raises(ValidationError):
            validate_value(BuildingField.SPECIALS, 12)

    def test_none_clears_any_field(self):
        assert validate_value(BuildingField.DEPOSIT, None) is None
        assert validate_client_value(ClientField.BEDROOMS, None) is None

    def test_client_types(self):
        assert validate_client_value(ClientField.NEIGHBORHOODS, ["Uptown", "Deep Ellum"])
        assert validate_client_value(ClientField.HAS_DOG, False) is False
        assert validate_client_value(ClientField.MOVE_IN_DATE, "2026-11-01") == "2026-11-01"
        with pytest.raises(ValidationError):
            validate_client_value(ClientField.NEIGHBORHOODS, "Uptown")
        with pytest.raises(ValidationError):
            validate_client_value(ClientField.HAS_DOG, "yes")
        with pytest.raises(ValidationError):
            validate_client_value(ClientField.MOVE_IN_DATE, "next month")


class TestValuesEqual:

    def test_numbers_compare_by_value(self):
        assert values_equal(1500, 1500.0)
        assert not values_equal(1500, 1550)

    def test_bool_is_not_int(self):
        assert not values_equal(True, 1)
        assert values_equal(False, False)

    def test_lists_and_none(self):
        assert values_equal([1, 2], [1, 2.0])
        assert not values_equal([1, 2], [2, 1])
        assert values_equal(None, None)
        assert not values_equal(None, 0)
