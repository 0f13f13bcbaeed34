"""
Tests for client field edits and rematch detection.
"""

import pytest

from fieldedits.core.client_edits import (
    client_field_history,
    client_last_edits,
    create_client_field_edit,
    edits_require_rematch,
    preference_fields_changed,
    resolve_client_field,
)
from fieldedits.core.errors import ValidationError
from fieldedits.core.schema import ClientField, EditSource


class TestCreateClientEdit:

    def test_previous_value_defaults_to_latest_edit(self, test_db):
        first = create_client_field_edit("client-1", "budget_max", 2000, "locator-a")
        second = create_client_field_edit("client-1", "budget_max", 2200, "locator-a")

        assert first.previous_value is None
        assert second.previous_value == 2000
        assert second.field_name is ClientField.BUDGET_MAX
        assert second.source == EditSource.LOCATOR

    def test_explicit_previous_value(self, test_db):
        record = create_client_field_edit("client-1", "email", "new@example.com", "locator-a",
                                          previous_value="old@example.com")
        assert record.previous_value == "old@example.com"

    def test_validation(self, test_db):
        with pytest.raises(ValidationError):
            create_client_field_edit("client-1", "rent_min", 1500, "locator-a")
        with pytest.raises(ValidationError):
            create_client_field_edit("client-1", "has_dog", "yes", "locator-a")
        with pytest.raises(ValidationError):
            create_client_field_edit("client-1", "notes", "call after 5", "locator-a", source="scraper")
        with pytest.raises(ValidationError):
            create_client_field_edit("client-1", "notes", "call after 5", "")

        assert client_last_edits("client-1") == {}


class TestClientReads:

    def test_history_and_last_edits(self, test_db):
        create_client_field_edit("client-1", "neighborhoods", ["Uptown"], "locator-a")
        create_client_field_edit("client-1", "neighborhoods", ["Uptown", "Bishop Arts"], "locator-a")
        create_client_field_edit("client-1", "phone", "214-555-0100", "locator-a")
        create_client_field_edit("client-2", "phone", "214-555-0199", "locator-b")

        history = client_field_history("client-1", "neighborhoods")
        assert [r.new_value for r in history] == [["Uptown", "Bishop Arts"], ["Uptown"]]

        last = client_last_edits("client-1")
        assert set(last) == {"neighborhoods", "phone"}
        assert last["phone"].new_value == "214-555-0100"

    def test_resolve_client_field(self, test_db):
        assert resolve_client_field("client-1", "status", "active").current_value == "active"

        record = create_client_field_edit("client-1", "status", "leased", "locator-a")
        field = resolve_client_field("client-1", "status", "active")
        assert field.current_value == "leased"
        assert field.last_edit.id == record.id


class TestRematch:

    def test_preference_change_requires_rematch(self, test_db):
        records = [
            create_client_field_edit("client-1", "email", "a@example.com", "locator-a"),
            create_client_field_edit("client-1", "has_dog", True, "locator-a"),
            create_client_field_edit("client-1", "has_dog", False, "locator-a"),
            create_client_field_edit("client-1", "bedrooms", [1, 2], "locator-a"),
        ]

        assert edits_require_rematch(records)
        assert preference_fields_changed(records) == ["has_dog", "bedrooms"]
        assert records[1].is_preference_field
        assert not records[0].is_preference_field

    def test_contact_changes_do_not_require_rematch(self, test_db):
        records = [
            create_client_field_edit("client-1", "email", "a@example.com", "locator-a"),
            create_client_field_edit("client-1", "notes", "prefers mornings", "locator-a"),
        ]
        assert not edits_require_rematch(records)
        assert preference_fields_changed(records) == []
