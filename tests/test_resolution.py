"""
Tests for applying human resolutions to flagged conflicts.
"""

from unittest.mock import patch

import pytest

from fieldedits.core import dao
from fieldedits.core.conflicts import DetectionOutcome, record_scraper_value
from fieldedits.core.errors import (
    AuthorizationError,
    ConflictStateError,
    InvalidResolutionError,
    NotFoundError,
    PersistenceError,
)
from fieldedits.core.overlay import create_field_edit, field_history, resolve_field
from fieldedits.core.resolution import parse_resolution, resolve_conflict
from fieldedits.core.schema import EditSource, Resolution


@pytest.fixture
def flagged_rent(tenants):
    """Locator-a corrected 1500 to 1600 on their unit, then the scraper reported 1550."""
    record = create_field_edit("unit", "unit-a", "rent_min", 1600, "locator-a", scraped_value=1500)
    record_scraper_value("unit", "unit-a", "rent_min", 1550)
    return dao.get_edit(record.id)


class TestAcceptScraper:

    def test_accept_appends_scraper_record(self, flagged_rent):
        new_record = resolve_conflict(flagged_rent.id, "accept_scraper", "locator-a")

        assert new_record.previous_value == 1600
        assert new_record.new_value == 1550
        assert new_record.source == EditSource.SCRAPER
        assert new_record.edited_by is None
        assert new_record.has_conflict is False

        old = dao.get_edit(flagged_rent.id)
        assert old.has_conflict is False
        assert old.new_value == 1600

        field = resolve_field("unit", "unit-a", "rent_min", 1550)
        assert field.current_value == 1550
        assert field.has_conflict is False
        assert field.last_edit.id == new_record.id

    def test_accept_is_audited(self, flagged_rent):
        new_record = resolve_conflict(flagged_rent.id, Resolution.ACCEPT_SCRAPER, "locator-a")

        event = dao.list_events(edit_id=flagged_rent.id, action="conflict_accepted")[0]
        assert event["actor"] == "locator-a"
        assert event["payload"] == {"accepted_value": 1550, "replaced_value": 1600, "new_edit_id": new_record.id}

    def test_same_scrape_after_accept_converges(self, flagged_rent):
        resolve_conflict(flagged_rent.id, "accept_scraper", "locator-a")
        result = record_scraper_value("unit", "unit-a", "rent_min", 1550)
        assert result.outcome == DetectionOutcome.CONVERGED

    def test_accept_is_atomic(self, flagged_rent):
        with patch("fieldedits.core.dao.apply_flag_update", side_effect=PersistenceError("disk full")):
            with pytest.raises(PersistenceError):
                resolve_conflict(flagged_rent.id, "accept_scraper", "locator-a")

        assert [r.id for r in field_history("unit", "unit-a", "rent_min")] == [flagged_rent.id]
        assert dao.get_edit(flagged_rent.id).has_conflict is True
        assert dao.list_events(action="conflict_accepted") == []


class TestKeepLocator:

    def test_keep_clears_flags_without_new_record(self, flagged_rent):
        assert resolve_conflict(flagged_rent.id, "keep_locator", "locator-a") is None

        record = dao.get_edit(flagged_rent.id)
        assert record.has_conflict is False
        assert record.new_value == 1600
        assert len(field_history("unit", "unit-a", "rent_min")) == 1

        field = resolve_field("unit", "unit-a", "rent_min", 1550)
        assert field.current_value == 1600
        assert field.has_conflict is False

    def test_dismissed_value_is_flagged_again_when_scraped(self, flagged_rent):
        resolve_conflict(flagged_rent.id, "keep_locator", "locator-a")

        result = record_scraper_value("unit", "unit-a", "rent_min", 1550)

        record = dao.get_edit(flagged_rent.id)
        assert result.outcome == DetectionOutcome.FLAGGED
        assert record.has_conflict is True
        assert record.conflict_value == 1550
        assert record.new_value == 1600

    def test_original_baseline_after_keep_is_not_a_conflict(self, flagged_rent):
        resolve_conflict(flagged_rent.id, "keep_locator", "locator-a")

        result = record_scraper_value("unit", "unit-a", "rent_min", 1500)
        assert result.outcome == DetectionOutcome.RECONFIRMED
        assert dao.get_edit(flagged_rent.id).has_conflict is False


class TestResolutionErrors:

    def test_unflagged_record_raises_conflict_state(self, tenants):
        record = create_field_edit("unit", "unit-a", "rent_min", 1600, "locator-a", scraped_value=1500)
        with pytest.raises(ConflictStateError):
            resolve_conflict(record.id, "keep_locator", "locator-a")

    def test_resolution_cannot_be_applied_twice(self, flagged_rent):
        resolve_conflict(flagged_rent.id, "accept_scraper", "locator-a")
        with pytest.raises(ConflictStateError):
            resolve_conflict(flagged_rent.id, "accept_scraper", "locator-a")
        assert len(field_history("unit", "unit-a", "rent_min")) == 2

    def test_unknown_edit(self, tenants):
        with pytest.raises(NotFoundError):
            resolve_conflict("missing", "keep_locator", "locator-a")

    def test_invalid_resolution(self, flagged_rent):
        with pytest.raises(InvalidResolutionError):
            resolve_conflict(flagged_rent.id, "split_the_difference", "locator-a")
        with pytest.raises(InvalidResolutionError):
            parse_resolution("KEEP_LOCATOR")
        assert dao.get_edit(flagged_rent.id).has_conflict is True

    def test_other_tenant_cannot_resolve(self, flagged_rent):
        with pytest.raises(AuthorizationError):
            resolve_conflict(flagged_rent.id, "accept_scraper", "locator-b")

        assert dao.get_edit(flagged_rent.id).has_conflict is True
        assert len(field_history("unit", "unit-a", "rent_min")) == 1

    def test_unregistered_member_cannot_resolve(self, flagged_rent):
        with pytest.raises(AuthorizationError):
            resolve_conflict(flagged_rent.id, "keep_locator", "stranger")

    def test_concurrent_resolution_loses_compare_and_set(self, flagged_rent):
        with patch("fieldedits.core.dao.apply_flag_update", return_value=False):
            with pytest.raises(ConflictStateError):
                resolve_conflict(flagged_rent.id, "accept_scraper", "locator-a")

        assert len(field_history("unit", "unit-a", "rent_min")) == 1


class TestScraperSourcedRecords:

    def test_accepted_record_can_be_flagged_by_a_later_scrape(self, flagged_rent):
        new_record = resolve_conflict(flagged_rent.id, "accept_scraper", "locator-a")

        result = record_scraper_value("unit", "unit-a", "rent_min", 1575)

        assert result.outcome == DetectionOutcome.FLAGGED
        assert result.edit_id == new_record.id
        assert dao.get_edit(new_record.id).conflict_value == 1575
