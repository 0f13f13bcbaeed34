"""
Shared fixtures: a fresh SQLite database per test.
"""

import pytest

from fieldedits.core import db
from fieldedits.core.ownership import ownership


@pytest.fixture
def test_db(tmp_path, monkeypatch):
    """Point the store at a temporary database and create the schema."""
    db_path = tmp_path / "field_edits.db"
    monkeypatch.setenv("DB_PATH", str(db_path))
    db.init_db()
    yield str(db_path)


@pytest.fixture
def tenants(test_db):
    """Two tenants, each with one locator, owning one unit and one building each."""
    ownership.add_member("tenant-a", "locator-a")
    ownership.add_member("tenant-b", "locator-b")
    ownership.set_owner("unit", "unit-a", "tenant-a")
    ownership.set_owner("building", "bldg-a", "tenant-a")
    ownership.set_owner("unit", "unit-b", "tenant-b")
    ownership.set_owner("client", "client-a", "tenant-a")
    return ownership
