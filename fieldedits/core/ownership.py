"""
Tenant ownership checks for write paths.

Ownership is always re-derived from the store; a tenant id supplied by a
client is never trusted.
"""

import sqlite3
from abc import ABC, abstractmethod
from typing import Optional

from .db import get_db
from .errors import AuthorizationError, PersistenceError
from ..util.logging import logger


class OwnershipResolver(ABC):
    """Answers who owns an entity and who belongs to a tenant."""

    @abstractmethod
    def owner_of(self, entity_type: str, entity_id: str) -> Optional[str]:
        """Tenant id owning the entity, or None for shared listing data."""

    @abstractmethod
    def is_member(self, tenant_id: str, member_id: str) -> bool:
        pass

    @abstractmethod
    def is_registered(self, member_id: str) -> bool:
        """Whether the member belongs to any tenant."""

    def assert_can_modify(self, entity_type: str, entity_id: str, member_id: Optional[str]):
        """Raise AuthorizationError unless member_id may write to the entity."""
        if not member_id:
            raise AuthorizationError("No editor identity supplied")

        tenant_id = self.owner_of(entity_type, entity_id)
        if tenant_id is None:
            allowed = self.is_registered(member_id)
        else:
            allowed = self.is_member(tenant_id, member_id)

        if not allowed:
            logger.warning(f"Authorization denied: {member_id} on {entity_type}:{entity_id}")
            raise AuthorizationError(f"{member_id} may not modify {entity_type} {entity_id}")


class SqliteOwnershipResolver(OwnershipResolver):
    """Ownership backed by the entity_owners and tenant_members tables."""

    def owner_of(self, entity_type: str, entity_id: str) -> Optional[str]:
        row = self._fetch_one(
            "SELECT tenant_id FROM entity_owners WHERE entity_type = ? AND entity_id = ?",
            (entity_type, entity_id)
        )
        return row[0] if row else None

    def is_member(self, tenant_id: str, member_id: str) -> bool:
        row = self._fetch_one(
            "SELECT 1 FROM tenant_members WHERE tenant_id = ? AND member_id = ?",
            (tenant_id, member_id)
        )
        return row is not None

    def is_registered(self, member_id: str) -> bool:
        row = self._fetch_one("SELECT 1 FROM tenant_members WHERE member_id = ? LIMIT 1", (member_id,))
        return row is not None

    def set_owner(self, entity_type: str, entity_id: str, tenant_id: str):
        self._execute(
            "INSERT OR REPLACE INTO entity_owners (entity_type, entity_id, tenant_id) VALUES (?, ?, ?)",
            (entity_type, entity_id, tenant_id)
        )

    def add_member(self, tenant_id: str, member_id: str):
        self._execute(
            "INSERT OR IGNORE INTO tenant_members (tenant_id, member_id) VALUES (?, ?)",
            (tenant_id, member_id)
        )

    def _fetch_one(self, sql: str, params: tuple):
        try:
            with get_db() as conn:
                return conn.execute(sql, params).fetchone()
        except sqlite3.Error as e:
            logger.log_store_error("ownership_lookup", e)
            raise PersistenceError(f"Ownership lookup failed: {e}") from e

    def _execute(self, sql: str, params: tuple):
        try:
            with get_db() as conn:
                conn.execute(sql, params)
        except sqlite3.Error as e:
            logger.log_store_error("ownership_write", e)
            raise PersistenceError(f"Ownership write failed: {e}") from e


# Global resolver instance
ownership = SqliteOwnershipResolver()
