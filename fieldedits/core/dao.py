"""
Edit record store: append-only persistence and ordered retrieval of edit
records, the conflict-flag compare-and-set, and the audit event log.

Functions take an optional ``conn`` so callers can group several of them in
one ``transaction()``; without it each call runs on its own connection.
"""

import json
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Dict, List, Optional

from .db import get_db, transaction  # noqa: F401  (transaction re-exported for callers)
from .errors import PersistenceError
from .schema import (
    ClientField,
    ClientFieldEditRecord,
    EditSource,
    FieldEditRecord,
    FlagUpdate,
    FIELDS_BY_TARGET,
    ListingField,
    NewFieldEdit,
    TargetType,
)
from ..util.logging import logger

EDIT_COLUMNS = ("id, target_type, target_id, field_name, previous_value, new_value, source, "
                "edited_by, has_conflict, conflict_value, created_at, flag_version")

CLIENT_EDIT_COLUMNS = "id, client_id, field_name, previous_value, new_value, source, edited_by, created_at"


def _store_errors(operation: str):
    """Log sqlite failures and surface them as PersistenceError."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except sqlite3.Error as e:
                logger.log_store_error(operation, e)
                raise PersistenceError(f"{operation} failed: {e}") from e
        return wrapper
    return decorator


@contextmanager
def _connection(conn: Optional[sqlite3.Connection]):
    if conn is not None:
        yield conn
    else:
        with get_db() as own:
            yield own


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _encode(value: Any) -> Optional[str]:
    return None if value is None else json.dumps(value)


def _decode(text: Optional[str]) -> Any:
    return None if text is None else json.loads(text)


def _row_to_record(row: sqlite3.Row) -> FieldEditRecord:
    target_type = TargetType(row["target_type"])
    return FieldEditRecord(
        id=row["id"],
        target_type=target_type,
        target_id=row["target_id"],
        field_name=FIELDS_BY_TARGET[target_type](row["field_name"]),
        previous_value=_decode(row["previous_value"]),
        new_value=_decode(row["new_value"]),
        source=EditSource(row["source"]),
        edited_by=row["edited_by"],
        has_conflict=bool(row["has_conflict"]),
        conflict_value=_decode(row["conflict_value"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        flag_version=row["flag_version"],
    )


def _row_to_client_record(row: sqlite3.Row) -> ClientFieldEditRecord:
    return ClientFieldEditRecord(
        id=row["id"],
        client_id=row["client_id"],
        field_name=ClientField(row["field_name"]),
        previous_value=_decode(row["previous_value"]),
        new_value=_decode(row["new_value"]),
        source=EditSource(row["source"]),
        edited_by=row["edited_by"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


# ---------------------------------------------------------------------------
# Unit / building edit log
# ---------------------------------------------------------------------------

@_store_errors("append")
def append(draft: NewFieldEdit, conn: Optional[sqlite3.Connection] = None) -> FieldEditRecord:
    """Append an edit record. No field legality checks happen here."""
    edit_id = uuid.uuid4().hex
    created_at = _now()

    with _connection(conn) as db:
        db.execute(
            "INSERT INTO field_edits (id, target_type, target_id, field_name, previous_value, new_value, "
            "source, edited_by, has_conflict, conflict_value, created_at, flag_version) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, FALSE, NULL, ?, 0)",
            (edit_id, TargetType(draft.target_type).value, draft.target_id, draft.field_name.value,
             _encode(draft.previous_value), _encode(draft.new_value), EditSource(draft.source).value,
             draft.edited_by, created_at)
        )

    return FieldEditRecord(
        id=edit_id,
        target_type=TargetType(draft.target_type),
        target_id=draft.target_id,
        field_name=draft.field_name,
        previous_value=draft.previous_value,
        new_value=draft.new_value,
        source=EditSource(draft.source),
        edited_by=draft.edited_by,
        has_conflict=False,
        conflict_value=None,
        created_at=datetime.fromisoformat(created_at),
        flag_version=0,
    )


@_store_errors("get_edit")
def get_edit(edit_id: str, conn: Optional[sqlite3.Connection] = None) -> Optional[FieldEditRecord]:
    with _connection(conn) as db:
        row = db.execute(f"SELECT {EDIT_COLUMNS} FROM field_edits WHERE id = ?", (edit_id,)).fetchone()
        return _row_to_record(row) if row else None


@_store_errors("history_for")
def history_for(target_type: TargetType, target_id: str, field_name: ListingField,
                conn: Optional[sqlite3.Connection] = None) -> List[FieldEditRecord]:
    """All records for one field of one entity, most recent first."""
    with _connection(conn) as db:
        rows = db.execute(
            f"SELECT {EDIT_COLUMNS} FROM field_edits "
            "WHERE target_type = ? AND target_id = ? AND field_name = ? "
            "ORDER BY created_at DESC, seq DESC",
            (TargetType(target_type).value, target_id, field_name.value)
        ).fetchall()
        return [_row_to_record(row) for row in rows]


@_store_errors("latest_for")
def latest_for(target_type: TargetType, target_id: str, field_name: ListingField,
               conn: Optional[sqlite3.Connection] = None) -> Optional[FieldEditRecord]:
    with _connection(conn) as db:
        row = db.execute(
            f"SELECT {EDIT_COLUMNS} FROM field_edits "
            "WHERE target_type = ? AND target_id = ? AND field_name = ? "
            "ORDER BY created_at DESC, seq DESC LIMIT 1",
            (TargetType(target_type).value, target_id, field_name.value)
        ).fetchone()
        return _row_to_record(row) if row else None


@_store_errors("last_records_for")
def last_records_for(target_type: TargetType, target_id: str,
                     conn: Optional[sqlite3.Connection] = None) -> Dict[str, FieldEditRecord]:
    """Most recent record per field name for one entity, in a single query."""
    with _connection(conn) as db:
        rows = db.execute(
            f"SELECT {EDIT_COLUMNS} FROM ("
            f"  SELECT *, ROW_NUMBER() OVER ("
            "     PARTITION BY field_name ORDER BY created_at DESC, seq DESC"
            "  ) AS rn FROM field_edits WHERE target_type = ? AND target_id = ?"
            ") WHERE rn = 1",
            (TargetType(target_type).value, target_id)
        ).fetchall()
        return {row["field_name"]: _row_to_record(row) for row in rows}


@_store_errors("unresolved_conflicts")
def unresolved_conflicts(conn: Optional[sqlite3.Connection] = None) -> List[FieldEditRecord]:
    """Every record currently flagged as conflicted, system-wide."""
    with _connection(conn) as db:
        rows = db.execute(
            f"SELECT {EDIT_COLUMNS} FROM field_edits WHERE has_conflict = TRUE "
            "ORDER BY created_at DESC, seq DESC"
        ).fetchall()
        return [_row_to_record(row) for row in rows]


@_store_errors("apply_flag_update")
def apply_flag_update(update: FlagUpdate, conn: Optional[sqlite3.Connection] = None) -> bool:
    """Compare-and-set the conflict flags of one record.

    Returns False when the record's flag_version no longer matches, i.e.
    another writer changed the flags since the caller read them.
    """
    with _connection(conn) as db:
        cursor = db.execute(
            "UPDATE field_edits SET has_conflict = ?, conflict_value = ?, flag_version = flag_version + 1 "
            "WHERE id = ? AND flag_version = ?",
            (update.has_conflict, _encode(update.conflict_value) if update.has_conflict else None,
             update.edit_id, update.expected_version)
        )
        return cursor.rowcount == 1


@_store_errors("has_locator_edit")
def has_locator_edit(target_type: TargetType, target_id: str, field_name: ListingField,
                     conn: Optional[sqlite3.Connection] = None) -> bool:
    """Whether a locator ever corrected this field (scrapers treat it as sticky)."""
    with _connection(conn) as db:
        row = db.execute(
            "SELECT 1 FROM field_edits WHERE target_type = ? AND target_id = ? AND field_name = ? "
            "AND source = ? LIMIT 1",
            (TargetType(target_type).value, target_id, field_name.value, EditSource.LOCATOR.value)
        ).fetchone()
        return row is not None


@_store_errors("locator_edited_fields")
def locator_edited_fields(target_type: TargetType, target_id: str,
                          conn: Optional[sqlite3.Connection] = None) -> set:
    """Field names a locator has corrected on an entity."""
    with _connection(conn) as db:
        rows = db.execute(
            "SELECT DISTINCT field_name FROM field_edits WHERE target_type = ? AND target_id = ? AND source = ?",
            (TargetType(target_type).value, target_id, EditSource.LOCATOR.value)
        ).fetchall()
        return {row["field_name"] for row in rows}


# ---------------------------------------------------------------------------
# Client edit log
# ---------------------------------------------------------------------------

@_store_errors("append_client_edit")
def append_client_edit(client_id: str, field_name: ClientField, previous_value: Any, new_value: Any,
                       source: EditSource, edited_by: Optional[str],
                       conn: Optional[sqlite3.Connection] = None) -> ClientFieldEditRecord:
    edit_id = uuid.uuid4().hex
    created_at = _now()

    with _connection(conn) as db:
        db.execute(
            "INSERT INTO client_field_edits (id, client_id, field_name, previous_value, new_value, "
            "source, edited_by, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (edit_id, client_id, field_name.value, _encode(previous_value), _encode(new_value),
             EditSource(source).value, edited_by, created_at)
        )

    return ClientFieldEditRecord(
        id=edit_id,
        client_id=client_id,
        field_name=field_name,
        previous_value=previous_value,
        new_value=new_value,
        source=EditSource(source),
        edited_by=edited_by,
        created_at=datetime.fromisoformat(created_at),
    )


@_store_errors("client_history_for")
def client_history_for(client_id: str, field_name: ClientField,
                       conn: Optional[sqlite3.Connection] = None) -> List[ClientFieldEditRecord]:
    with _connection(conn) as db:
        rows = db.execute(
            f"SELECT {CLIENT_EDIT_COLUMNS} FROM client_field_edits WHERE client_id = ? AND field_name = ? "
            "ORDER BY created_at DESC, seq DESC",
            (client_id, field_name.value)
        ).fetchall()
        return [_row_to_client_record(row) for row in rows]


@_store_errors("client_last_records")
def client_last_records(client_id: str,
                        conn: Optional[sqlite3.Connection] = None) -> Dict[str, ClientFieldEditRecord]:
    with _connection(conn) as db:
        rows = db.execute(
            f"SELECT {CLIENT_EDIT_COLUMNS} FROM ("
            "  SELECT *, ROW_NUMBER() OVER ("
            "     PARTITION BY field_name ORDER BY created_at DESC, seq DESC"
            "  ) AS rn FROM client_field_edits WHERE client_id = ?"
            ") WHERE rn = 1",
            (client_id,)
        ).fetchall()
        return {row["field_name"]: _row_to_client_record(row) for row in rows}


# ---------------------------------------------------------------------------
# Audit event log
# ---------------------------------------------------------------------------

@_store_errors("add_event")
def add_event(actor: str, action: str, record: Optional[FieldEditRecord] = None,
              payload: Optional[Dict[str, Any]] = None, conn: Optional[sqlite3.Connection] = None) -> bool:
    """Append an audit event, optionally tied to an edit record."""
    with _connection(conn) as db:
        db.execute(
            "INSERT INTO edit_events (ts, actor, action, edit_id, target_type, target_id, field_name, payload) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (_now(), actor, action,
             record.id if record else None,
             record.target_type.value if record else None,
             record.target_id if record else None,
             record.field_name.value if record else None,
             json.dumps(payload or {}))
        )
    return True


@_store_errors("list_events")
def list_events(edit_id: Optional[str] = None, action: Optional[str] = None, limit: int = 100,
                conn: Optional[sqlite3.Connection] = None) -> List[Dict[str, Any]]:
    """Recent audit events, newest first."""
    if limit <= 0:
        return []

    clauses, params = [], []
    if edit_id:
        clauses.append("edit_id = ?")
        params.append(edit_id)
    if action:
        clauses.append("action = ?")
        params.append(action)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

    with _connection(conn) as db:
        rows = db.execute(
            f"SELECT id, ts, actor, action, edit_id, target_type, target_id, field_name, payload "
            f"FROM edit_events {where} ORDER BY id DESC LIMIT ?",
            (*params, limit)
        ).fetchall()

    events = []
    for row in rows:
        event = dict(row)
        try:
            event["payload"] = json.loads(row["payload"]) if row["payload"] else {}
        except (json.JSONDecodeError, ValueError):
            event["payload"] = {"raw_data": row["payload"]}
        events.append(event)
    return events

