"""
Configuration for the field-edit overlay core.
Values come from the environment and are read through getters so tests can
point the store at a temporary database.
"""

import os
from pathlib import Path

# Database path configuration
DB_PATH = os.getenv("DB_PATH", "./data/field_edits.db")

DEBUG = os.getenv("DEBUG", "true").lower() == "true"

# Seconds a writer waits on a locked database before giving up
DB_BUSY_TIMEOUT_SEC = float(os.getenv("DB_BUSY_TIMEOUT_SEC", "5"))

# Keep overwritten conflict values in the audit log
AUDIT_SUPERSEDED_CONFLICTS = os.getenv("AUDIT_SUPERSEDED_CONFLICTS", "true").lower() == "true"

# Header carrying the authenticated editor id (set by the session layer)
EDITOR_HEADER = os.getenv("EDITOR_HEADER", "X-Editor-Id")

# Version string
VERSION = "1.0.0"


def get_db_path():
    """Current database path, re-read from the environment."""
    return os.getenv("DB_PATH", DB_PATH)


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "true").lower() == "true"


def get_busy_timeout():
    return float(os.getenv("DB_BUSY_TIMEOUT_SEC", str(DB_BUSY_TIMEOUT_SEC)))


def audit_superseded_conflicts():
    """Whether a replaced conflict value is written to the audit log."""
    return os.getenv("AUDIT_SUPERSEDED_CONFLICTS", "true" if AUDIT_SUPERSEDED_CONFLICTS else "false").lower() == "true"


def get_editor_header():
    return os.getenv("EDITOR_HEADER", EDITOR_HEADER)


def ensure_db_directory():
    """Ensure the database directory exists."""
    Path(get_db_path()).parent.mkdir(parents=True, exist_ok=True)


def validate_config():
    """Validate configuration and return any issues."""
    issues = []

    try:
        if get_busy_timeout() < 0:
            issues.append("DB_BUSY_TIMEOUT_SEC must be >= 0")
    except ValueError:
        issues.append(f"Invalid DB_BUSY_TIMEOUT_SEC: {os.getenv('DB_BUSY_TIMEOUT_SEC')}")

    if not get_db_path().strip():
        issues.append("DB_PATH must not be empty")

    if not get_editor_header().strip():
        issues.append("EDITOR_HEADER must not be empty")

    return issues
