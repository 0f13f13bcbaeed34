"""
Structured logging and audit helpers for edit-overlay operations.
"""

import logging
from typing import Any, Dict, List

SENSITIVE_FIELDS = ['email', 'phone', 'notes', 'secret', 'password', 'token']


class StructuredLogger:
    """Structured logger for edit, conflict and resolution operations."""

    def __init__(self, name: str = "fieldedits"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.info(message)

    def log_edit_created(self, edit_id: str, target: str, field_name: str, source: str, edited_by: str = None):
        """Log creation of an edit record."""
        log_details = {
            "edit_id": edit_id,
            "target": target,
            "field_name": field_name,
            "source": source,
        }
        if edited_by:
            log_details["edited_by"] = edited_by

        self.log_operation("edit.created", "success", log_details)

    def log_conflict_flagged(self, edit_id: str, field_name: str, replaced: bool = False):
        """Log a conflict raised (or its value replaced) by a scraper refresh."""
        log_details = {"edit_id": edit_id, "field_name": field_name, "replaced": replaced}
        self.log_operation("conflict.flagged", "detected", log_details)

    def log_conflict_cleared(self, edit_id: str, reason: str):
        """Log a conflict cleared without a human resolution."""
        self.log_operation("conflict.cleared", "success", {"edit_id": edit_id, "reason": reason})

    def log_conflict_resolved(self, edit_id: str, resolution: str, resolved_by: str, new_edit_id: str = None):
        """Log a human resolution of a conflict."""
        log_details = {
            "edit_id": edit_id,
            "resolution": resolution,
            "resolved_by": resolved_by,
        }
        if new_edit_id:
            log_details["new_edit_id"] = new_edit_id

        self.log_operation("conflict.resolved", "success", log_details)

    def log_store_error(self, operation: str, error: Exception):
        """Log a store failure before it is re-raised."""
        self.logger.error(f"Operation: store.{operation}, Status: failed, Details: {{'error': '{str(error)[:200]}'}}")

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()


def audit_event(event_type: str, identifiers: Dict[str, Any], payload: Dict[str, Any] = None, sensitive_fields: List[str] = None):
    """General audit event logging with privacy controls."""
    if sensitive_fields is None:
        sensitive_fields = SENSITIVE_FIELDS

    log_details = identifiers.copy() if identifiers else {}

    if payload:
        log_details["payload"] = sanitize_payload(payload, sensitive_fields=sensitive_fields)

    # Determine operation type from event_type
    if event_type.startswith("conflict"):
        operation = "conflict"
    elif event_type.startswith("edit"):
        operation = "edit"
    else:
        operation = event_type.replace(".", "_")

    logger.log_operation(operation, "audit", log_details)


def sanitize_payload(payload: Any, reveal_sensitive: bool = False, sensitive_fields: List[str] = None) -> Any:
    """Sanitize payloads for audit logging."""
    if sensitive_fields is None:
        sensitive_fields = SENSITIVE_FIELDS

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if reveal_sensitive or k not in sensitive_fields:
                sanitized[k] = sanitize_payload(v, reveal_sensitive, sensitive_fields)
            else:
                sanitized[k] = "[REDACTED]"
        return sanitized
    elif isinstance(payload, str):
        # Truncate long strings
        return payload[:100] + "..." if len(payload) > 100 else payload
    elif isinstance(payload, list):
        return [sanitize_payload(item, reveal_sensitive, sensitive_fields) for item in payload]
    else:
        return payload
