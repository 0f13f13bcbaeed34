"""
Edit overlay core: record store, overlay resolver, conflict detector,
resolution engine and entity aggregator.
"""

# Package initialization for core module
from .errors import (
    FieldEditError,
    ValidationError,
    NotFoundError,
    AuthorizationError,
    InvalidResolutionError,
    PersistenceError,
    ConflictStateError,
)
from .schema import (
    TargetType,
    UnitField,
    BuildingField,
    ClientField,
    EditSource,
    Resolution,
    FieldEditRecord,
    FieldWithEdit,
    ClientFieldEditRecord,
)
from .overlay import resolve_field, create_field_edit, field_history
from .conflicts import record_scraper_value, record_scraper_snapshot, DetectionOutcome, DetectionResult
from .resolution import resolve_conflict
from .aggregate import aggregate_entity, entity_field_edits
