"""
HTTP boundary for the field-edit overlay.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..core.config import VERSION, debug_enabled, validate_config
from ..core.dao import unresolved_conflicts
from ..core.db import health_check, init_db
from ..core.errors import (
    AuthorizationError,
    ConflictStateError,
    FieldEditError,
    InvalidResolutionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from ..util.logging import logger
from .client_edits import router as client_edits_router
from .field_edits import router as field_edits_router
from .schemas import HealthResponse

ERROR_STATUS = {
    ValidationError: (400, "VALIDATION_ERROR"),
    InvalidResolutionError: (400, "INVALID_RESOLUTION"),
    AuthorizationError: (403, "FORBIDDEN"),
    NotFoundError: (404, "NOT_FOUND"),
    ConflictStateError: (409, "CONFLICT_STATE"),
    PersistenceError: (503, "PERSISTENCE_ERROR"),
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    for issue in validate_config():
        logger.warning(f"Config issue: {issue}")
    init_db()
    yield


# Initialize the FastAPI application
app = FastAPI(
    title="Field Edits API",
    version=VERSION,
    description="Human corrections layered over scraped listing data, with conflict review",
    docs_url="/docs" if debug_enabled() else None,
    redoc_url="/redoc" if debug_enabled() else None,
    lifespan=lifespan,
)

# Add CORS middleware to allow frontend connections
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(field_edits_router, prefix="/field-edits", tags=["field-edits"])
app.include_router(client_edits_router, prefix="/clients", tags=["client-edits"])


@app.get("/health", response_model=HealthResponse)
def health_check_endpoint():
    """Check system health."""
    db_health = health_check()
    open_conflicts = len(unresolved_conflicts()) if db_health else 0

    return HealthResponse(
        status="healthy" if db_health else "unhealthy",
        version=VERSION,
        db_health=db_health,
        open_conflicts=open_conflicts,
    )


@app.exception_handler(FieldEditError)
async def field_edit_exception_handler(request, exc: FieldEditError):
    """Map the error taxonomy to distinct status codes."""
    status_code, error_type = 500, "FIELD_EDIT_ERROR"
    for error_class in type(exc).__mro__:
        if error_class in ERROR_STATUS:
            status_code, error_type = ERROR_STATUS[error_class]
            break

    if status_code >= 500:
        logger.error(f"{error_type} on {request.url.path}: {exc}")
    return JSONResponse(status_code=status_code, content={"error_type": error_type, "message": str(exc)})


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request, exc: RequestValidationError):
    """Malformed request bodies are reported like any other validation failure."""
    messages = [f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()]
    return JSONResponse(status_code=400, content={"error_type": "VALIDATION_ERROR", "message": "; ".join(messages)})


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Handle all unhandled exceptions."""
    logging.error(f"Unhandled exception: {exc}")
    content = {"detail": "Internal server error"}
    if debug_enabled():
        content["debug"] = str(exc)
    return JSONResponse(status_code=500, content=content)
