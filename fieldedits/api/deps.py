"""
Shared request dependencies.
"""

from fastapi import Request

from ..core.config import get_editor_header
from ..core.errors import AuthorizationError
from ..core.ownership import OwnershipResolver, ownership


def get_editor_id(request: Request) -> str:
    """Authenticated editor id, placed on the request by the session layer."""
    editor_id = request.headers.get(get_editor_header(), "").strip()
    if not editor_id:
        raise AuthorizationError("Missing editor identity")
    return editor_id


def get_ownership() -> OwnershipResolver:
    return ownership
