"""Field-edit overlay and conflict resolution for scraped listing data."""

from .core.config import VERSION

__version__ = VERSION
