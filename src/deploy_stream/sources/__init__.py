"""Fragment sources."""

from .base import FragmentSource, SourceError, SourceSpec, SourceType
from .registry import list_sources, make_source, register_source, unregister_source

__all__ = [
    "FragmentSource",
    "SourceError",
    "SourceSpec",
    "SourceType",
    "list_sources",
    "make_source",
    "register_source",
    "unregister_source",
]
