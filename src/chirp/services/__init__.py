# src/chirp/services/__init__.py
"""Business logic services for the Chirp application."""

from .interactions import RelationKind, ToggleResult, toggle_relation
from .storage import MediaStorageClient, StorageError, StoredMedia

__all__ = [
    "MediaStorageClient",
    "RelationKind",
    "StorageError",
    "StoredMedia",
    "ToggleResult",
    "toggle_relation",
]
