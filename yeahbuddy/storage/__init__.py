"""
Storage abstractions.

Integration points:
- ReviewStorage → reviews table, unique on (team, stage, viewer, viewer_is_admin)
- TokenStorage → tokens table, unique on the token identifier
- DirectoryStorage → the platform's tutor/administrator/team/stage tables
"""

from yeahbuddy.storage.base import (
    ReviewStorage,
    TokenStorage,
    DirectoryStorage,
    StorageProvider,
)
from yeahbuddy.storage.local import create_local_storage

__all__ = [
    "ReviewStorage",
    "TokenStorage",
    "DirectoryStorage",
    "StorageProvider",
    "create_local_storage",
]
