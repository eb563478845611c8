# Storage backends for shortage batches

from .repository import (
    InMemoryRepository,
    JsonFileRepository,
    RepositoryError,
    SaveResult,
    ShortageRepository,
)

__all__ = [
    "InMemoryRepository",
    "JsonFileRepository",
    "RepositoryError",
    "SaveResult",
    "ShortageRepository",
]
