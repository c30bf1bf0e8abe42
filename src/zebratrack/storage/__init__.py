"""JSON file persistence."""

from .file_storage import FileStorageFactory, JsonFileStorage, LoadResult

__all__ = ["FileStorageFactory", "JsonFileStorage", "LoadResult"]
