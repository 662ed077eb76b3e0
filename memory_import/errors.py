from __future__ import annotations


class MemoryImportError(Exception):
    """Base class for everything the import pipeline raises on purpose."""


# ================================
# FATAL: abort the run before any group is processed
# ================================
class PermissionDenied(MemoryImportError):
    def __init__(self, message: str = "Media library permission not granted") -> None:
        super().__init__(message)


class CollectionNotFound(MemoryImportError):
    def __init__(self, collection_name: str) -> None:
        self.collection_name = collection_name
        super().__init__(f'Collection "{collection_name}" not found')


# ================================
# RECOVERED: isolated to one asset or one group
# ================================
class ClassificationFailure(MemoryImportError):
    """
    Raised inside the classifier only. Callers never see it: the classifier
    turns it into the soft "Analysis failed" result.
    """


class UploadFailure(MemoryImportError):
    def __init__(self, asset_id: str, message: str, uri: str = "") -> None:
        self.asset_id = asset_id
        self.uri = uri or asset_id
        self.message = message
        super().__init__(f"Upload failed for {self.uri}: {message}")


class PersistenceFailure(MemoryImportError):
    def __init__(self, date_key: str, message: str) -> None:
        self.date_key = date_key
        self.message = message
        super().__init__(f"Could not save memory for {date_key}: {message}")
