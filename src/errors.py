"""Exception types shared by the messages editor."""


class EditorError(Exception):
    """Base class for all editor errors."""


class CatalogLoadError(EditorError):
    """Raised when no base catalog can be obtained. Fatal for a session."""


class SnapshotStoreError(EditorError):
    """Raised when the snapshot store cannot read, write or remove a value."""


class SnapshotImportError(EditorError):
    """Raised when a user-supplied work file is rejected."""


class UnknownEntryError(EditorError):
    """Raised when an edit targets an id the catalog does not contain."""
