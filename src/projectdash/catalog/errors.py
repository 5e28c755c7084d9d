"""Catalog errors surfaced by store and view operations."""

from __future__ import annotations


class CatalogError(Exception):
    """Base exception for catalog operations."""


class InvalidPathError(CatalogError):
    """Raised when a path is missing or is not a directory."""


class NotConfiguredError(CatalogError):
    """Raised when an operation needs a base folder but none is set."""


class GroupNotFoundError(CatalogError):
    """Raised when a named group folder does not exist on disk."""


class InvalidImportError(CatalogError):
    """Raised when an import payload is unparsable or lacks required keys."""


class MissingBaseFolderError(CatalogError):
    """Raised when an imported snapshot points at a folder that no longer exists.

    The condition is recoverable: callers may retry the import with a
    substitute base folder or explicitly accept the missing path.

    Attributes:
        path: Base folder recorded in the imported snapshot.
    """

    def __init__(self, path: str) -> None:
        super().__init__(f"Imported base folder does not exist: {path}")
        self.path = path


class ScanError(CatalogError):
    """Raised when a directory cannot be listed during a scan."""


class LaunchError(CatalogError):
    """Raised when the editor window cannot be started."""
