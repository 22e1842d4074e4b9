"""Core types, errors and schema validation.

This package contains the data model shared by every upload phase, the
exception taxonomy, and manifest schema validation.
"""

from .errors import (
    CommitError,
    CookbookSyncError,
    LocalFileError,
    NegotiationError,
    PublishError,
    TransportError,
    UploadError,
)
from .types import (
    CATEGORIES,
    CookbookItem,
    CookbookListResult,
    CookbookManifest,
    CookbookMetadata,
    CookbookVersionRef,
    CookbookVersions,
    FileEntry,
    JSONValue,
    SandboxDescriptor,
    SandboxSlot,
)
from .validator import validate_manifest, validate_manifest_with_error_details

__all__ = [
    "CATEGORIES",
    "CommitError",
    "CookbookItem",
    "CookbookListResult",
    "CookbookManifest",
    "CookbookMetadata",
    "CookbookSyncError",
    "CookbookVersionRef",
    "CookbookVersions",
    "FileEntry",
    "JSONValue",
    "LocalFileError",
    "NegotiationError",
    "PublishError",
    "SandboxDescriptor",
    "SandboxSlot",
    "TransportError",
    "UploadError",
    "validate_manifest",
    "validate_manifest_with_error_details",
]
