"""Cookbook Sync.

This package uploads Chef cookbooks to a Chef server using the sandbox
protocol (content deduplicated by checksum, committed before the cookbook
version manifest is published) and reads them back.
"""

# Core library interface
from .pipeline import UploadPipeline, UploadResult
from .query import CookbookQuery, format_cookbook_list, version_params
from .service import CookbookService
from .transport import ChefTransport
from .config import ServerConfig

# Upload phases
from .checksums import ChecksumIndex, compute_md5, index_cookbook, walk_cookbook
from .sandbox import SandboxCommitter, SandboxNegotiator
from .uploader import ContentUploader, content_md5
from .publisher import ManifestPublisher
from .manifest import build_manifest, categorize, load_metadata, to_put

# Core utilities
from .core import (
    CookbookItem,
    CookbookManifest,
    CookbookMetadata,
    FileEntry,
    SandboxDescriptor,
    SandboxSlot,
    validate_manifest,
    validate_manifest_with_error_details,
)
from .core.errors import (
    CommitError,
    CookbookSyncError,
    LocalFileError,
    NegotiationError,
    PublishError,
    TransportError,
    UploadError,
)

# CLI
from .cli import main

__version__ = "0.1.0"

__all__ = [
    # Primary library interface
    "CookbookService",
    "UploadPipeline",
    "UploadResult",
    "CookbookQuery",
    "ChefTransport",
    "ServerConfig",
    "format_cookbook_list",
    "version_params",
    # Upload phases
    "ChecksumIndex",
    "compute_md5",
    "index_cookbook",
    "walk_cookbook",
    "SandboxNegotiator",
    "SandboxCommitter",
    "ContentUploader",
    "content_md5",
    "ManifestPublisher",
    "build_manifest",
    "categorize",
    "load_metadata",
    "to_put",
    # Core utilities
    "CookbookItem",
    "CookbookManifest",
    "CookbookMetadata",
    "FileEntry",
    "SandboxDescriptor",
    "SandboxSlot",
    "validate_manifest",
    "validate_manifest_with_error_details",
    # Errors
    "CookbookSyncError",
    "LocalFileError",
    "TransportError",
    "NegotiationError",
    "UploadError",
    "CommitError",
    "PublishError",
    # CLI
    "main",
]
