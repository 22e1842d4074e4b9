"""Cookbook upload pipeline.

This module runs the upload transaction for one cookbook version. The
phases are strictly sequential and each one fails fast:

    checksum -> negotiate sandbox -> upload missing -> commit -> publish

No manifest is ever published for content that was not committed.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .checksums import ChecksumIndex
from .core.types import CookbookManifest, CookbookMetadata
from .manifest import build_manifest, load_metadata
from .publisher import ManifestPublisher
from .sandbox import SandboxCommitter, SandboxNegotiator
from .transport import ChefTransport
from .uploader import ContentUploader

logger = logging.getLogger(__name__)


@dataclass
class UploadResult:
    """Outcome of a successful cookbook upload.

    Attributes:
        manifest: The published manifest
        sandbox_id: Identifier of the committed sandbox
        uploaded: Checksums whose content was sent to the server
        checksums: All distinct checksums of the cookbook
    """

    manifest: CookbookManifest
    sandbox_id: str
    uploaded: list[str] = field(default_factory=list)
    checksums: list[str] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        """Number of checksums the server already stored."""
        return len(self.checksums) - len(self.uploaded)


class UploadPipeline:
    """Uploads a cookbook directory and registers its manifest.

    Example:
        >>> transport = ChefTransport(ServerConfig.from_env())
        >>> pipeline = UploadPipeline(transport)
        >>> result = pipeline.upload('apache2', '1.0.0', Path('cookbooks'))
        >>> result.manifest['name']
        'apache2-1.0.0'
    """

    def __init__(
        self,
        transport: ChefTransport,
        negotiator: SandboxNegotiator | None = None,
        uploader: ContentUploader | None = None,
        committer: SandboxCommitter | None = None,
        publisher: ManifestPublisher | None = None,
    ):
        """Initialize the pipeline.

        Args:
            transport: Transport to the Chef server
            negotiator: Optional sandbox negotiator override
            uploader: Optional content uploader override
            committer: Optional sandbox committer override
            publisher: Optional manifest publisher override
        """
        self.transport = transport
        self.negotiator = negotiator or SandboxNegotiator(transport)
        self.uploader = uploader or ContentUploader(transport)
        self.committer = committer or SandboxCommitter(transport)
        self.publisher = publisher or ManifestPublisher(transport)

    def upload(
        self,
        name: str,
        version: str,
        source: Path,
        metadata: CookbookMetadata | dict[str, Any] | None = None,
    ) -> UploadResult:
        """Upload the cookbook found at ``source/name``.

        Args:
            name: Cookbook name, also the directory name below source
            version: Version to publish
            source: Directory containing the cookbook directory
            metadata: Metadata block; read from metadata.json when omitted

        Returns:
            UploadResult describing the published version
        """
        return self.upload_directory(Path(source) / name, name, version, metadata)

    def upload_directory(
        self,
        root: Path,
        name: str,
        version: str,
        metadata: CookbookMetadata | dict[str, Any] | None = None,
    ) -> UploadResult:
        """Upload a cookbook from an explicit root directory.

        Raises:
            LocalFileError: A cookbook file is unreadable
            NegotiationError: Sandbox creation failed
            UploadError: A file could not be uploaded
            CommitError: The sandbox commit was rejected
            PublishError: The manifest was rejected
        """
        root = Path(root).resolve()
        logger.info("Uploading cookbook %s %s from %s", name, version, root)

        if metadata is None:
            metadata = load_metadata(root)

        index = ChecksumIndex.from_directory(root)

        descriptor = self.negotiator.create(index.digests)
        uploaded = self.uploader.upload_missing(descriptor, index)
        self.committer.commit(descriptor)

        manifest = build_manifest(name, version, index.entries, metadata)
        self.publisher.publish(manifest, descriptor)

        return UploadResult(
            manifest=manifest,
            sandbox_id=descriptor.sandbox_id,
            uploaded=uploaded,
            checksums=index.digests,
        )
