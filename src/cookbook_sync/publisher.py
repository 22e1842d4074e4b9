"""Publishing of cookbook version manifests."""

import logging

from .core.errors import PublishError, TransportError
from .core.types import CookbookManifest, SandboxDescriptor
from .core.validator import validate_manifest_with_error_details
from .manifest import manifest_checksums, to_put
from .transport import ChefTransport

logger = logging.getLogger(__name__)


def cookbook_path(name: str, version: str) -> str:
    return f"cookbooks/{name}/{version}"


class ManifestPublisher:
    """Registers a cookbook version once its content is committed.

    The manifest is only sent after checking that the sandbox was committed
    and that it covers every checksum the manifest references.
    """

    def __init__(self, transport: ChefTransport):
        self.transport = transport

    def check_committed(self, manifest: CookbookManifest, descriptor: SandboxDescriptor) -> None:
        """Verify that all referenced content lives in a committed sandbox.

        Raises:
            PublishError: If the sandbox is not committed or a checksum
                          is not covered by it
        """
        if not descriptor.committed:
            raise PublishError(
                f"Sandbox {descriptor.sandbox_id} is not committed; "
                f"refusing to publish {manifest['name']}"
            )

        uncovered = manifest_checksums(manifest) - set(descriptor.checksums)
        if uncovered:
            raise PublishError(
                f"Manifest {manifest['name']} references checksums missing from "
                f"sandbox {descriptor.sandbox_id}: {', '.join(sorted(uncovered))}"
            )

    def publish(self, manifest: CookbookManifest, descriptor: SandboxDescriptor) -> object:
        """Create or replace the cookbook version on the server.

        Args:
            manifest: Manifest built from the uploaded files
            descriptor: The committed sandbox holding the manifest's content

        Returns:
            Decoded server response

        Raises:
            PublishError: On precondition, validation or transport failure
        """
        self.check_committed(manifest, descriptor)

        body = to_put(manifest)
        is_valid, error = validate_manifest_with_error_details(body)
        if not is_valid:
            raise PublishError(f"Manifest {manifest['name']} is invalid: {error}")

        path = cookbook_path(manifest["cookbook_name"], manifest["version"])
        try:
            response = self.transport.request("PUT", path, body)
        except TransportError as e:
            raise PublishError(f"Publishing {manifest['name']} failed: {e}") from e

        logger.info("Published cookbook %s", manifest["name"])
        return response
