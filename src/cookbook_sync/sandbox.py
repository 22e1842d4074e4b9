"""Sandbox negotiation and commit.

A sandbox is the server-side staging area for cookbook file content.
Creating one tells the server which checksums we intend to reference; the
server answers per checksum whether it already stores that content or
where to upload it. Content is deduplicated globally by checksum, so a
file shared between cookbooks or versions is only ever uploaded once.
Committing the sandbox makes uploaded content durable.
"""

import logging
from collections.abc import Iterable
from typing import Any

from .core.errors import CommitError, NegotiationError, TransportError
from .core.types import SandboxDescriptor, SandboxSlot
from .transport import ChefTransport

logger = logging.getLogger(__name__)

SANDBOXES_PATH = "sandboxes"


def parse_sandbox_response(payload: Any, checksums: list[str]) -> SandboxDescriptor:
    """Turn a sandbox creation response into a SandboxDescriptor.

    Args:
        payload: Decoded JSON response from POST /sandboxes
        checksums: Checksums submitted in the request

    Returns:
        SandboxDescriptor with exactly one slot per submitted checksum

    Raises:
        NegotiationError: If the response is malformed or lacks a slot for
                          any submitted checksum
    """
    if not isinstance(payload, dict):
        raise NegotiationError(f"Unexpected sandbox response: {payload!r}")

    sandbox_id = payload.get("sandbox_id")
    if not sandbox_id:
        raise NegotiationError("Sandbox response has no sandbox_id")

    answered = payload.get("checksums")
    if not isinstance(answered, dict):
        raise NegotiationError(f"Sandbox {sandbox_id} response has no checksum map")

    missing = [checksum for checksum in checksums if checksum not in answered]
    if missing:
        raise NegotiationError(
            f"Sandbox {sandbox_id} response has no slot for {len(missing)} "
            f"checksum(s): {', '.join(missing)}"
        )

    extra = set(answered) - set(checksums)
    if extra:
        logger.warning("Sandbox %s answered for unrequested checksums: %s", sandbox_id, sorted(extra))

    slots: dict[str, SandboxSlot] = {}
    for checksum in checksums:
        item = answered[checksum]
        if not isinstance(item, dict):
            raise NegotiationError(f"Malformed slot for checksum {checksum}: {item!r}")

        needs_upload = item.get("needs_upload")
        if not isinstance(needs_upload, bool):
            raise NegotiationError(
                f"Slot for checksum {checksum} has no boolean needs_upload: {item!r}"
            )
        url = item.get("url") or item.get("upload_url")
        if needs_upload and not url:
            raise NegotiationError(f"Checksum {checksum} needs upload but has no upload URL")

        slots[checksum] = SandboxSlot(needs_upload=needs_upload, url=url)

    return SandboxDescriptor(
        sandbox_id=str(sandbox_id),
        uri=str(payload.get("uri", "")),
        checksums=slots,
    )


class SandboxNegotiator:
    """Creates sandboxes for a set of checksums."""

    def __init__(self, transport: ChefTransport):
        self.transport = transport

    def create(self, checksums: Iterable[str]) -> SandboxDescriptor:
        """Create a sandbox for the given checksums.

        Duplicates are submitted once.

        Args:
            checksums: Lowercase hex MD5 digests

        Returns:
            SandboxDescriptor telling, per checksum, whether to upload

        Raises:
            NegotiationError: If the request fails or the answer is incomplete
        """
        distinct = list(dict.fromkeys(checksums))
        body = {"checksums": {checksum: None for checksum in distinct}}

        try:
            payload = self.transport.request("POST", SANDBOXES_PATH, body)
        except TransportError as e:
            raise NegotiationError(f"Sandbox creation failed: {e}") from e

        descriptor = parse_sandbox_response(payload, distinct)
        logger.info(
            "Created sandbox %s: %d checksums, %d to upload",
            descriptor.sandbox_id,
            len(descriptor.checksums),
            len(descriptor.missing),
        )
        return descriptor


class SandboxCommitter:
    """Commits a sandbox once all of its missing content is uploaded."""

    def __init__(self, transport: ChefTransport):
        self.transport = transport

    def commit(self, descriptor: SandboxDescriptor) -> Any:
        """Mark the sandbox as completed.

        Args:
            descriptor: Sandbox whose uploads all succeeded

        Returns:
            Decoded server response

        Raises:
            CommitError: If the server rejects the commit
        """
        path = f"{SANDBOXES_PATH}/{descriptor.sandbox_id}"
        try:
            response = self.transport.request("PUT", path, {"is_completed": True})
        except TransportError as e:
            raise CommitError(f"Commit of sandbox {descriptor.sandbox_id} failed: {e}") from e

        descriptor.committed = True
        logger.info("Sandbox %s has been committed", descriptor.sandbox_id)
        return response
