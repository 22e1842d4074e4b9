"""Tests for manifest publishing preconditions."""

import json
from pathlib import Path

import pytest
import responses

from cookbook_sync.core.errors import PublishError, TransportError
from cookbook_sync.core.types import FileEntry, SandboxDescriptor, SandboxSlot
from cookbook_sync.manifest import build_manifest
from cookbook_sync.publisher import ManifestPublisher
from cookbook_sync.transport import ChefTransport

from conftest import BASE_URL, md5_hex

DIGEST_A = md5_hex(b"A")
DIGEST_B = md5_hex(b"B")


def make_manifest(*checksums: str):
    entries = [
        FileEntry(Path(f"/demo/recipes/r{i}.rb"), f"recipes/r{i}.rb", checksum)
        for i, checksum in enumerate(checksums)
    ]
    return build_manifest("demo", "0.1.0", entries)


def committed_sandbox(*checksums: str) -> SandboxDescriptor:
    return SandboxDescriptor(
        sandbox_id="s1",
        checksums={c: SandboxSlot(needs_upload=False) for c in checksums},
        committed=True,
    )


class TestManifestPublisher:
    """Test that publishing requires committed content."""

    def test_publishes_put_body(self, transport: ChefTransport, rsps: responses.RequestsMock) -> None:
        rsps.add(responses.PUT, f"{BASE_URL}/cookbooks/demo/0.1.0", json={}, status=201)
        manifest = make_manifest(DIGEST_A)
        manifest["recipes"][0]["url"] = "https://chef.example.com/files/a"

        ManifestPublisher(transport).publish(manifest, committed_sandbox(DIGEST_A))

        body = json.loads(rsps.calls[0].request.body)
        assert body["name"] == "demo-0.1.0"
        assert body["recipes"] == [
            {"path": "recipes/r0.rb", "name": "r0.rb", "checksum": DIGEST_A, "specificity": "default"}
        ]

    def test_uncommitted_sandbox_rejected(self, transport: ChefTransport, rsps: responses.RequestsMock) -> None:
        sandbox = committed_sandbox(DIGEST_A)
        sandbox.committed = False

        with pytest.raises(PublishError, match="not committed"):
            ManifestPublisher(transport).publish(make_manifest(DIGEST_A), sandbox)

        assert len(rsps.calls) == 0

    def test_checksum_outside_sandbox_rejected(
        self, transport: ChefTransport, rsps: responses.RequestsMock
    ) -> None:
        with pytest.raises(PublishError, match=DIGEST_B):
            ManifestPublisher(transport).publish(
                make_manifest(DIGEST_A, DIGEST_B), committed_sandbox(DIGEST_A)
            )

        assert len(rsps.calls) == 0

    def test_invalid_manifest_rejected(self, transport: ChefTransport, rsps: responses.RequestsMock) -> None:
        manifest = make_manifest(DIGEST_A)
        manifest["version"] = "not a version"

        with pytest.raises(PublishError, match="invalid"):
            ManifestPublisher(transport).publish(manifest, committed_sandbox(DIGEST_A))

        assert len(rsps.calls) == 0

    def test_server_rejection(self, transport: ChefTransport, rsps: responses.RequestsMock) -> None:
        rsps.add(
            responses.PUT,
            f"{BASE_URL}/cookbooks/demo/0.1.0",
            json={"error": ["Field 'metadata.dependencies' invalid"]},
            status=400,
        )

        with pytest.raises(PublishError, match="metadata.dependencies") as exc_info:
            ManifestPublisher(transport).publish(make_manifest(DIGEST_A), committed_sandbox(DIGEST_A))

        assert isinstance(exc_info.value.__cause__, TransportError)
        assert len(rsps.calls) == 1

    def test_invalid_manifest_names_the_field(
        self, transport: ChefTransport, rsps: responses.RequestsMock
    ) -> None:
        manifest = make_manifest(DIGEST_A)
        manifest["metadata"]["dependencies"] = {"apt": 5}

        with pytest.raises(PublishError, match="metadata -> dependencies -> apt"):
            ManifestPublisher(transport).publish(manifest, committed_sandbox(DIGEST_A))

        assert len(rsps.calls) == 0
