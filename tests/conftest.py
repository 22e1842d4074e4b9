"""Shared fixtures: a temporary cookbook tree and an in-memory Chef server."""

import base64
import hashlib
import json
import re
from pathlib import Path
from urllib.parse import urlparse

import pytest
import responses

from cookbook_sync.config import ServerConfig
from cookbook_sync.transport import ChefTransport

BASE_URL = "https://chef.example.com/organizations/acme"

CHECKSUM = r"[0-9a-f]{32}"


def md5_hex(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


def write_tree(root: Path, files: dict[str, bytes | str]) -> Path:
    """Create files below root from a {relative path: content} mapping."""
    for relative_path, content in files.items():
        path = root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, str):
            content = content.encode("utf-8")
        path.write_bytes(content)
    return root


class FakeChefServer:
    """In-memory stand-in for the sandbox and cookbooks endpoints.

    Content is only stored permanently when its sandbox is committed, and
    a cookbook version is only accepted if all of its checksums are stored.
    """

    def __init__(self, base_url: str = BASE_URL):
        self.base_url = base_url
        self.content: dict[str, bytes] = {}
        self.sandboxes: dict[str, dict[str, bool]] = {}
        self.staged: dict[str, dict[str, bytes]] = {}
        self.cookbooks: dict[tuple[str, str], dict] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_commit = False
        self.fail_upload_for: set[str] = set()
        self._next_sandbox = 0

    # -- helpers ---------------------------------------------------------

    def preload(self, *blobs: bytes) -> None:
        """Store content as if uploaded by an earlier cookbook."""
        for blob in blobs:
            self.content[md5_hex(blob)] = blob

    def calls_for(self, method: str, prefix: str = "") -> list[str]:
        return [path for m, path in self.calls if m == method and path.startswith(prefix)]

    def _record(self, request) -> str:
        path = urlparse(request.url).path
        path = path[len(urlparse(self.base_url).path):].lstrip("/")
        self.calls.append((request.method, path))
        return path

    @staticmethod
    def _json(status: int, payload) -> tuple[int, dict, str]:
        return status, {"Content-Type": "application/json"}, json.dumps(payload)

    @staticmethod
    def _body(request) -> bytes:
        body = request.body
        if hasattr(body, "read"):
            body = body.read()
        if isinstance(body, str):
            body = body.encode("utf-8")
        return body or b""

    # -- endpoints -------------------------------------------------------

    def create_sandbox(self, request):
        self._record(request)
        checksums = json.loads(self._body(request))["checksums"]
        self._next_sandbox += 1
        sandbox_id = f"sandbox{self._next_sandbox:04d}"
        self.sandboxes[sandbox_id] = {c: c not in self.content for c in checksums}
        self.staged[sandbox_id] = {}
        return self._json(
            201,
            {
                "uri": f"{self.base_url}/sandboxes/{sandbox_id}",
                "sandbox_id": sandbox_id,
                "checksums": {
                    c: (
                        {"url": f"{self.base_url}/bookshelf/{sandbox_id}/{c}", "needs_upload": True}
                        if needed
                        else {"needs_upload": False}
                    )
                    for c, needed in self.sandboxes[sandbox_id].items()
                },
            },
        )

    def upload_content(self, request):
        path = self._record(request)
        _, sandbox_id, checksum = path.split("/")
        if checksum in self.fail_upload_for:
            return self._json(500, {"error": ["storage unavailable"]})

        body = self._body(request)
        expected_md5 = base64.b64encode(bytes.fromhex(checksum)).decode("ascii")
        if request.headers.get("content-md5") != expected_md5 or md5_hex(body) != checksum:
            return self._json(400, {"error": ["Content-MD5 mismatch"]})
        if request.headers.get("content-type") != "application/x-binary":
            return self._json(415, {"error": ["Unsupported content type"]})

        self.staged[sandbox_id][checksum] = body
        return self._json(200, {})

    def commit_sandbox(self, request):
        path = self._record(request)
        sandbox_id = path.split("/")[1]
        if sandbox_id not in self.sandboxes:
            return self._json(404, {"error": [f"No such sandbox {sandbox_id}"]})

        missing = [
            c for c, needed in self.sandboxes[sandbox_id].items()
            if needed and c not in self.staged[sandbox_id]
        ]
        if self.fail_commit or missing:
            return self._json(
                400,
                {"error": [f"Cannot update sandbox {sandbox_id}: checksums not uploaded {missing}"]},
            )

        self.content.update(self.staged.pop(sandbox_id))
        return self._json(200, {"guid": sandbox_id, "is_completed": True})

    def put_cookbook(self, request):
        path = self._record(request)
        _, name, version = path.split("/")
        manifest = json.loads(self._body(request))
        referenced = {
            item["checksum"]
            for key in ("attributes", "definitions", "files", "libraries", "providers",
                        "recipes", "resources", "templates", "root_files")
            for item in manifest.get(key, [])
        }
        unknown = referenced - set(self.content)
        if unknown:
            return self._json(400, {"error": [f"Manifest has checksums that are not yet uploaded: {sorted(unknown)}"]})

        status = 200 if (name, version) in self.cookbooks else 201
        self.cookbooks[(name, version)] = manifest
        return self._json(status, manifest)

    def get_cookbook(self, request):
        path = self._record(request)
        _, name, version = path.split("/")
        if version == "_latest":
            versions = sorted(v for n, v in self.cookbooks if n == name)
            version = versions[-1] if versions else ""
        manifest = self.cookbooks.get((name, version))
        if manifest is None:
            return self._json(404, {"error": [f"Cannot find a cookbook named {name} with version {version}"]})

        served = json.loads(json.dumps(manifest))
        for key in ("attributes", "definitions", "files", "libraries", "providers",
                    "recipes", "resources", "templates", "root_files"):
            for item in served.get(key, []):
                item["url"] = f"{self.base_url}/files/{item['checksum']}"
        return self._json(200, served)

    def delete_cookbook(self, request):
        path = self._record(request)
        _, name, version = path.split("/")
        manifest = self.cookbooks.pop((name, version), None)
        if manifest is None:
            return self._json(404, {"error": [f"Cannot find a cookbook named {name} with version {version}"]})
        return self._json(200, manifest)

    def list_cookbooks(self, request):
        self._record(request)
        listing: dict = {}
        for name, version in sorted(self.cookbooks):
            entry = listing.setdefault(
                name, {"url": f"{self.base_url}/cookbooks/{name}", "versions": []}
            )
            entry["versions"].append(
                {"url": f"{self.base_url}/cookbooks/{name}/{version}", "version": version}
            )
        return self._json(200, listing)

    def get_content(self, request):
        path = self._record(request)
        checksum = path.split("/")[1]
        if checksum not in self.content:
            return 404, {}, b""
        return 200, {"Content-Type": "application/octet-stream"}, self.content[checksum]

    def register(self, rsps: responses.RequestsMock) -> None:
        base = re.escape(self.base_url)
        rsps.add_callback(responses.POST, f"{self.base_url}/sandboxes", callback=self.create_sandbox)
        rsps.add_callback(
            responses.PUT, re.compile(rf"{base}/bookshelf/\w+/{CHECKSUM}$"), callback=self.upload_content
        )
        rsps.add_callback(responses.PUT, re.compile(rf"{base}/sandboxes/\w+$"), callback=self.commit_sandbox)
        rsps.add_callback(
            responses.PUT, re.compile(rf"{base}/cookbooks/[^/?]+/[^/?]+$"), callback=self.put_cookbook
        )
        rsps.add_callback(
            responses.GET, re.compile(rf"{base}/cookbooks/[^/?]+/[^/?]+$"), callback=self.get_cookbook
        )
        rsps.add_callback(
            responses.DELETE, re.compile(rf"{base}/cookbooks/[^/?]+/[^/?]+$"), callback=self.delete_cookbook
        )
        rsps.add_callback(
            responses.GET, re.compile(rf"{base}/cookbooks(\?.*)?$"), callback=self.list_cookbooks
        )
        rsps.add_callback(responses.GET, re.compile(rf"{base}/files/{CHECKSUM}$"), callback=self.get_content)


@pytest.fixture
def config() -> ServerConfig:
    return ServerConfig(server_url=BASE_URL, client_name="tester")


@pytest.fixture
def transport(config: ServerConfig) -> ChefTransport:
    with ChefTransport(config) as t:
        yield t


@pytest.fixture
def rsps():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as mock:
        yield mock


@pytest.fixture
def chef_server(rsps: responses.RequestsMock) -> FakeChefServer:
    server = FakeChefServer()
    server.register(rsps)
    return server


@pytest.fixture
def cookbook_source(tmp_path: Path) -> Path:
    """A source directory holding cookbooks/apache2 with a typical layout."""
    source = tmp_path / "cookbooks"
    write_tree(
        source / "apache2",
        {
            "metadata.json": json.dumps(
                {
                    "name": "apache2",
                    "version": "1.0.0",
                    "description": "Installs and configures apache2",
                    "maintainer": "Ops",
                    "license": "Apache-2.0",
                    "dependencies": {"logrotate": ">= 0.0.0"},
                    "platforms": {"ubuntu": ">= 20.04"},
                    "attributes": {
                        "apache/dir": {
                            "display_name": "Apache Directory",
                            "recipes": ["apache2::default"],
                            "required": "optional",
                        }
                    },
                }
            ),
            "README.md": "# apache2\n",
            "recipes/default.rb": "package 'apache2'\n",
            "recipes/mod_ssl.rb": "include_recipe 'apache2'\n",
            "attributes/default.rb": "default['apache']['dir'] = '/etc/apache2'\n",
            "templates/default/apache2.conf.erb": "ServerRoot <%= @dir %>\n",
            "files/ubuntu/motd": "welcome\n",
            "libraries/helpers.rb": "module Apache2; end\n",
        },
    )
    return source
