"""Read and delete operations on the cookbooks endpoint, and downloads.

Chef API docs: https://docs.chef.io/server/api_chef_server/#cookbooks
"""

import logging
from pathlib import Path

from .core.types import CookbookListResult, CookbookManifest
from .manifest import iter_items
from .paths import item_destination
from .publisher import cookbook_path
from .transport import ChefTransport

logger = logging.getLogger(__name__)


def version_params(path: str, num_versions: str = "") -> str:
    """Append the num_versions query parameter to a cookbooks path.

    "0" asks for all versions; an empty value leaves the server default
    (latest version only).
    """
    if num_versions == "0":
        num_versions = "all"

    if num_versions:
        path = f"{path}?num_versions={num_versions}"
    return path


def format_cookbook_list(result: CookbookListResult) -> str:
    """Render a cookbook listing as text.

    Example:
        apache2 => https://chef.example.com/cookbooks/apache2
         * 1.0.0
    """
    out = ""
    for name, versions in result.items():
        out += f"{name} => {versions.get('url', '')}\n"
        for version in versions.get("versions", []):
            out += f" * {version['version']}\n"
    return out


class CookbookQuery:
    """Listing, fetching, deleting and downloading cookbook versions."""

    def __init__(self, transport: ChefTransport):
        self.transport = transport

    def list(self) -> CookbookListResult:
        """List cookbooks with their latest version."""
        return self.list_available_versions("")

    def list_available_versions(self, num_versions: str = "") -> CookbookListResult:
        """List cookbooks limited to num_versions versions each.

        GET /cookbooks?num_versions=<n>
        """
        return self.transport.request("GET", version_params("cookbooks", num_versions)) or {}

    def get(self, name: str) -> CookbookListResult:
        """Get the version listing of one cookbook.

        GET /cookbooks/<name>
        """
        return self.transport.request("GET", f"cookbooks/{name}") or {}

    def get_available_versions(self, name: str, num_versions: str = "") -> CookbookListResult:
        """Get the versions of a cookbook available on the server."""
        path = version_params(f"cookbooks/{name}", num_versions)
        return self.transport.request("GET", path) or {}

    def get_version(self, name: str, version: str) -> CookbookManifest:
        """Fetch the manifest of a specific cookbook version.

        ``version`` may be "_latest".

        GET /cookbooks/<name>/<version>
        """
        return self.transport.request("GET", cookbook_path(name, version))

    def delete(self, name: str, version: str) -> None:
        """Remove one version of a cookbook from the server.

        DELETE /cookbooks/<name>/<version>
        """
        self.transport.request("DELETE", cookbook_path(name, version))
        logger.info("Deleted cookbook %s %s", name, version)

    def download(self, name: str, version: str, destination: Path) -> Path:
        """Download every file of a cookbook version.

        Files are written to ``destination/<name>-<version>/<item path>``.

        Args:
            name: Cookbook name
            version: Cookbook version, or "_latest"
            destination: Directory receiving the cookbook directory

        Returns:
            The cookbook directory that was written

        Raises:
            TransportError: If the manifest or a file cannot be fetched
            LocalFileError: If a file cannot be written
            ValueError: If an item path escapes the cookbook directory
        """
        manifest = self.get_version(name, version)
        basedir = Path(destination) / f"{name}-{manifest.get('version', version)}"

        count = 0
        for _, item in iter_items(manifest):
            if not item.get("url"):
                raise ValueError(f"Cookbook item {item['path']} has no content URL")
            target = item_destination(basedir, item["path"])
            self.transport.download(item["url"], target)
            count += 1

        logger.info("Downloaded %d files of %s %s to %s", count, name, version, basedir)
        return basedir
