"""Cookbook service facade.

Combines the upload pipeline and the read path behind a single object
bound to one Chef server.
"""

from pathlib import Path
from typing import Any

from requests.auth import AuthBase

from .config import ServerConfig
from .core.types import CookbookListResult, CookbookManifest, CookbookMetadata
from .pipeline import UploadPipeline, UploadResult
from .query import CookbookQuery
from .transport import ChefTransport


class CookbookService:
    """Client for the cookbooks and sandboxes endpoints of a Chef server.

    Example:
        >>> service = CookbookService.from_config(ServerConfig.from_env())
        >>> service.upload('apache2', '1.0.0', Path('cookbooks'))
        >>> service.download('apache2', '1.0.0', Path('/tmp/cookbooks'))
        PosixPath('/tmp/cookbooks/apache2-1.0.0')
    """

    def __init__(self, transport: ChefTransport):
        self.transport = transport
        self.pipeline = UploadPipeline(transport)
        self.query = CookbookQuery(transport)

    @classmethod
    def from_config(cls, config: ServerConfig, auth: AuthBase | None = None) -> "CookbookService":
        return cls(ChefTransport(config, auth=auth))

    def upload(
        self,
        name: str,
        version: str,
        source: Path,
        metadata: CookbookMetadata | dict[str, Any] | None = None,
    ) -> UploadResult:
        return self.pipeline.upload(name, version, source, metadata)

    def upload_directory(
        self,
        root: Path,
        name: str,
        version: str,
        metadata: CookbookMetadata | dict[str, Any] | None = None,
    ) -> UploadResult:
        return self.pipeline.upload_directory(root, name, version, metadata)

    def list(self, num_versions: str = "") -> CookbookListResult:
        return self.query.list_available_versions(num_versions)

    def get(self, name: str, num_versions: str = "") -> CookbookListResult:
        if num_versions:
            return self.query.get_available_versions(name, num_versions)
        return self.query.get(name)

    def get_version(self, name: str, version: str) -> CookbookManifest:
        return self.query.get_version(name, version)

    def delete(self, name: str, version: str) -> None:
        self.query.delete(name, version)

    def download(self, name: str, version: str, destination: Path) -> Path:
        return self.query.download(name, version, destination)

    def close(self) -> None:
        self.transport.close()
