"""HTTP transport to the Chef server API.

Thin wrapper around a requests Session: JSON encoding and decoding of
API payloads, raw content uploads and streamed downloads. Request signing
is not handled here; pass any ``requests.auth.AuthBase`` (or a session
that already signs requests) to authenticate.
"""

import json
import logging
from pathlib import Path
from typing import IO, Any

import requests
from requests.auth import AuthBase

from .config import ServerConfig
from .core.errors import LocalFileError, TransportError

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 64 * 1024


def _error_message(response: requests.Response) -> str:
    """Extract the server's error text from a failed response."""
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict) and "error" in payload:
        error = payload["error"]
        if isinstance(error, list):
            return "; ".join(str(e) for e in error)
        if isinstance(error, dict):
            return str(error.get("message", error))
        return str(error)

    return response.reason or response.text[:200]


class ChefTransport:
    """Request/response transport for one Chef server.

    Example:
        >>> transport = ChefTransport(ServerConfig("https://chef.example.com/organizations/acme"))
        >>> transport.request("GET", "cookbooks")
        {'apache2': {'url': '...', 'versions': [...]}}
    """

    def __init__(
        self,
        config: ServerConfig,
        session: requests.Session | None = None,
        auth: AuthBase | None = None,
    ):
        """Initialize the transport.

        Args:
            config: Server connection settings
            session: Optional pre-configured session (connection pooling,
                     signing adapters, proxies)
            auth: Optional requests auth handler applied to every request
        """
        self.config = config
        self.session = session or requests.Session()
        if auth is not None:
            self.session.auth = auth
        self.session.verify = config.verify_ssl
        self.session.headers.update(
            {
                "Accept": "application/json",
                "X-Chef-Version": config.chef_version,
            }
        )
        if config.client_name:
            self.session.headers["X-Ops-UserId"] = config.client_name

    def build_url(self, path: str) -> str:
        """Join an API path to the server URL. Absolute URLs pass through."""
        if path.startswith(("http://", "https://")):
            return path
        return self.config.server_url.rstrip("/") + "/" + path.lstrip("/")

    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            response = self.session.request(method, url, timeout=self.config.timeout, **kwargs)
        except requests.RequestException as e:
            raise TransportError(method, url, None, str(e)) from e

        if response.status_code >= 300:
            raise TransportError(method, url, response.status_code, _error_message(response))

        return response

    def request(self, method: str, path: str, body: Any = None) -> Any:
        """Send a JSON API request.

        Args:
            method: HTTP method
            path: API path relative to the server URL, or an absolute URL
            body: JSON-serializable payload, or None for no body

        Returns:
            Decoded JSON response, or None when the response has no body

        Raises:
            TransportError: On network failure, error status or undecodable JSON
        """
        url = self.build_url(path)
        kwargs: dict[str, Any] = {}
        if body is not None:
            kwargs["data"] = json.dumps(body)
            kwargs["headers"] = {"Content-Type": "application/json"}

        logger.debug("%s %s", method, url)
        response = self._send(method, url, **kwargs)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(method, url, response.status_code, f"Invalid JSON response: {e}") from e

    def put_content(self, url: str, body: IO[bytes], headers: dict[str, str]) -> requests.Response:
        """PUT a raw file body to an absolute or relative URL.

        Raises:
            TransportError: On network failure or error status
        """
        target = self.build_url(url)
        logger.debug("PUT %s", target)
        return self._send("PUT", target, data=body, headers=headers)

    def download(self, url: str, destination: Path) -> Path:
        """Stream remote content into a local file.

        Parent directories of destination are created as needed.

        Raises:
            TransportError: On network failure or error status
            LocalFileError: If the destination cannot be written
        """
        target = self.build_url(url)
        logger.debug("GET %s -> %s", target, destination)
        response = self._send("GET", target, stream=True)

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            with open(destination, "wb") as f:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    f.write(chunk)
        except OSError as e:
            destination.unlink(missing_ok=True)
            raise LocalFileError(destination, e) from e
        except requests.RequestException as e:
            # No partial files left behind
            destination.unlink(missing_ok=True)
            raise TransportError("GET", target, response.status_code, str(e)) from e
        finally:
            response.close()

        return destination

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "ChefTransport":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
