"""Exceptions raised while synchronizing cookbooks with a Chef server.

Every upload phase has its own exception type so callers can tell which
step of the transaction failed. Phase errors chain the underlying cause
(usually a TransportError) via ``raise ... from``.
"""

from pathlib import Path


class CookbookSyncError(Exception):
    """Base class for all cookbook synchronization errors."""

    phase = "sync"


class LocalFileError(CookbookSyncError, OSError):
    """A local cookbook file could not be read or written."""

    phase = "checksum"

    def __init__(self, path: Path | str, cause: OSError):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Cannot access {self.path}: {cause.strerror or cause}")


class TransportError(CookbookSyncError):
    """The HTTP request failed or the server answered with an error status.

    Attributes:
        method: HTTP method of the failed request
        url: Request URL
        status_code: Response status, or None if the server was unreachable
        error: Error text reported by the server or the network layer
    """

    phase = "transport"

    def __init__(self, method: str, url: str, status_code: int | None, error: str):
        self.method = method
        self.url = url
        self.status_code = status_code
        self.error = error
        if status_code is None:
            message = f"{method} {url} failed: {error}"
        else:
            message = f"{method} {url} failed with status {status_code}: {error}"
        super().__init__(message)


class NegotiationError(CookbookSyncError):
    """Sandbox creation failed or returned an incomplete checksum map."""

    phase = "negotiate"


class UploadError(CookbookSyncError):
    """A single file could not be uploaded to its sandbox slot."""

    phase = "upload"

    def __init__(self, digest: str, path: Path | str, cause: Exception):
        self.digest = digest
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Upload of {self.path} ({digest}) failed: {cause}")


class CommitError(CookbookSyncError):
    """The server rejected the sandbox commit."""

    phase = "commit"


class PublishError(CookbookSyncError):
    """The cookbook version manifest could not be published."""

    phase = "publish"
