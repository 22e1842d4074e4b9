"""Path and URL safety checks.

Cookbook item paths come from the server when downloading, so every
destination is checked against its base directory before anything is
written.
"""

from pathlib import Path, PurePosixPath
from urllib.parse import urlparse


def validate_path_safety(path: Path, base_dir: Path) -> None:
    """Validate that a path stays within the base directory.

    This prevents path traversal attacks.

    Args:
        path: Path to validate
        base_dir: Base directory that path must be within

    Raises:
        ValueError: If path escapes the base directory
    """
    resolved_path = path.resolve()
    resolved_base = base_dir.resolve()

    if not resolved_path.is_relative_to(resolved_base):
        raise ValueError(f"Path {path} escapes base directory {base_dir}")


def validate_url(url: str, require_scheme: bool = False) -> None:
    """Validate URL format and scheme.

    Only allows http:// and https:// schemes.

    Args:
        url: URL to validate
        require_scheme: Reject relative URLs (no scheme, no host)

    Raises:
        ValueError: If URL has invalid format or dangerous scheme
    """
    if not url and not require_scheme:
        return

    parsed = urlparse(url)

    allowed = ("http", "https") if require_scheme else ("http", "https", "")
    if parsed.scheme not in allowed:
        raise ValueError(f"Invalid URL scheme: {parsed.scheme!r}. Only http and https are allowed.")

    if require_scheme and not parsed.netloc:
        raise ValueError(f"URL has no host: {url!r}")


def item_destination(base_dir: Path, item_path: str) -> Path:
    """Resolve where a manifest item is written below base_dir.

    Item paths always use forward slashes on the wire.

    Raises:
        ValueError: If the item path is absolute or escapes base_dir
    """
    relative = PurePosixPath(item_path)
    if relative.is_absolute() or not relative.parts:
        raise ValueError(f"Invalid cookbook item path: {item_path!r}")

    destination = base_dir.joinpath(*relative.parts)
    validate_path_safety(destination, base_dir)
    return destination
