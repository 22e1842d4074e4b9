"""Cookbook directory walking and content checksums.

This module collects every file of a cookbook and computes the MD5 digest
the Chef server uses as the sandbox checksum identifier.
"""

import fnmatch
import hashlib
import logging
import os
from collections.abc import Iterable
from pathlib import Path

from .core.errors import LocalFileError
from .core.types import FileEntry
from .paths import validate_path_safety

logger = logging.getLogger(__name__)

# We settle for 8KB
CHUNK_SIZE = 8192

# Version control directories never belong to a cookbook
IGNORED_DIRECTORIES = {".git", ".svn", ".hg"}

CHEFIGNORE = "chefignore"


def compute_md5(file_path: Path, chunk_size: int = CHUNK_SIZE) -> str:
    """Compute the MD5 digest of a file by streaming it in chunks.

    Args:
        file_path: File to hash
        chunk_size: Read size in bytes

    Returns:
        Lowercase hex digest

    Raises:
        LocalFileError: If the file cannot be read
    """
    digest = hashlib.md5(usedforsecurity=False)
    try:
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(chunk_size), b""):
                digest.update(chunk)
    except OSError as e:
        raise LocalFileError(file_path, e) from e
    return digest.hexdigest()


def load_chefignore(root: Path) -> list[str]:
    """Read ignore patterns from the cookbook's chefignore file.

    Blank lines and lines starting with '#' are skipped.
    """
    ignore_file = root / CHEFIGNORE
    if not ignore_file.is_file():
        return []

    try:
        lines = ignore_file.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        raise LocalFileError(ignore_file, e) from e

    patterns = []
    for line in lines:
        line = line.strip()
        if line and not line.startswith("#"):
            patterns.append(line)
    return patterns


def is_ignored(relative_path: str, patterns: Iterable[str]) -> bool:
    """Check a POSIX relative path against chefignore patterns.

    A pattern matches the whole relative path or any single path segment,
    so ``*.swp`` ignores swap files at any depth.
    """
    segments = relative_path.split("/")
    for pattern in patterns:
        if fnmatch.fnmatchcase(relative_path, pattern):
            return True
        if any(fnmatch.fnmatchcase(segment, pattern) for segment in segments):
            return True
    return False


def walk_cookbook(root: Path) -> list[Path]:
    """Recursively list all files of a cookbook.

    Args:
        root: Cookbook root directory

    Returns:
        Sorted list of file paths (directories excluded)

    Raises:
        ValueError: If root is not a directory
        LocalFileError: If a directory cannot be listed, a file resolves
                        outside the root, or a directory is a symlink
    """
    root = root.resolve()
    if not root.is_dir():
        raise ValueError(f"Cookbook path is not a directory: {root}")

    patterns = load_chefignore(root)

    def _raise(error: OSError) -> None:
        raise LocalFileError(error.filename or root, error) from error

    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        # Prune in place so os.walk does not descend
        dirnames[:] = sorted(d for d in dirnames if d not in IGNORED_DIRECTORIES)

        for dirname in dirnames:
            dir_path = Path(dirpath) / dirname
            if dir_path.is_symlink() and not is_ignored(dir_path.relative_to(root).as_posix(), patterns):
                raise LocalFileError(dir_path, OSError("symlinked directories are not supported"))

        for filename in filenames:
            file_path = Path(dirpath) / filename
            relative_path = file_path.relative_to(root).as_posix()

            if is_ignored(relative_path, patterns):
                logger.debug("Ignoring %s (chefignore)", relative_path)
                continue

            try:
                validate_path_safety(file_path, root)
            except ValueError as e:
                raise LocalFileError(file_path, OSError(str(e))) from e
            files.append(file_path)

    return sorted(files, key=lambda p: p.relative_to(root).as_posix())


def index_cookbook(root: Path) -> list[FileEntry]:
    """Walk a cookbook and checksum every file.

    Args:
        root: Cookbook root directory

    Returns:
        One FileEntry per file, ordered by relative path

    Raises:
        LocalFileError: If any file is unreadable. The whole upload is
                        aborted rather than skipping the file.
    """
    root = root.resolve()
    entries = []
    for file_path in walk_cookbook(root):
        entry = FileEntry(
            local_path=file_path,
            relative_path=file_path.relative_to(root).as_posix(),
            checksum=compute_md5(file_path),
        )
        logger.debug("%s %s", entry.checksum, entry.relative_path)
        entries.append(entry)

    logger.info("Checksummed %d files under %s", len(entries), root)
    return entries


class ChecksumIndex:
    """Mapping from content checksum to the local files holding that content.

    Several files may share a checksum; the first one seen supplies the
    bytes for the upload. Destinations are carried by the manifest, not by
    this index.

    Example:
        >>> index = ChecksumIndex(index_cookbook(Path('cookbooks/apache2')))
        >>> index.digests
        ['0d599f0ec05c3bda8c3b8a68c32a1b47', ...]
        >>> index.path_for(index.digests[0])
        PosixPath('/.../cookbooks/apache2/README.md')
    """

    def __init__(self, entries: Iterable[FileEntry]):
        self.entries: list[FileEntry] = list(entries)
        self._by_checksum: dict[str, list[FileEntry]] = {}
        for entry in self.entries:
            self._by_checksum.setdefault(entry.checksum, []).append(entry)

    @classmethod
    def from_directory(cls, root: Path) -> "ChecksumIndex":
        """Build an index by walking and checksumming a cookbook."""
        return cls(index_cookbook(root))

    @property
    def digests(self) -> list[str]:
        """Distinct checksums in first-seen order."""
        return list(self._by_checksum)

    def path_for(self, checksum: str) -> Path:
        """Local file supplying the bytes for a checksum.

        Raises:
            KeyError: If no indexed file has this checksum
        """
        return self._by_checksum[checksum][0].local_path

    def entries_for(self, checksum: str) -> list[FileEntry]:
        """All indexed files with this checksum."""
        return list(self._by_checksum.get(checksum, []))

    def __contains__(self, checksum: object) -> bool:
        return checksum in self._by_checksum

    def __len__(self) -> int:
        return len(self._by_checksum)
