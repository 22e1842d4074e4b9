"""Cookbook version manifest construction.

A manifest lists every cookbook file under the category (segment) it
belongs to, each entry referencing its content by checksum, plus the
cookbook metadata block.
"""

import copy
import json
from collections.abc import Iterable, Iterator
from pathlib import Path, PurePosixPath
from typing import Any

from .core.errors import LocalFileError
from .core.types import CATEGORIES, CookbookItem, CookbookManifest, CookbookMetadata, FileEntry

METADATA_FILE = "metadata.json"

CHEF_TYPE = "cookbook_version"
JSON_CLASS = "Chef::CookbookVersion"

DEFAULT_SPECIFICITY = "default"

# Categories that map to a top-level directory of the same name
DIRECTORY_CATEGORIES = frozenset(CATEGORIES) - {"root_files"}

# Categories whose second path segment scopes the file to hosts/platforms
SPECIFIC_CATEGORIES = frozenset({"files", "templates"})

METADATA_STRING_FIELDS = (
    "description",
    "long_description",
    "maintainer",
    "maintainer_email",
    "license",
)

METADATA_MAP_FIELDS = (
    "platforms",
    "dependencies",
    "recommendations",
    "suggestions",
    "conflicting",
    "providing",
    "replacing",
    "recipes",
    "attributes",
    "groupings",
)


def categorize(relative_path: str) -> str:
    """Assign a cookbook file to its manifest category.

    Files below one of the well-known directories belong to that
    category; everything else (top-level files and unknown directories)
    goes to root_files.

    Example:
        "recipes/default.rb" -> "recipes"
        "metadata.json" -> "root_files"
        "test/integration/default_test.rb" -> "root_files"
    """
    parts = PurePosixPath(relative_path).parts
    if len(parts) > 1 and parts[0] in DIRECTORY_CATEGORIES:
        return parts[0]
    return "root_files"


def specificity_for(relative_path: str, category: str) -> str:
    """Derive the specificity of a file.

    Example:
        ("files/ubuntu/motd", "files") -> "ubuntu"
        ("templates/nginx.conf.erb", "templates") -> "default"
    """
    parts = PurePosixPath(relative_path).parts
    if category in SPECIFIC_CATEGORIES and len(parts) > 2:
        return parts[1]
    return DEFAULT_SPECIFICITY


def build_cookbook_item(entry: FileEntry) -> tuple[str, CookbookItem]:
    """Build the manifest entry for a file.

    Returns:
        Tuple of (category, item)
    """
    category = categorize(entry.relative_path)
    item = CookbookItem(
        path=entry.relative_path,
        name=PurePosixPath(entry.relative_path).name,
        checksum=entry.checksum,
        specificity=specificity_for(entry.relative_path, category),
    )
    return category, item


def normalize_metadata(metadata: CookbookMetadata | dict[str, Any] | None, name: str, version: str) -> CookbookMetadata:
    """Complete a metadata block for publishing.

    Missing descriptive fields become empty strings and missing maps
    become empty dicts. Every other key, including the cookbook-defined
    attributes and groupings structures, is preserved as given.
    """
    normalized: dict[str, Any] = copy.deepcopy(dict(metadata or {}))
    normalized["name"] = name
    normalized["version"] = version

    for key in METADATA_STRING_FIELDS:
        if normalized.get(key) is None:
            normalized[key] = ""
    for key in METADATA_MAP_FIELDS:
        if normalized.get(key) is None:
            normalized[key] = {}

    return normalized  # type: ignore[return-value]


def load_metadata(root: Path) -> CookbookMetadata | None:
    """Read metadata.json from a cookbook root.

    Returns:
        The decoded metadata, or None if the cookbook has no metadata.json

    Raises:
        LocalFileError: If the file exists but cannot be read
        ValueError: If the file is not a JSON object
    """
    metadata_path = root / METADATA_FILE
    if not metadata_path.is_file():
        return None

    try:
        with metadata_path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise LocalFileError(metadata_path, e) from e
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {metadata_path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"{metadata_path} must contain a JSON object")
    return data  # type: ignore[return-value]


def build_manifest(
    name: str,
    version: str,
    entries: Iterable[FileEntry],
    metadata: CookbookMetadata | dict[str, Any] | None = None,
) -> CookbookManifest:
    """Build a cookbook version manifest from checksummed files.

    Args:
        name: Cookbook name
        version: Cookbook version (e.g. "1.2.3")
        entries: Files of the cookbook
        metadata: Metadata block; completed by normalize_metadata

    Returns:
        Manifest with every category present and each list sorted by path
    """
    segments: dict[str, list[CookbookItem]] = {category: [] for category in CATEGORIES}
    for entry in entries:
        category, item = build_cookbook_item(entry)
        segments[category].append(item)

    manifest: dict[str, Any] = {
        "cookbook_name": name,
        "name": f"{name}-{version}",
        "version": version,
        "chef_type": CHEF_TYPE,
        "json_class": JSON_CLASS,
        "frozen?": False,
    }
    for category in CATEGORIES:
        manifest[category] = sorted(segments[category], key=lambda item: item["path"])
    manifest["metadata"] = normalize_metadata(metadata, name, version)

    return manifest  # type: ignore[return-value]


def iter_items(manifest: CookbookManifest | dict[str, Any]) -> Iterator[tuple[str, CookbookItem]]:
    """Yield (category, item) for every file in a manifest."""
    for category in CATEGORIES:
        for item in manifest.get(category) or []:
            yield category, item


def manifest_checksums(manifest: CookbookManifest | dict[str, Any]) -> set[str]:
    """All content checksums referenced by a manifest."""
    return {item["checksum"] for _, item in iter_items(manifest)}


def to_put(manifest: CookbookManifest | dict[str, Any]) -> CookbookManifest:
    """Convert a manifest into the body accepted by PUT /cookbooks/<name>/<version>.

    Server-assigned content URLs are dropped from every item; everything
    else is kept.
    """
    body: dict[str, Any] = copy.deepcopy(dict(manifest))
    for category in CATEGORIES:
        body[category] = [
            {key: value for key, value in item.items() if key != "url"}
            for item in body.get(category) or []
        ]
    return body  # type: ignore[return-value]
