"""Type definitions for cookbook uploads and cookbook version manifests.

The TypedDict classes mirror the JSON documents exchanged with the Chef
server (see schemas/cookbook_version.schema.json). The dataclasses are
client-side values that live for the duration of one upload call.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import TypedDict, Union

# Opaque JSON value. Used for cookbook-defined structures whose shape has
# no stable contract (metadata attributes and groupings).
JSONValue = Union[None, bool, int, float, str, list["JSONValue"], dict[str, "JSONValue"]]

# Segment lists of a cookbook version, in the order the server documents them
CATEGORIES: tuple[str, ...] = (
    "attributes",
    "definitions",
    "files",
    "libraries",
    "providers",
    "recipes",
    "resources",
    "templates",
    "root_files",
)


@dataclass(frozen=True)
class FileEntry:
    """A local cookbook file and its content digest."""

    local_path: Path  # Absolute path on disk
    relative_path: str  # Path relative to cookbook root, POSIX separators
    checksum: str  # Lowercase hex MD5 of the file content


@dataclass(frozen=True)
class SandboxSlot:
    """Server answer for a single checksum in a sandbox."""

    needs_upload: bool
    url: str | None = None


@dataclass
class SandboxDescriptor:
    """A sandbox created on the server for one upload call.

    Attributes:
        sandbox_id: Server-assigned sandbox identifier
        uri: Server URI of the sandbox
        checksums: One slot per submitted checksum
        committed: Set by the committer once the server accepted the commit
    """

    sandbox_id: str
    uri: str = ""
    checksums: dict[str, SandboxSlot] = field(default_factory=dict)
    committed: bool = False

    @property
    def missing(self) -> list[str]:
        """Checksums the server asked us to upload."""
        return [checksum for checksum, slot in self.checksums.items() if slot.needs_upload]


class _CookbookItemBase(TypedDict):
    path: str  # Path relative to cookbook root
    name: str  # File name
    checksum: str  # Lowercase hex MD5
    specificity: str  # "default", or host/platform scope for files and templates


class CookbookItem(_CookbookItemBase, total=False):
    """A single file entry in a cookbook version manifest."""

    url: str  # Only present on manifests returned by the server


class CookbookMetadata(TypedDict, total=False):
    """Cookbook metadata block.

    Relation maps are keyed by cookbook name with version constraints as
    values. ``attributes`` and ``groupings`` are cookbook-defined and kept
    as opaque JSON.
    """

    name: str
    version: str
    description: str
    long_description: str
    maintainer: str
    maintainer_email: str
    license: str
    platforms: dict[str, str]
    dependencies: dict[str, str]
    recommendations: dict[str, str]
    suggestions: dict[str, str]
    conflicting: dict[str, str]
    providing: dict[str, str]
    replacing: dict[str, str]
    recipes: dict[str, str]
    attributes: dict[str, JSONValue]
    groupings: dict[str, JSONValue]


# "frozen?" is not a valid identifier, hence the functional syntax
CookbookManifest = TypedDict(
    "CookbookManifest",
    {
        "cookbook_name": str,
        "name": str,  # "<cookbook_name>-<version>"
        "version": str,
        "chef_type": str,
        "json_class": str,
        "frozen?": bool,
        "attributes": list[CookbookItem],
        "definitions": list[CookbookItem],
        "files": list[CookbookItem],
        "libraries": list[CookbookItem],
        "providers": list[CookbookItem],
        "recipes": list[CookbookItem],
        "resources": list[CookbookItem],
        "templates": list[CookbookItem],
        "root_files": list[CookbookItem],
        "metadata": CookbookMetadata,
    },
)


class CookbookVersionRef(TypedDict):
    """A version entry in a cookbook listing."""

    url: str
    version: str


class CookbookVersions(TypedDict):
    """Listing entry for one cookbook."""

    url: str
    versions: list[CookbookVersionRef]


# GET /cookbooks and GET /cookbooks/<name> return cookbook name -> versions
CookbookListResult = dict[str, CookbookVersions]
