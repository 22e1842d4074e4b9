"""Schema checks for cookbook version manifests.

The packaged schema describes the body accepted by
``PUT cookbooks/{name}/{version}``. Manifests are checked before they are
sent so that a malformed body fails locally instead of after the upload
transaction already committed its content.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema import ValidationError

from .types import CookbookManifest

# src/cookbook_sync/core/validator.py -> src/cookbook_sync/schemas/
SCHEMA_PATH = Path(__file__).parent.parent / "schemas" / "cookbook_version.schema.json"


@lru_cache(maxsize=1)
def load_schema() -> dict[str, Any]:
    """Read the cookbook version schema once per process.

    Raises:
        FileNotFoundError: If the package was installed without its schema
        json.JSONDecodeError: If the schema file is corrupt
    """
    if not SCHEMA_PATH.exists():
        raise FileNotFoundError(f"Schema file not found: {SCHEMA_PATH}")

    with SCHEMA_PATH.open("r", encoding="utf-8") as f:
        return json.load(f)  # type: ignore[no-any-return]


def validate_manifest(manifest: CookbookManifest) -> None:
    """Check a manifest against the cookbook version schema.

    Raises:
        ValidationError: On the first violation jsonschema reports
    """
    jsonschema.validate(instance=manifest, schema=load_schema())


def describe_validation_error(error: ValidationError) -> str:
    """Render a violation with the manifest path it occurred at.

    Example:
        >>> describe_validation_error(e)
        "metadata -> dependencies -> apt: 5 is not valid under any of the given schemas"
    """
    location = " -> ".join(str(p) for p in error.absolute_path) or "root"
    return f"{location}: {error.message}"


def validate_manifest_with_error_details(manifest: CookbookManifest) -> tuple[bool, str | None]:
    """Check a manifest without raising.

    Returns:
        ``(True, None)`` for a valid manifest, otherwise ``(False, message)``
        where the message names the offending manifest path
    """
    try:
        validate_manifest(manifest)
    except ValidationError as e:
        return False, describe_validation_error(e)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        return False, f"Schema error: {e}"
    return True, None
