"""metrics.versions

Lookups in the repository version manifest (``versions.yaml``).

The manifest pins the image versions some probes use, e.g.::

    docker_images:
      elasticsearch:
        version: "6.4.0"

Scalars are read as written (``BaseLoader``), so an unquoted ``7.10`` stays
``7.10`` instead of becoming the float ``7.1``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from metrics.core import ELASTICSEARCH_VERSION_KEY
from metrics.errors import VersionLookupError


def load_manifest(path: Path) -> Any:
    p = Path(path)
    if not p.is_file():
        raise VersionLookupError(f"Version manifest not found: {p}")
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise VersionLookupError(f"Cannot read version manifest {p}: {e}") from e
    try:
        return yaml.load(text, Loader=yaml.BaseLoader) or {}
    except yaml.YAMLError as e:
        raise VersionLookupError(f"Cannot parse version manifest {p}: {e}") from e


def lookup_version(path: Path, dotted_key: str) -> str:
    """Return the scalar at ``dotted_key`` (``a.b.c``) as a string."""

    node = load_manifest(path)
    for part in dotted_key.split("."):
        if not isinstance(node, dict) or part not in node:
            raise VersionLookupError(f"Key {dotted_key!r} not found in {path}")
        node = node[part]

    if node is None or isinstance(node, (dict, list)):
        raise VersionLookupError(f"Key {dotted_key!r} in {path} is not a scalar value")

    value = str(node).strip()
    if not value:
        raise VersionLookupError(f"Key {dotted_key!r} in {path} is empty")
    return value


def elasticsearch_image(path: Path) -> str:
    return f"elasticsearch:{lookup_version(path, ELASTICSEARCH_VERSION_KEY)}"
