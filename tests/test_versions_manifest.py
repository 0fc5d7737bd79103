from __future__ import annotations

from pathlib import Path

import pytest

from metrics.errors import VersionLookupError
from metrics.versions import elasticsearch_image, lookup_version


MANIFEST = """\
docker_images:
  description: "images used by the metrics tests"
  elasticsearch:
    description: "large footprint payload"
    url: "https://hub.docker.com/_/elasticsearch"
    version: "6.4.0"
  busybox:
    version:
      - 1
      - 2
"""


def write_manifest(tmp_path: Path, text: str = MANIFEST) -> Path:
    p = tmp_path / "versions.yaml"
    p.write_text(text, encoding="utf-8")
    return p


def test_lookup_version_walks_dotted_key(tmp_path: Path) -> None:
    p = write_manifest(tmp_path)
    assert lookup_version(p, "docker_images.elasticsearch.version") == "6.4.0"


def test_elasticsearch_image_reference(tmp_path: Path) -> None:
    assert elasticsearch_image(write_manifest(tmp_path)) == "elasticsearch:6.4.0"


def test_unquoted_version_keeps_its_digits(tmp_path: Path) -> None:
    p = write_manifest(tmp_path, "docker_images:\n  elasticsearch:\n    version: 7.10\n")
    assert elasticsearch_image(p) == "elasticsearch:7.10"


def test_unquoted_integer_version(tmp_path: Path) -> None:
    p = write_manifest(tmp_path, "docker_images:\n  elasticsearch:\n    version: 7\n")
    assert elasticsearch_image(p) == "elasticsearch:7"


def test_empty_version_raises(tmp_path: Path) -> None:
    p = write_manifest(tmp_path, "docker_images:\n  elasticsearch:\n    version:\n")
    with pytest.raises(VersionLookupError):
        elasticsearch_image(p)


@pytest.mark.parametrize(
    "key",
    ["docker_images.elasticsearch.tag", "docker_images.kibana.version", "nope"],
)
def test_missing_key_raises(tmp_path: Path, key: str) -> None:
    with pytest.raises(VersionLookupError):
        lookup_version(write_manifest(tmp_path), key)


def test_non_scalar_value_raises(tmp_path: Path) -> None:
    p = write_manifest(tmp_path)
    with pytest.raises(VersionLookupError):
        lookup_version(p, "docker_images.busybox.version")
    with pytest.raises(VersionLookupError):
        lookup_version(p, "docker_images.elasticsearch")


def test_missing_manifest_raises(tmp_path: Path) -> None:
    with pytest.raises(VersionLookupError):
        elasticsearch_image(tmp_path / "versions.yaml")


def test_unparsable_manifest_raises(tmp_path: Path) -> None:
    p = write_manifest(tmp_path, "docker_images: [unclosed\n")
    with pytest.raises(VersionLookupError):
        elasticsearch_image(p)


def test_undecodable_manifest_raises(tmp_path: Path) -> None:
    p = tmp_path / "versions.yaml"
    p.write_bytes(b"\xff\xfe\x00docker_images:\n")
    with pytest.raises(VersionLookupError):
        elasticsearch_image(p)
