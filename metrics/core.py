# metrics/core.py
from __future__ import annotations

from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
ENV_PATH = ROOT_DIR / ".env"

DEFAULT_RESULTS_DIRNAME = "results"
DEFAULT_VERSIONS_FILENAME = "versions.yaml"

KSM_BASE_DEFAULT = Path("/sys/kernel/mm/ksm")

# Canonical suite ids, in the order the phases run after the KSM phase.
SUITE_TIME = "time"
SUITE_DENSITY = "density"
SUITE_STORAGE = "storage"
SUITE_NETWORK = "network"

ELASTICSEARCH_VERSION_KEY = "docker_images.elasticsearch.version"
