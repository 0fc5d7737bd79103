"""metrics.settings

Runtime configuration for the harness.

Values come from the process environment, optionally seeded from a ``.env``
file at the repo root (see :func:`metrics.wiring.load_env`). Every knob has a
default that reproduces the standard data-gathering run, so an empty
environment is a valid configuration.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from metrics.core import (
    DEFAULT_RESULTS_DIRNAME,
    DEFAULT_VERSIONS_FILENAME,
    KSM_BASE_DEFAULT,
    ROOT_DIR,
)
from metrics.errors import ConfigError
from metrics.suites import check_time_image

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for one run."""

    metrics_root: Path
    results_dir: Path
    versions_file: Path

    ksm_base: Path = KSM_BASE_DEFAULT
    ksm_aggressive_pages: int = 1000
    ksm_aggressive_sleep_ms: int = 50

    time_image: str = "ubuntu"
    time_count: int = 100

    test_volume_mount: bool = False

    dry_run: bool = False
    quiet: bool = False

    # False keeps the best-effort policy: probe failures do not change the exit code.
    strict_exit: bool = False

    log_level: str = "INFO"


def _flag(environ: Mapping[str, str], name: str) -> bool:
    return (environ.get(name) or "").strip().lower() in _TRUE_VALUES


def _int(environ: Mapping[str, str], name: str, default: int, *, minimum: int = 0) -> int:
    raw = (environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")
    return value


def _path(environ: Mapping[str, str], name: str, default: Path) -> Path:
    raw = (environ.get(name) or "").strip()
    return Path(raw).expanduser() if raw else default


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from an environment mapping (default: ``os.environ``)."""

    env = os.environ if environ is None else environ

    metrics_root = _path(env, "METRICS_ROOT", ROOT_DIR).resolve()
    results_dir = _path(env, "METRICS_RESULTS_DIR", metrics_root / DEFAULT_RESULTS_DIRNAME)
    versions_file = _path(env, "METRICS_VERSIONS_FILE", metrics_root / DEFAULT_VERSIONS_FILENAME)

    time_image = (env.get("METRICS_TIME_IMAGE") or "").strip() or "ubuntu"
    check_time_image(time_image)

    log_level = (env.get("METRICS_LOG_LEVEL") or "INFO").strip().upper()
    if log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigError(f"METRICS_LOG_LEVEL is not a logging level: {log_level!r}")

    return Settings(
        metrics_root=metrics_root,
        results_dir=results_dir,
        versions_file=versions_file,
        ksm_base=_path(env, "KSM_BASE", KSM_BASE_DEFAULT),
        ksm_aggressive_pages=_int(env, "KSM_AGGRESSIVE_PAGES", 1000, minimum=1),
        ksm_aggressive_sleep_ms=_int(env, "KSM_AGGRESSIVE_SLEEP_MS", 50),
        time_image=time_image,
        time_count=_int(env, "METRICS_TIME_COUNT", 100, minimum=1),
        test_volume_mount=_flag(env, "TEST_VOLUME_MOUNT"),
        dry_run=_flag(env, "METRICS_DRY_RUN"),
        quiet=_flag(env, "METRICS_QUIET"),
        strict_exit=_flag(env, "METRICS_STRICT_EXIT"),
        log_level=log_level,
    )
