"""metrics.wiring

This module is the **composition root** for the harness.

It is the single place where the running application is assembled:

- load configuration / environment variables (``.env`` via python-dotenv)
- configure logging
- choose real vs in-memory KSM control (dry runs never touch sysfs)
- build the :class:`~metrics.harness.MetricsHarness` facade
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from metrics.core import ENV_PATH
from metrics.harness import MetricsHarness
from metrics.ksm import InMemoryKsmController, KsmController, SysfsKsmController
from metrics.settings import Settings, load_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def load_env(dotenv_path: Path = ENV_PATH) -> bool:
    """Load ``.env`` into ``os.environ`` without overriding exported values."""

    if not dotenv_path.exists():
        return False
    return bool(load_dotenv(dotenv_path, override=False))


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


def build_controller(settings: Settings) -> KsmController:
    if settings.dry_run:
        # Report real availability, but never write to the machine.
        probe = SysfsKsmController(settings.ksm_base)
        return InMemoryKsmController(controllable=probe.is_controllable())
    return SysfsKsmController(
        settings.ksm_base,
        aggressive_pages=settings.ksm_aggressive_pages,
        aggressive_sleep_ms=settings.ksm_aggressive_sleep_ms,
    )


def build_harness(
    settings: Optional[Settings] = None,
    *,
    controller: Optional[KsmController] = None,
) -> MetricsHarness:
    settings = settings or load_settings()
    configure_logging(settings.log_level)
    return MetricsHarness(
        controller=controller or build_controller(settings),
        settings=settings,
    )
