"""metrics.ksm

Control of the kernel same-page merging (KSM) feature.

KSM state is machine-wide and owned by the operating system. The harness only
reads it, captures it once, flips it for the density measurements and writes
the captured values back when the run ends.

Control surface (sysfs)
-----------------------
``<base>/run``            0 = stopped, 1 = running, 2 = stop and unmerge
``<base>/pages_to_scan``  pages scanned per wake-up
``<base>/sleep_millisecs`` delay between wake-ups

The presence of ``<base>/run`` is what makes KSM controllable at all.

Two implementations share the :class:`KsmController` contract:

* :class:`SysfsKsmController` - the real thing.
* :class:`InMemoryKsmController` - used by tests and dry runs; it never
  touches the machine and records every call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from metrics.core import KSM_BASE_DEFAULT
from metrics.errors import KsmStateError

logger = logging.getLogger(__name__)

KSM_RUN_STOP = 0
KSM_RUN_MERGE = 1
KSM_RUN_UNMERGE = 2

KSM_AGGRESSIVE_PAGES = 1000
KSM_AGGRESSIVE_SLEEP_MS = 50


@dataclass(frozen=True)
class KsmSettings:
    """Captured KSM state."""

    run: int
    pages_to_scan: int
    sleep_millisecs: int

    @property
    def enabled(self) -> bool:
        return self.run == KSM_RUN_MERGE


class KsmController:
    """Interface for reading and mutating KSM state.

    ``snapshot`` must come before ``set_aggressive``/``disable``; the
    concrete classes raise :class:`KsmStateError` otherwise.
    """

    def is_controllable(self) -> bool:
        raise NotImplementedError

    def snapshot(self) -> KsmSettings:
        raise NotImplementedError

    def set_aggressive(self) -> None:
        raise NotImplementedError

    def disable(self) -> None:
        raise NotImplementedError

    def restore(self, settings: KsmSettings) -> None:
        raise NotImplementedError


class SysfsKsmController(KsmController):
    def __init__(
        self,
        base: Path = KSM_BASE_DEFAULT,
        *,
        aggressive_pages: int = KSM_AGGRESSIVE_PAGES,
        aggressive_sleep_ms: int = KSM_AGGRESSIVE_SLEEP_MS,
    ) -> None:
        self.base = Path(base)
        self.aggressive_pages = int(aggressive_pages)
        self.aggressive_sleep_ms = int(aggressive_sleep_ms)
        self._snapshot: Optional[KsmSettings] = None

    @property
    def run_file(self) -> Path:
        return self.base / "run"

    @property
    def pages_file(self) -> Path:
        return self.base / "pages_to_scan"

    @property
    def sleep_file(self) -> Path:
        return self.base / "sleep_millisecs"

    def _read_int(self, path: Path) -> int:
        try:
            return int(path.read_text(encoding="utf-8").strip())
        except ValueError as e:
            # UnicodeDecodeError included
            raise KsmStateError(f"Unexpected contents in {path}: {e}") from e

    def _write_int(self, path: Path, value: int) -> None:
        logger.debug("writing %s <- %s", path, value)
        path.write_text(f"{int(value)}\n", encoding="utf-8")

    def _require_snapshot(self, action: str) -> None:
        if self._snapshot is None:
            raise KsmStateError(f"KSM {action} requested before settings were saved")

    def is_controllable(self) -> bool:
        return self.run_file.is_file()

    def snapshot(self) -> KsmSettings:
        settings = KsmSettings(
            run=self._read_int(self.run_file),
            pages_to_scan=self._read_int(self.pages_file),
            sleep_millisecs=self._read_int(self.sleep_file),
        )
        logger.info(
            "Saved KSM settings: run=%s pages_to_scan=%s sleep_millisecs=%s",
            settings.run,
            settings.pages_to_scan,
            settings.sleep_millisecs,
        )
        self._snapshot = settings
        return settings

    def set_aggressive(self) -> None:
        self._require_snapshot("aggressive mode")
        logger.info(
            "Setting KSM aggressive: pages_to_scan=%s sleep_millisecs=%s",
            self.aggressive_pages,
            self.aggressive_sleep_ms,
        )
        self._write_int(self.pages_file, self.aggressive_pages)
        self._write_int(self.sleep_file, self.aggressive_sleep_ms)
        self._write_int(self.run_file, KSM_RUN_MERGE)

    def disable(self) -> None:
        self._require_snapshot("disable")
        if self._read_int(self.run_file) == KSM_RUN_STOP:
            logger.debug("KSM already stopped")
            return
        logger.info("Disabling KSM")
        self._write_int(self.run_file, KSM_RUN_STOP)

    def restore(self, settings: KsmSettings) -> None:
        """Write ``settings`` back field by field; failures are logged, never raised."""

        logger.info("Restoring KSM settings")
        # Tunables first, run last, so KSM never runs with half-restored tunables.
        fields: List[Tuple[Path, int]] = [
            (self.pages_file, settings.pages_to_scan),
            (self.sleep_file, settings.sleep_millisecs),
            (self.run_file, settings.run),
        ]
        for path, value in fields:
            try:
                self._write_int(path, value)
            except OSError as e:
                logger.error("Failed to restore %s to %s: %s", path, value, e)


class InMemoryKsmController(KsmController):
    """Fake controller with the same contract as :class:`SysfsKsmController`."""

    def __init__(
        self,
        initial: Optional[KsmSettings] = None,
        *,
        controllable: bool = True,
        aggressive_pages: int = KSM_AGGRESSIVE_PAGES,
        aggressive_sleep_ms: int = KSM_AGGRESSIVE_SLEEP_MS,
        fail_restore: bool = False,
    ) -> None:
        self.state = initial or KsmSettings(run=KSM_RUN_MERGE, pages_to_scan=100, sleep_millisecs=20)
        self.controllable = controllable
        self.aggressive_pages = aggressive_pages
        self.aggressive_sleep_ms = aggressive_sleep_ms
        self.fail_restore = fail_restore
        self.calls: List[str] = []
        self.restored: List[KsmSettings] = []
        self._snapshot: Optional[KsmSettings] = None

    def is_controllable(self) -> bool:
        return self.controllable

    def snapshot(self) -> KsmSettings:
        self.calls.append("snapshot")
        self._snapshot = self.state
        return self.state

    def set_aggressive(self) -> None:
        self.calls.append("set_aggressive")
        if self._snapshot is None:
            raise KsmStateError("KSM aggressive mode requested before settings were saved")
        self.state = KsmSettings(
            run=KSM_RUN_MERGE,
            pages_to_scan=self.aggressive_pages,
            sleep_millisecs=self.aggressive_sleep_ms,
        )

    def disable(self) -> None:
        self.calls.append("disable")
        if self._snapshot is None:
            raise KsmStateError("KSM disable requested before settings were saved")
        if self.state.run != KSM_RUN_STOP:
            self.state = KsmSettings(
                run=KSM_RUN_STOP,
                pages_to_scan=self.state.pages_to_scan,
                sleep_millisecs=self.state.sleep_millisecs,
            )

    def restore(self, settings: KsmSettings) -> None:
        self.calls.append("restore")
        self.restored.append(settings)
        if self.fail_restore:
            logger.error("Failed to restore KSM settings (simulated)")
            return
        self.state = settings
