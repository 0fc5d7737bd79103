"""metrics.harness

Single, high-level object for a data-gathering run.

Callers (the CLI, tests, scripts) should go through :class:`MetricsHarness`,
built by :func:`metrics.wiring.build_harness`, rather than wiring the KSM
controller, runner and orchestrator themselves:

- ``onetime_init()``: per-run preparation, allowed once
- ``run(selection)``: execute the selected phases and print the finish message
- ``finish_message(result)``: the next-step text shown at the end of a run
"""

from __future__ import annotations

import logging
import shutil
from typing import List, Optional

from metrics.execution.model import RunResult
from metrics.execution.runner import Runner, make_runner
from metrics.ksm import KsmController
from metrics.models import SuiteSelection
from metrics.orchestrator import Orchestrator
from metrics.settings import Settings

logger = logging.getLogger(__name__)

REQUIRED_EXECUTABLES = ("bash", "docker")


class MetricsHarness:
    def __init__(
        self,
        *,
        controller: KsmController,
        settings: Settings,
        runner: Optional[Runner] = None,
    ) -> None:
        self.controller = controller
        self.settings = settings
        self.runner = runner or make_runner(
            cwd=settings.metrics_root,
            dry_run=settings.dry_run,
            quiet=settings.quiet,
        )
        self._initialized = False

    def onetime_init(self) -> List[str]:
        """Prepare the machine for a run. Returns the missing executables."""

        if self._initialized:
            raise RuntimeError("onetime_init() called more than once")
        self._initialized = True

        self.settings.results_dir.mkdir(parents=True, exist_ok=True)

        missing = [name for name in REQUIRED_EXECUTABLES if shutil.which(name) is None]
        for name in missing:
            logger.warning("%s not found on PATH; probes that need it will fail", name)
        return missing

    def finish_message(self, result: RunResult) -> str:
        lines = [
            "Now please create a suitably descriptively named subdirectory in",
            f"{self.settings.results_dir} and copy the .json results files into it before running",
            "this script again.",
        ]
        failures = result.failures
        if failures:
            lines.append("")
            lines.append(f"⚠️  {len(failures)} probe(s) failed:")
            for r in failures:
                detail = r.error or f"exit code {r.exit_code}"
                lines.append(f"  - {r.name}: {detail}")
        return "\n".join(lines)

    def _finish(self, result: RunResult) -> None:
        print("\n" + self.finish_message(result))

    def run(self, selection: SuiteSelection) -> RunResult:
        logger.info("Selected suites: %s", ", ".join(selection.enabled) or "(none)")
        orchestrator = Orchestrator(
            controller=self.controller,
            settings=self.settings,
            runner=self.runner,
            finisher=self._finish,
        )
        return orchestrator.run(selection)

    def exit_code(self, result: RunResult) -> int:
        """Final process status for a completed run."""

        if self.settings.strict_exit and not result.ok:
            return 1
        return 0
