"""metrics.orchestrator

Phase sequencing for one data-gathering run.

States
------
``Init -> KSM? -> time? -> density? -> storage? -> network? -> Done``

* The KSM phase runs only when KSM is controllable and density was
  selected. It captures the current KSM settings, arms the restore guard,
  switches KSM to aggressive mode, runs the density tests KSM affects and
  then turns KSM off, whatever happened in between. KSM may steal CPU time
  and add noise, so every later phase runs with it off.
* The remaining phases are gated independently by the selection and always
  run in the order above (time first, while the system is least perturbed).
* Done prints the finalization message, even if probes failed. The restore
  guard is released after Done, so the captured KSM settings come back last.

Everything runs sequentially on the calling thread; measurements are
contention sensitive.
"""

from __future__ import annotations

import logging
from contextlib import ExitStack
from typing import Callable, Dict, List, Optional, Sequence

from metrics.cleanup import RestoreOnExit
from metrics.core import SUITE_DENSITY, SUITE_NETWORK, SUITE_STORAGE, SUITE_TIME
from metrics.errors import KsmStateError, VersionLookupError
from metrics.execution.model import BenchmarkInvocation, PhaseResult, RunResult
from metrics.execution.runner import Runner, failed_result
from metrics.ksm import KsmController
from metrics.models import SuiteSelection
from metrics.settings import Settings
from metrics.suites import (
    FOOTPRINT_LARGE,
    PHASE_ORDER,
    density_invocations,
    density_ksm_invocations,
    network_invocations,
    storage_invocations,
    time_invocations,
)
from metrics.versions import elasticsearch_image

logger = logging.getLogger(__name__)

PHASE_KSM = "density-ksm"

Finisher = Callable[[RunResult], None]


class Orchestrator:
    def __init__(
        self,
        *,
        controller: KsmController,
        settings: Settings,
        runner: Runner,
        finisher: Optional[Finisher] = None,
    ) -> None:
        self.controller = controller
        self.settings = settings
        self.runner = runner
        self.finisher = finisher

    # ------------------------------------------------------------------
    # Phase plumbing
    # ------------------------------------------------------------------

    def _run_phase(
        self,
        name: str,
        invocations: Sequence[BenchmarkInvocation],
        *,
        not_runnable: Optional[Dict[str, str]] = None,
    ) -> PhaseResult:
        """Run invocations one after another; failures never stop the phase."""

        phase = PhaseResult(name=name)
        skip = not_runnable or {}
        for inv in invocations:
            print(f"\n▶ {name}: {inv.name}")
            if inv.name in skip:
                logger.error("%s not run: %s", inv.name, skip[inv.name])
                phase.results.append(failed_result(inv, skip[inv.name]))
                continue
            result = self.runner(inv)
            if not result.ok:
                print(f"⚠️  {inv.name} failed (exit code {result.exit_code}); continuing")
            phase.results.append(result)
        return phase

    def _phase_builders(self) -> Dict[str, Callable[[], List[BenchmarkInvocation]]]:
        s = self.settings
        return {
            SUITE_TIME: lambda: time_invocations(s.time_image, s.time_count),
            SUITE_DENSITY: density_invocations,
            SUITE_STORAGE: lambda: storage_invocations(s.test_volume_mount),
            SUITE_NETWORK: network_invocations,
        }

    _BANNERS = {
        SUITE_TIME: "Running time tests",
        SUITE_DENSITY: "Running non-KSM density tests",
        SUITE_STORAGE: "Running storage tests",
        SUITE_NETWORK: "Running network tests",
    }

    # ------------------------------------------------------------------
    # KSM phase
    # ------------------------------------------------------------------

    def _run_density_ksm(self) -> PhaseResult:
        print("Running KSM density tests")

        # Resolve the image early: a missing manifest should show up before
        # minutes of footprint runs, not halfway through them.
        not_runnable: Dict[str, str] = {}
        try:
            image = elasticsearch_image(self.settings.versions_file)
        except VersionLookupError as e:
            logger.error("Cannot resolve elasticsearch image: %s", e)
            image = "elasticsearch"
            not_runnable[FOOTPRINT_LARGE] = str(e)

        return self._run_phase(PHASE_KSM, density_ksm_invocations(image), not_runnable=not_runnable)

    def _ksm_phase(self, stack: ExitStack, result: RunResult) -> None:
        try:
            saved = self.controller.snapshot()
        except (OSError, KsmStateError) as e:
            logger.error("Cannot read KSM settings, skipping KSM tests: %s", e)
            return

        stack.enter_context(RestoreOnExit(self.controller, saved))
        result.ksm_phase_ran = True

        try:
            try:
                self.controller.set_aggressive()
            except OSError as e:
                logger.error("Cannot set KSM aggressive mode: %s", e)
            result.phases.append(self._run_density_ksm())
        finally:
            # KSM off for the rest of the run, whether or not the density
            # phase (separately) is selected.
            try:
                self.controller.disable()
            except (OSError, KsmStateError) as e:
                logger.error("Cannot disable KSM; later results may be noisy: %s", e)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(self, selection: SuiteSelection) -> RunResult:
        result = RunResult()

        with ExitStack() as stack:
            result.ksm_controllable = bool(self.controller.is_controllable())
            if not result.ksm_controllable:
                print("No KSM control file, skipping KSM tests")
                logger.info("KSM control surface not present")
            elif selection.wants(SUITE_DENSITY):
                self._ksm_phase(stack, result)

            builders = self._phase_builders()
            for suite in PHASE_ORDER:
                if not selection.wants(suite):
                    continue
                print(self._BANNERS[suite])
                result.phases.append(self._run_phase(suite, builders[suite]()))

            if self.finisher is not None:
                self.finisher(result)

        return result
