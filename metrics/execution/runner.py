"""metrics.execution.runner

Subprocess execution of probe invocations.

Rule
----
Only this module should touch ``subprocess``. :func:`run_invocation` never
raises for a failing probe: non-zero exits and commands that cannot start are
both returned as failed :class:`InvocationResult` values, so one broken probe
never stops the rest of the run.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from pathlib import Path
from typing import Callable, Mapping, Optional

from .model import BenchmarkInvocation, InvocationResult, now_iso

logger = logging.getLogger(__name__)

# Shell convention for "command not found / cannot execute".
EXIT_NOT_RUNNABLE = 127

Runner = Callable[[BenchmarkInvocation], InvocationResult]


def run_invocation(
    inv: BenchmarkInvocation,
    *,
    cwd: Optional[Path] = None,
    dry_run: bool = False,
    quiet: bool = False,
    base_env: Optional[Mapping[str, str]] = None,
) -> InvocationResult:
    """Execute one invocation via subprocess and wait for it."""

    print("  Command :", inv.command_str)
    if inv.env:
        print("  Env     :", " ".join(f"{k}={v!r}" for k, v in inv.env.items()))
    if dry_run:
        print("  (dry-run: not executing)")
        t = now_iso()
        return InvocationResult(invocation=inv, exit_code=0, started=t, finished=t)

    env = inv.environment(os.environ if base_env is None else base_env)
    env.setdefault("PYTHONUNBUFFERED", "1")

    started = now_iso()
    t0 = time.monotonic()
    try:
        if quiet:
            result = subprocess.run(
                list(inv.cmd),
                env=env,
                cwd=str(cwd) if cwd else None,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        else:
            result = subprocess.run(list(inv.cmd), env=env, cwd=str(cwd) if cwd else None)
    except OSError as e:
        elapsed = time.monotonic() - t0
        logger.error("%s could not be started: %s", inv.name, e)
        return InvocationResult(
            invocation=inv,
            exit_code=EXIT_NOT_RUNNABLE,
            started=started,
            finished=now_iso(),
            elapsed_seconds=elapsed,
            error=str(e),
        )

    elapsed = time.monotonic() - t0
    code = int(result.returncode)
    if code == 0:
        logger.info("%s finished in %.1fs", inv.name, elapsed)
    else:
        logger.warning("%s exited with code %s after %.1fs", inv.name, code, elapsed)

    return InvocationResult(
        invocation=inv,
        exit_code=code,
        started=started,
        finished=now_iso(),
        elapsed_seconds=elapsed,
    )


def make_runner(*, cwd: Optional[Path], dry_run: bool, quiet: bool) -> Runner:
    """Bind execution knobs so the orchestrator only passes invocations."""

    def _run(inv: BenchmarkInvocation) -> InvocationResult:
        return run_invocation(inv, cwd=cwd, dry_run=dry_run, quiet=quiet)

    return _run


def failed_result(inv: BenchmarkInvocation, error: str) -> InvocationResult:
    """Record an invocation that was never started."""

    t = now_iso()
    return InvocationResult(
        invocation=inv,
        exit_code=EXIT_NOT_RUNNABLE,
        started=t,
        finished=t,
        error=error,
    )
