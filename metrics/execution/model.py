"""metrics.execution.model

Shared data structures for probe execution.

The execution layer is split into:

* :mod:`metrics.suites`           – declarative descriptors (what to run)
* :mod:`metrics.execution.runner` – subprocess execution (side effects)

These dataclasses carry no side effects so the registry, runner and
orchestrator can pass them around freely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Sequence


def now_iso() -> str:
    """Return current UTC time as ISO-8601 string."""

    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class BenchmarkInvocation:
    """One external probe command plus its environment overlay.

    ``env`` is applied on top of the harness environment for this invocation
    only. Overlays never carry over from one invocation to the next.
    """

    name: str
    cmd: Sequence[str]
    env: Mapping[str, str] = field(default_factory=dict)

    @property
    def command_str(self) -> str:
        return " ".join(self.cmd)

    def environment(self, base: Mapping[str, str]) -> Dict[str, str]:
        out = dict(base)
        out.update({str(k): str(v) for k, v in self.env.items()})
        return out


@dataclass(frozen=True)
class InvocationResult:
    """Outcome of one invocation. ``ok`` is False for a probe failure."""

    invocation: BenchmarkInvocation
    exit_code: int
    started: str
    finished: str
    elapsed_seconds: float = 0.0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and self.error is None

    @property
    def name(self) -> str:
        return self.invocation.name


@dataclass
class PhaseResult:
    """Execution record for one orchestrator phase."""

    name: str
    results: List[InvocationResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results)

    @property
    def failures(self) -> List[InvocationResult]:
        return [r for r in self.results if not r.ok]


@dataclass
class RunResult:
    """Everything the orchestrator did in one run."""

    phases: List[PhaseResult] = field(default_factory=list)
    ksm_controllable: bool = False
    ksm_phase_ran: bool = False

    @property
    def phase_names(self) -> List[str]:
        return [p.name for p in self.phases]

    @property
    def failures(self) -> List[InvocationResult]:
        return [r for p in self.phases for r in p.failures]

    @property
    def ok(self) -> bool:
        return not self.failures
