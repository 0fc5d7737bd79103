# metrics/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable

from metrics.suites import PHASE_ORDER, SUPPORTED_SUITES


@dataclass(frozen=True)
class SuiteSelection:
    """Which suites a run should execute.

    ``run_all`` wins over ``selected``: a suite runs when either is true for
    it. Individual flags given before a later ``-a`` stay recorded but no
    longer matter.
    """

    run_all: bool = True
    selected: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        unknown = set(self.selected) - SUPPORTED_SUITES
        if unknown:
            raise ValueError(f"Unknown suites: {sorted(unknown)}. Valid: {PHASE_ORDER}")

    @classmethod
    def only(cls, suites: Iterable[str]) -> "SuiteSelection":
        return cls(run_all=False, selected=frozenset(suites))

    def wants(self, suite: str) -> bool:
        return self.run_all or suite in self.selected

    @property
    def enabled(self) -> list[str]:
        return [s for s in PHASE_ORDER if self.wants(s)]
