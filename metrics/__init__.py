"""metrics

Core package of the container metrics gathering harness.

It owns the suite registry, KSM state control, probe execution and phase
sequencing. The command-line surface lives in ``cli`` and the entry script
``gather_metrics.py`` only wires the two together.
"""

from __future__ import annotations
