"""metrics.cleanup

Restore-on-exit guard for machine-wide KSM settings.

:class:`RestoreOnExit` is entered right after the KSM settings are captured
and stays active until the whole run is over, so every later phase runs with
KSM in the state the harness chose. When it is left, for whatever reason, the
captured settings are written back once.

Exit paths covered
------------------
* normal return and exceptions: ``__exit__``
* SIGINT / SIGTERM / SIGQUIT / SIGHUP: the handler raises
  :class:`TerminatedBySignal`, which unwinds through ``__exit__``
* interpreter shutdown that skips the unwind: the ``atexit`` hook

The handled signals are ignored while the restore itself is writing, so a
second Ctrl-C cannot leave KSM half restored.

SIGKILL cannot be intercepted; a killed run leaves KSM as it was at the time
of the kill.
"""

from __future__ import annotations

import atexit
import logging
import signal
from types import FrameType
from typing import Any, Dict, Optional

from metrics.ksm import KsmController, KsmSettings

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = tuple(
    getattr(signal, name)
    for name in ("SIGINT", "SIGTERM", "SIGQUIT", "SIGHUP")
    if hasattr(signal, name)
)


class TerminatedBySignal(SystemExit):
    """Raised from a signal handler so the stack unwinds through cleanup."""

    def __init__(self, signum: int) -> None:
        super().__init__(128 + int(signum))
        self.signum = int(signum)


def _raise_terminated(signum: int, _frame: Optional[FrameType]) -> None:
    try:
        name = signal.Signals(signum).name
    except ValueError:
        name = str(signum)
    print(f"\n[SIGNAL] Received {name}, cleaning up...")
    raise TerminatedBySignal(signum)


class RestoreOnExit:
    """Context manager that restores captured KSM settings exactly once."""

    def __init__(self, controller: KsmController, settings: KsmSettings) -> None:
        self.controller = controller
        self.settings = settings
        self._restored = False
        self._previous_handlers: Dict[int, Any] = {}

    @property
    def restored(self) -> bool:
        return self._restored

    def restore(self) -> None:
        if self._restored:
            return
        ignored = self._ignore_signals()
        try:
            self.controller.restore(self.settings)
        except Exception:
            # Cleanup must not replace the reason the run is ending.
            logger.exception("Restoring KSM settings failed")
        finally:
            self._restored = True
            self._put_back_handlers(ignored)

    def _ignore_signals(self) -> Dict[int, Any]:
        """Ignore the handled signals so a second Ctrl-C cannot cut a restore short."""

        previous: Dict[int, Any] = {}
        for signum in HANDLED_SIGNALS:
            try:
                previous[signum] = signal.signal(signum, signal.SIG_IGN)
            except (ValueError, OSError) as e:
                logger.debug("Cannot ignore signal %s during restore: %s", signum, e)
        return previous

    def _put_back_handlers(self, handlers: Dict[int, Any]) -> None:
        for signum, previous in handlers.items():
            try:
                signal.signal(signum, previous)
            except (ValueError, OSError, TypeError) as e:
                logger.debug("Cannot reset handler for signal %s: %s", signum, e)

    def _install_signal_handlers(self) -> None:
        for signum in HANDLED_SIGNALS:
            try:
                self._previous_handlers[signum] = signal.signal(signum, _raise_terminated)
            except (ValueError, OSError) as e:
                # ValueError: not on the main thread.
                logger.debug("Cannot install handler for signal %s: %s", signum, e)

    def _reset_signal_handlers(self) -> None:
        self._put_back_handlers(self._previous_handlers)
        self._previous_handlers.clear()

    def __enter__(self) -> "RestoreOnExit":
        atexit.register(self.restore)
        self._install_signal_handlers()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            self.restore()
        finally:
            self._reset_signal_handlers()
            if self._restored:
                atexit.unregister(self.restore)
        return False
