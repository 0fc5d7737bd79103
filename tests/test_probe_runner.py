import sys
import tempfile
import unittest
from pathlib import Path

from metrics.execution.model import BenchmarkInvocation
from metrics.execution.runner import EXIT_NOT_RUNNABLE, failed_result, make_runner, run_invocation


def py(code: str) -> list:
    return [sys.executable, "-c", code]


class TestProbeRunner(unittest.TestCase):
    def test_exit_code_is_captured_not_raised(self) -> None:
        inv = BenchmarkInvocation(name="fails", cmd=py("import sys; sys.exit(3)"))
        result = run_invocation(inv, quiet=True)
        self.assertEqual(3, result.exit_code)
        self.assertFalse(result.ok)
        self.assertIsNone(result.error)

    def test_missing_executable_is_a_probe_failure(self) -> None:
        inv = BenchmarkInvocation(name="missing", cmd=["/nonexistent/probe.sh"])
        result = run_invocation(inv, quiet=True)
        self.assertEqual(EXIT_NOT_RUNNABLE, result.exit_code)
        self.assertFalse(result.ok)
        self.assertTrue(result.error)

    def test_overlay_applies_to_one_invocation_only(self) -> None:
        check = "import os, sys; sys.exit(0 if os.environ.get('PAYLOAD') == {!r} else 4)"
        base = {"PATH": "/usr/bin:/bin"}
        first = BenchmarkInvocation(name="a", cmd=py(check.format("mysql")), env={"PAYLOAD": "mysql"})
        second = BenchmarkInvocation(name="b", cmd=py(check.format(None)))

        self.assertTrue(run_invocation(first, quiet=True, base_env=base).ok)
        self.assertTrue(run_invocation(second, quiet=True, base_env=base).ok)
        self.assertNotIn("PAYLOAD", base)

    def test_cwd_is_metrics_root(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            (root / "marker").write_text("x", encoding="utf-8")
            run = make_runner(cwd=root, dry_run=False, quiet=True)
            inv = BenchmarkInvocation(
                name="cwd", cmd=py("import os, sys; sys.exit(0 if os.path.exists('marker') else 5)")
            )
            self.assertTrue(run(inv).ok)

    def test_dry_run_does_not_execute(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            sentinel = Path(td) / "ran"
            inv = BenchmarkInvocation(name="dry", cmd=py(f"open({str(sentinel)!r}, 'w').close()"))
            result = run_invocation(inv, dry_run=True)
            self.assertTrue(result.ok)
            self.assertFalse(sentinel.exists())

    def test_failed_result_for_never_started_probe(self) -> None:
        inv = BenchmarkInvocation(name="skipped", cmd=["bash", "x.sh"])
        result = failed_result(inv, "manifest missing")
        self.assertFalse(result.ok)
        self.assertEqual("manifest missing", result.error)
        self.assertEqual("skipped", result.name)


if __name__ == "__main__":
    unittest.main()
