import unittest

from metrics.errors import ConfigError, UnsuitableImageError
from metrics.execution.model import BenchmarkInvocation
from metrics.suites import (
    PHASE_ORDER,
    SUITE_FLAGS,
    SUITES,
    SUPPORTED_SUITES,
    check_time_image,
    density_invocations,
    density_ksm_invocations,
    image_base_name,
    network_invocations,
    storage_invocations,
    time_invocations,
)


PAYLOAD_KEYS = {"PAYLOAD_SLEEP", "PAYLOAD", "PAYLOAD_ARGS", "PAYLOAD_RUNTIME_ARGS"}


class TestSuiteRegistry(unittest.TestCase):
    def test_registry_keys_are_consistent(self) -> None:
        self.assertEqual(set(SUITES.keys()), SUPPORTED_SUITES)
        self.assertEqual(set(SUITE_FLAGS.values()), SUPPORTED_SUITES)
        self.assertEqual({"d", "n", "s", "t"}, set(SUITE_FLAGS.keys()))

    def test_phase_order_is_time_density_storage_network(self) -> None:
        self.assertEqual(["time", "density", "storage", "network"], PHASE_ORDER)

    def test_density_ksm_sequence(self) -> None:
        invs = density_ksm_invocations("elasticsearch:6.4.0")
        self.assertEqual(
            [
                "memory-footprint-ksm",
                "footprint-busybox",
                "footprint-mysql",
                "footprint-elasticsearch",
                "memory-inside-container",
            ],
            [i.name for i in invs],
        )
        self.assertEqual(
            ["bash", "density/docker_memory_usage.sh", "20", "300", "auto"],
            list(invs[0].cmd),
        )
        self.assertEqual(["bash", "density/memory_usage_inside_container.sh"], list(invs[-1].cmd))

    def test_footprint_overlays_are_complete_and_distinct(self) -> None:
        footprints = [i for i in density_ksm_invocations("elasticsearch:6.4.0") if i.name.startswith("footprint-")]
        self.assertEqual(3, len(footprints))
        for inv in footprints:
            # every overlay sets every knob; nothing is inherited from the previous run
            self.assertEqual(PAYLOAD_KEYS, set(inv.env.keys()), inv.name)
            self.assertEqual(["bash", "density/footprint_data.sh"], list(inv.cmd))

        by_name = {i.name: i.env for i in footprints}
        self.assertEqual("busybox", by_name["footprint-busybox"]["PAYLOAD"])
        self.assertEqual("tail -f /dev/null", by_name["footprint-busybox"]["PAYLOAD_ARGS"])
        self.assertEqual("1", by_name["footprint-busybox"]["PAYLOAD_SLEEP"])
        self.assertEqual("mysql", by_name["footprint-mysql"]["PAYLOAD"])
        self.assertIn("MYSQL_ALLOW_EMPTY_PASSWORD=1", by_name["footprint-mysql"]["PAYLOAD_RUNTIME_ARGS"])
        self.assertEqual("elasticsearch:6.4.0", by_name["footprint-elasticsearch"]["PAYLOAD"])
        self.assertEqual(" -m 8G", by_name["footprint-elasticsearch"]["PAYLOAD_RUNTIME_ARGS"])

    def test_density_without_ksm_uses_short_timeout(self) -> None:
        (inv,) = density_invocations()
        self.assertEqual(["bash", "density/docker_memory_usage.sh", "20", "5"], list(inv.cmd))

    def test_time_suite_defaults(self) -> None:
        (inv,) = time_invocations()
        self.assertEqual(["bash", "time/launch_times.sh", "-i", "ubuntu", "-n", "100"], list(inv.cmd))

    def test_busybox_based_images_are_rejected_for_time(self) -> None:
        for image in ["busybox", "alpine:3.19", "docker.io/library/alpine", "busybox@sha256:abc"]:
            with self.subTest(image=image):
                with self.assertRaises(UnsuitableImageError):
                    time_invocations(image)
        self.assertTrue(issubclass(UnsuitableImageError, ConfigError))
        self.assertEqual("fedora:39", check_time_image("fedora:39"))

    def test_image_base_name(self) -> None:
        self.assertEqual("alpine", image_base_name("docker.io/library/alpine:3.19"))
        self.assertEqual("ubuntu", image_base_name("ubuntu"))
        self.assertEqual("registry", image_base_name("localhost:5000/registry:2"))

    def test_storage_volume_mount_toggle(self) -> None:
        (plain,) = storage_invocations()
        (mounted,) = storage_invocations(test_volume_mount=True)
        self.assertEqual({}, dict(plain.env))
        self.assertEqual({"TEST_VOLUME_MOUNT": "1"}, dict(mounted.env))
        self.assertEqual(["bash", "storage/fio.sh"], list(plain.cmd))

    def test_network_suite(self) -> None:
        (inv,) = network_invocations()
        self.assertEqual(["bash", "network/cpu_statistics_iperf.sh"], list(inv.cmd))

    def test_environment_overlay_does_not_touch_base(self) -> None:
        base = {"PATH": "/usr/bin", "PAYLOAD": "stale"}
        inv = BenchmarkInvocation(name="x", cmd=["true"], env={"PAYLOAD": "mysql"})
        env = inv.environment(base)
        self.assertEqual("mysql", env["PAYLOAD"])
        self.assertEqual("/usr/bin", env["PATH"])
        self.assertEqual("stale", base["PAYLOAD"])


if __name__ == "__main__":
    unittest.main()
