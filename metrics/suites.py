"""metrics.suites

Central registry of benchmark suites.

Why this exists
---------------
The CLI, the orchestrator and the tests all need to agree on the same suite
facts: which suites exist, how the command line selects them, and which probe
scripts each one runs with which environment. This module defines them once.

What belongs here
-----------------
Only pure descriptors. Builders return :class:`BenchmarkInvocation` lists;
they never run anything, write files or read the environment. Probe paths
are relative to the metrics root, which the runner uses as working directory.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Set

from metrics.core import SUITE_DENSITY, SUITE_NETWORK, SUITE_STORAGE, SUITE_TIME
from metrics.errors import UnsuitableImageError
from metrics.execution.model import BenchmarkInvocation


@dataclass(frozen=True)
class SuiteInfo:
    """Static metadata describing one suite."""

    key: str
    label: str
    flag: str
    help: str


# NOTE: insertion order is the order the non-KSM phases run in.
SUITES: Dict[str, SuiteInfo] = {
    SUITE_TIME: SuiteInfo(
        key=SUITE_TIME,
        label="Launch time",
        flag="t",
        help="Run the time tests.",
    ),
    SUITE_DENSITY: SuiteInfo(
        key=SUITE_DENSITY,
        label="Memory density",
        flag="d",
        help="Run the density tests.",
    ),
    SUITE_STORAGE: SuiteInfo(
        key=SUITE_STORAGE,
        label="Storage",
        flag="s",
        help="Run the storage tests.",
    ),
    SUITE_NETWORK: SuiteInfo(
        key=SUITE_NETWORK,
        label="Networking",
        flag="n",
        help="Run the networking tests.",
    ),
}

SUPPORTED_SUITES: Set[str] = set(SUITES.keys())
PHASE_ORDER: List[str] = list(SUITES.keys())
SUITE_FLAGS: Dict[str, str] = {info.flag: key for key, info in SUITES.items()}

# Images without a full `date` (BusyBox applet) break launch_times.sh.
BUSYBOX_BASED_IMAGES = frozenset({"busybox", "alpine"})

DENSITY_SCRIPT = "density/docker_memory_usage.sh"
FOOTPRINT_SCRIPT = "density/footprint_data.sh"
INSIDE_CONTAINER_SCRIPT = "density/memory_usage_inside_container.sh"
LAUNCH_TIMES_SCRIPT = "time/launch_times.sh"
STORAGE_SCRIPT = "storage/fio.sh"
NETWORK_SCRIPT = "network/cpu_statistics_iperf.sh"

DENSITY_CONTAINERS = 20
DENSITY_KSM_TIMEOUT = 300
DENSITY_NO_KSM_TIMEOUT = 5

MEMORY_FOOTPRINT_KSM = "memory-footprint-ksm"
FOOTPRINT_LARGE = "footprint-elasticsearch"


def _bash(script: str, *args: object) -> List[str]:
    return ["bash", script, *(str(a) for a in args)]


def image_base_name(image: str) -> str:
    """Return the bare repository name of an image reference.

    ``docker.io/library/alpine:3.19`` -> ``alpine``
    """

    ref = image.strip().split("@", 1)[0]
    last = ref.rsplit("/", 1)[-1]
    return last.split(":", 1)[0].lower()


def check_time_image(image: str) -> str:
    if not image or not image.strip():
        raise UnsuitableImageError("Launch-time image must not be empty")
    if image_base_name(image) in BUSYBOX_BASED_IMAGES:
        raise UnsuitableImageError(
            f"Image {image!r} is BusyBox based and has no full 'date' command; "
            "launch-time tests need e.g. ubuntu"
        )
    return image


def footprint_profiles(elasticsearch_image: str) -> Dict[str, Dict[str, str]]:
    """Environment overlays for the small/medium/large footprint runs."""

    return {
        "busybox": {
            "PAYLOAD_SLEEP": "1",
            "PAYLOAD": "busybox",
            "PAYLOAD_ARGS": "tail -f /dev/null",
            "PAYLOAD_RUNTIME_ARGS": " -m 2G",
        },
        # mysql and elasticsearch need time to boot and settle before we measure
        "mysql": {
            "PAYLOAD_SLEEP": "10",
            "PAYLOAD": "mysql",
            "PAYLOAD_ARGS": " --innodb_use_native_aio=0 --disable-log-bin",
            "PAYLOAD_RUNTIME_ARGS": " -m 4G -e MYSQL_ALLOW_EMPTY_PASSWORD=1",
        },
        "elasticsearch": {
            "PAYLOAD_SLEEP": "10",
            "PAYLOAD": elasticsearch_image,
            "PAYLOAD_ARGS": " ",
            "PAYLOAD_RUNTIME_ARGS": " -m 8G",
        },
    }


def footprint_invocation(profile: str, env: Dict[str, str]) -> BenchmarkInvocation:
    return BenchmarkInvocation(name=f"footprint-{profile}", cmd=_bash(FOOTPRINT_SCRIPT), env=env)


def density_ksm_invocations(elasticsearch_image: str) -> List[BenchmarkInvocation]:
    """Density tests that KSM affects, in run order.

    Enough containers to see sharing across them, and a timeout long enough
    for KSM to settle. The 'auto' settle mode is implemented by the probe
    itself. The footprint runs share one harness and must stay sequential.
    """

    invocations = [
        BenchmarkInvocation(
            name=MEMORY_FOOTPRINT_KSM,
            cmd=_bash(DENSITY_SCRIPT, DENSITY_CONTAINERS, DENSITY_KSM_TIMEOUT, "auto"),
        )
    ]
    for profile, env in footprint_profiles(elasticsearch_image).items():
        invocations.append(footprint_invocation(profile, env))
    invocations.append(
        BenchmarkInvocation(name="memory-inside-container", cmd=_bash(INSIDE_CONTAINER_SCRIPT))
    )
    return invocations


def density_invocations() -> List[BenchmarkInvocation]:
    # No KSM, so no settle wait: a token timeout is enough.
    return [
        BenchmarkInvocation(
            name="memory-footprint",
            cmd=_bash(DENSITY_SCRIPT, DENSITY_CONTAINERS, DENSITY_NO_KSM_TIMEOUT),
        )
    ]


def time_invocations(image: str = "ubuntu", count: int = 100) -> List[BenchmarkInvocation]:
    check_time_image(image)
    if int(count) < 1:
        raise ValueError(f"launch count must be >= 1, got {count}")
    return [
        BenchmarkInvocation(
            name="launch-times",
            cmd=_bash(LAUNCH_TIMES_SCRIPT, "-i", image, "-n", int(count)),
        )
    ]


def storage_invocations(test_volume_mount: bool = False) -> List[BenchmarkInvocation]:
    env = {"TEST_VOLUME_MOUNT": "1"} if test_volume_mount else {}
    return [BenchmarkInvocation(name="fio", cmd=_bash(STORAGE_SCRIPT), env=env)]


def network_invocations() -> List[BenchmarkInvocation]:
    return [BenchmarkInvocation(name="iperf-cpu-statistics", cmd=_bash(NETWORK_SCRIPT))]
