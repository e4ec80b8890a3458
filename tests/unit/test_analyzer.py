import threading
import time

import pytest

from dockdocs.ADAPTERS.base import ToolAdapter
from dockdocs.ANALYSIS.analyzer import (
    analyze_comparison,
    analyze_image,
    merge_stats,
    validate_image,
)
from dockdocs.MODELS.image_stats import ImageStats, PackageSummary, Vulnerability
from dockdocs.errors import (
    AnalysisCancelledError,
    CommandTimeoutError,
    InvalidImageError,
    OutputParseError,
)


class FakeAdapter(ToolAdapter):
    def __init__(self, name, result=None, error=None, available=True, delay=0.0):
        super().__init__()
        self._name = name
        self.result = result
        self.error = error
        self.available = available
        self.delay = delay
        self.calls = []

    @property
    def name(self):
        return self._name

    def is_available(self):
        return self.available

    def run(self, image, timeout, cancel_event=None):
        self.calls.append((image, timeout))
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        return self.result


def vuln(vid, severity):
    return Vulnerability(id=vid, severity=severity, package="pkg", version="1.0")


def test_timeout_of_one_adapter_keeps_the_others():
    runtime = FakeAdapter("docker", ImageStats(architecture="amd64", os="linux", size_bytes=1024))
    slow = FakeAdapter("dive", error=CommandTimeoutError(["dive", "app:1"], 300))
    syft = FakeAdapter("syft", ImageStats(total_packages=1, packages=[PackageSummary(name="musl", version="1.2")]))

    stats = analyze_image("app:1", [runtime, slow, syft])

    assert stats.image_tag == "app:1"
    assert stats.architecture == "amd64"
    assert stats.size_bytes == 1024
    assert stats.total_packages == 1
    assert stats.efficiency_score == 0.0
    assert len(stats.warnings) == 1
    assert stats.warnings[0].startswith("dive failed: command timed out")


def test_vulnerabilities_sorted_and_summarized():
    grype_a = FakeAdapter("grype-a", ImageStats(
        vulnerabilities=[vuln("CVE-3", "Low"), vuln("CVE-2", "Critical")],
        vuln_summary={"Low": 1, "Critical": 1},
    ))
    grype_b = FakeAdapter("grype-b", ImageStats(
        vulnerabilities=[vuln("CVE-1", "Critical"), vuln("CVE-4", "Medium"), vuln("CVE-5", "Weird")],
        vuln_summary={"Critical": 1, "Medium": 1, "Weird": 1},
    ))

    stats = analyze_image("app:1", [grype_a, grype_b])

    assert [v.id for v in stats.vulnerabilities] == ["CVE-1", "CVE-2", "CVE-4", "CVE-3", "CVE-5"]
    for severity in ("Critical", "Medium", "Low", "Weird"):
        expected = sum(1 for v in stats.vulnerabilities if v.severity == severity)
        assert stats.vuln_count(severity) == expected


def test_packages_are_deduplicated():
    packages = [PackageSummary(name="zlib", version="1.3"), PackageSummary(name="busybox", version="1.36")]
    first = FakeAdapter("one", ImageStats(packages=packages))
    second = FakeAdapter("two", ImageStats(packages=packages + [PackageSummary(name="busybox", version="1.37")]))

    stats = analyze_image("app:1", [first, second])

    keys = [(p.name, p.version) for p in stats.packages]
    assert keys == [("busybox", "1.36"), ("busybox", "1.37"), ("zlib", "1.3")]
    assert len(set(keys)) == len(keys)


def test_unavailable_adapters_are_skipped():
    missing = FakeAdapter("dive", available=False)
    present = FakeAdapter("docker", ImageStats(total_layers=3))

    stats = analyze_image("app:1", [missing, present])

    assert missing.calls == []
    assert stats.total_layers == 3
    assert stats.warnings == []


def test_no_available_adapters_returns_empty_stats():
    stats = analyze_image("app:1", [FakeAdapter("dive", available=False)])
    assert stats.image_tag == "app:1"
    assert stats.warnings == []


def test_adapter_receives_its_timeout():
    adapter = FakeAdapter("syft", ImageStats())
    adapter.timeout = 12.5
    analyze_image("app:1", [adapter])
    assert adapter.calls == [("app:1", 12.5)]


def test_parse_error_becomes_warning():
    broken = FakeAdapter("grype", error=OutputParseError("grype", "expected a JSON object"))
    stats = analyze_image("app:1", [broken])
    assert stats.warnings == ["grype failed: failed to parse grype output: expected a JSON object"]


def test_cancelled_before_start():
    event = threading.Event()
    event.set()
    adapter = FakeAdapter("docker", ImageStats())
    with pytest.raises(AnalysisCancelledError):
        analyze_image("app:1", [adapter], cancel_event=event)
    assert adapter.calls == []


@pytest.mark.parametrize("image", ["", "   ", "UPPER/case:1", "app:bad tag", "app@sha256:xyz"])
def test_invalid_image_is_rejected(image):
    adapter = FakeAdapter("docker", ImageStats())
    with pytest.raises(InvalidImageError):
        analyze_image(image, [adapter])
    assert adapter.calls == []


def test_validate_image_accepts_common_references():
    assert validate_image("nginx").full_name == "docker.io/library/nginx:latest"
    assert validate_image("ghcr.io/org/app:1.2").registry == "ghcr.io"


def test_merge_stats_rules():
    dest = ImageStats(architecture="amd64", supported_architectures=["linux/arm64"],
                      vuln_summary={"High": 1})
    src = ImageStats(architecture="", os="linux", supported_architectures=["linux/amd64", "linux/arm64"],
                     vuln_summary={"High": 2, "Low": 1}, warnings=["x"])

    merge_stats(dest, src)

    assert dest.architecture == "amd64"
    assert dest.os == "linux"
    assert dest.supported_architectures == ["linux/amd64", "linux/arm64"]
    assert dest.vuln_summary == {"High": 3, "Low": 1}
    assert dest.warnings == ["x"]
    assert merge_stats(dest, None) is dest


def test_comparison_keeps_input_order():
    def factory():
        return [FakeAdapter("docker", ImageStats(total_layers=2), delay=0.01)]

    results = analyze_comparison(["alpine:3.19", "debian:12", "ubuntu:24.04"], adapter_factory=factory)

    assert [r.image_tag for r in results] == ["alpine:3.19", "debian:12", "ubuntu:24.04"]
    assert all(r.total_layers == 2 for r in results)


def test_comparison_invalid_image_becomes_warning():
    results = analyze_comparison(["alpine:3.19", "Not Valid"],
                                 adapter_factory=lambda: [FakeAdapter("docker", ImageStats())])
    assert results[0].warnings == []
    assert results[1].image_tag == "Not Valid"
    assert len(results[1].warnings) == 1


def test_comparison_of_nothing():
    assert analyze_comparison([]) == []
