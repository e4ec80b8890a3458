import json
import os
from datetime import datetime, timezone

import pytest

from dockdocs.ADAPTERS import dive as dive_module
from dockdocs.ADAPTERS import runtime as runtime_module
from dockdocs.ADAPTERS.defaults import default_adapters
from dockdocs.ADAPTERS.dive import DiveAdapter, detect_podman_socket, parse_dive_output
from dockdocs.ADAPTERS.grype import parse_grype_output, parse_timestamp
from dockdocs.ADAPTERS.manifest import parse_manifest_inspect
from dockdocs.ADAPTERS.runtime import RuntimeAdapter, parse_runtime_inspect
from dockdocs.ADAPTERS.syft import SyftAdapter, parse_syft_output
from dockdocs.MODELS.docs_config import TimeoutConfig
from dockdocs.errors import CommandFailedError, OutputParseError, ToolNotFoundError


def as_bytes(data):
    return json.dumps(data).encode()


def test_parse_runtime_inspect():
    output = as_bytes([{
        "Architecture": "arm64",
        "Os": "linux",
        "Size": 7340032,
        "RootFS": {"Type": "layers", "Layers": ["sha256:a", "sha256:b"]},
    }])
    stats = parse_runtime_inspect(output, "alpine:3.19")
    assert stats.image_tag == "alpine:3.19"
    assert (stats.architecture, stats.os, stats.size_bytes, stats.total_layers) == ("arm64", "linux", 7340032, 2)
    assert stats.size_mb == "7.00 MB"


def test_parse_runtime_inspect_empty_list():
    with pytest.raises(OutputParseError):
        parse_runtime_inspect(b"[]", "alpine:3.19")


@pytest.mark.parametrize("output", [b"", b"not json", b'{"Architecture": "amd64"}', b'[{"Size": "big"}]'])
def test_parse_runtime_inspect_malformed(output):
    with pytest.raises(OutputParseError):
        parse_runtime_inspect(output, "alpine:3.19")


def test_parse_manifest_list():
    output = as_bytes({"manifests": [
        {"platform": {"os": "linux", "architecture": "arm64"}},
        {"platform": {"os": "linux", "architecture": "amd64"}},
        {"platform": {"os": "unknown", "architecture": "unknown"}},
        {"platform": {"os": "linux", "architecture": "amd64"}},
        {},
    ]})
    stats = parse_manifest_inspect(output, "alpine:3.19")
    assert stats.supported_architectures == ["linux/amd64", "linux/arm64"]


def test_parse_single_manifest():
    output = as_bytes({"schemaVersion": 2, "config": {"digest": "sha256:abc"}})
    assert parse_manifest_inspect(output, "app:1").supported_architectures == []


def test_parse_manifest_rejects_non_object():
    with pytest.raises(OutputParseError):
        parse_manifest_inspect(b"[]", "app:1")


def test_parse_syft_output():
    output = as_bytes({
        "distro": {"name": "alpine", "version": "3.19.1"},
        "artifacts": [
            {"name": "musl", "version": "1.2.4", "type": "apk"},
            {"name": "busybox", "version": "1.36.1", "type": "apk"},
            {"name": "musl", "version": "1.2.4", "type": "apk"},
        ],
    })
    stats = parse_syft_output(output)
    assert stats.os_distro == "alpine 3.19.1"
    assert [(p.name, p.version) for p in stats.packages] == [("busybox", "1.36.1"), ("musl", "1.2.4")]
    assert stats.total_packages == 2


def test_parse_syft_without_distro_or_artifacts():
    stats = parse_syft_output(as_bytes({"distro": None, "artifacts": None}))
    assert stats.os_distro == ""
    assert stats.packages == []


def test_parse_grype_output():
    output = as_bytes({
        "descriptor": {"timestamp": "2024-03-01T12:30:45.123456789Z"},
        "matches": [
            {"vulnerability": {"id": "CVE-2024-0002", "severity": "Low"},
             "artifact": {"name": "openssl", "version": "3.1"}},
            {"vulnerability": {"id": "CVE-2024-0001", "severity": "Critical"},
             "artifact": {"name": "zlib", "version": "1.2"}},
            {"vulnerability": {"id": "CVE-2024-0003", "severity": "Critical"},
             "artifact": {"name": "zlib", "version": "1.2"}},
        ],
    })
    stats = parse_grype_output(output)
    assert [v.id for v in stats.vulnerabilities] == ["CVE-2024-0001", "CVE-2024-0003", "CVE-2024-0002"]
    assert stats.vuln_summary == {"Low": 1, "Critical": 2}
    assert stats.scan_timestamp == datetime(2024, 3, 1, 12, 30, 45, 123456, tzinfo=timezone.utc)


def test_parse_grype_no_matches():
    stats = parse_grype_output(as_bytes({"matches": None}))
    assert stats.vulnerabilities == []
    assert stats.vuln_summary == {}
    assert stats.scan_timestamp is not None


def test_parse_grype_missing_vulnerability_id():
    with pytest.raises(OutputParseError):
        parse_grype_output(as_bytes({"matches": [{"vulnerability": {"severity": "High"}}]}))


def test_parse_timestamp_fallback():
    before = datetime.now(timezone.utc)
    assert parse_timestamp("yesterday") >= before
    assert parse_timestamp("2024-01-02T03:04:05+00:00").year == 2024


def test_parse_dive_output():
    stats = parse_dive_output(as_bytes({"image": {"efficiencyScore": 0.9543, "inefficientBytes": 2097152}}))
    assert stats.efficiency_score == pytest.approx(95.43)
    assert stats.wasted_mb == "2.00 MB"


def test_parse_dive_output_out_of_range():
    with pytest.raises(OutputParseError):
        parse_dive_output(as_bytes({"image": {"efficiencyScore": 3.5}}))


def test_dive_report_file_is_removed(monkeypatch):
    seen = {}

    def fake_run(command, timeout, cancel_event=None, env=None, combine_output=False):
        path = command[3]
        seen["path"] = path
        with open(path, "w") as f:
            json.dump({"image": {"efficiencyScore": 0.5, "inefficientBytes": 10}}, f)
        return b"Analyzing image..."

    monkeypatch.setattr(dive_module, "run_command", fake_run)
    monkeypatch.setattr(dive_module, "dive_environment", lambda: None)

    adapter = DiveAdapter()
    adapter.binary = "dive"
    stats = adapter.run("app:1", 60)

    assert stats.efficiency_score == 50.0
    assert not os.path.exists(seen["path"])


def test_dive_report_file_is_removed_on_failure(monkeypatch):
    seen = {}

    def fake_run(command, timeout, cancel_event=None, env=None, combine_output=False):
        seen["path"] = command[3]
        raise CommandFailedError(command, 1, "no such image")

    monkeypatch.setattr(dive_module, "run_command", fake_run)
    monkeypatch.setattr(dive_module, "dive_environment", lambda: None)

    adapter = DiveAdapter()
    adapter.binary = "dive"
    with pytest.raises(CommandFailedError):
        adapter.run("app:1", 60)
    assert not os.path.exists(seen["path"])


def test_detect_podman_socket(monkeypatch):
    machines = [{"ConnectionInfo": {"PodmanSocket": {"Path": "/run/podman/podman.sock"}}}]
    monkeypatch.setattr(dive_module, "run_command", lambda command, timeout: as_bytes(machines))
    assert detect_podman_socket() == "unix:///run/podman/podman.sock"


def test_detect_podman_socket_without_machine(monkeypatch):
    monkeypatch.setattr(dive_module, "run_command", lambda command, timeout: b"[]")
    assert detect_podman_socket() == ""


def test_runtime_adapter_invokes_inspect(monkeypatch):
    calls = []

    def fake_run(command, timeout, cancel_event=None):
        calls.append((command, timeout))
        return as_bytes([{"Architecture": "amd64", "Os": "linux", "Size": 1, "RootFS": {"Layers": []}}])

    monkeypatch.setattr(runtime_module, "run_command", fake_run)
    adapter = RuntimeAdapter()
    adapter.binary = "podman"

    stats = adapter.run("app:1", 30)

    assert calls == [(["podman", "inspect", "app:1"], 30)]
    assert adapter.name == "podman"
    assert stats.architecture == "amd64"


def test_missing_binary_raises(monkeypatch, tmp_path):
    monkeypatch.setenv("PATH", str(tmp_path))
    monkeypatch.setenv("DOCK_DOCS_INSTALL_DIR", str(tmp_path))
    adapter = SyftAdapter()
    assert not adapter.is_available()
    with pytest.raises(ToolNotFoundError):
        adapter.run("app:1", 10)


def test_default_adapters_timeouts():
    adapters = default_adapters(TimeoutConfig(inspect=5, scan=50))
    assert [a.timeout for a in adapters] == [5, 5, 50, 50, 50]
    assert [a.timeout for a in default_adapters()] == [30.0, 30.0, 300.0, 300.0, 300.0]
