"""Tests for the backend registry and the unified HardwareDetector."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from hwtune.errors import ProbeUnavailable
from hwtune.hardware import HardwareDetector, HardwareFacts
from hwtune.hardware._base import GPUBackend, GPUBackendRegistry, default_gpu_registry
from hwtune.hardware._types import Distro, GPUDetection, GPUVendor, Tool


class FakeBackend(GPUBackend):
    def __init__(self, name, available=True, result=None, error=None):
        super().__init__(timeout=1)
        self._name = name
        self._available = available
        self._result = result
        self._error = error
        self.detect_calls = 0

    @property
    def name(self):
        return self._name

    def check_availability(self):
        return self._available

    def detect(self):
        self.detect_calls += 1
        if self._error is not None:
            raise self._error
        return self._result


def _registry(*backends):
    registry = GPUBackendRegistry()
    for backend in backends:
        registry.register(backend)
    return registry


@pytest.fixture
def os_release(tmp_path):
    path = tmp_path / "os-release"
    path.write_text('ID=ubuntu\nPRETTY_NAME="Ubuntu 24.04 LTS"\n')
    return path


# ---------------------------------------------------------------------------
# GPUBackendRegistry
# ---------------------------------------------------------------------------


class TestRegistry:
    def test_first_detection_wins(self):
        nvidia = FakeBackend("nvidia", result=GPUDetection(GPUVendor.NVIDIA, "RTX 4090", "nvidia-smi"))
        amd = FakeBackend("amd", result=GPUDetection(GPUVendor.AMD, "AMD GPU", "lspci"))
        result, diagnostics = _registry(nvidia, amd).detect_best()
        assert result.vendor == GPUVendor.NVIDIA
        assert amd.detect_calls == 0
        assert diagnostics == ["nvidia: detected 'RTX 4090' via nvidia-smi"]

    def test_skips_unavailable_backends(self):
        nvidia = FakeBackend("nvidia", available=False)
        amd = FakeBackend("amd", result=GPUDetection(GPUVendor.AMD, "AMD GPU", "rocm-smi"))
        result, diagnostics = _registry(nvidia, amd).detect_best()
        assert result.vendor == GPUVendor.AMD
        assert nvidia.detect_calls == 0
        assert diagnostics[0] == "nvidia: not available"

    def test_probe_failure_moves_on(self):
        nvidia = FakeBackend("nvidia", error=ProbeUnavailable("nvidia-smi", "timed out after 10s"))
        intel = FakeBackend("intel", result=GPUDetection(GPUVendor.INTEL, "Intel iGPU", "lspci"))
        result, diagnostics = _registry(nvidia, intel).detect_best()
        assert result.vendor == GPUVendor.INTEL
        assert diagnostics[0] == "nvidia: nvidia-smi: timed out after 10s"

    def test_nothing_detected(self):
        result, diagnostics = _registry(
            FakeBackend("nvidia", available=False),
            FakeBackend("intel", result=None),
        ).detect_best()
        assert result is None
        assert diagnostics == ["nvidia: not available", "intel: available but no GPU detected"]

    def test_duplicate_names_ignored(self):
        registry = _registry(FakeBackend("nvidia"), FakeBackend("nvidia"))
        assert len(registry.backends) == 1

    def test_default_priority_order(self):
        names = [b.name for b in default_gpu_registry(timeout=3).backends]
        assert names == ["nvidia", "amd", "intel"]
        assert all(b.timeout == 3 for b in default_gpu_registry(timeout=3).backends)


# ---------------------------------------------------------------------------
# HardwareDetector
# ---------------------------------------------------------------------------


class TestHardwareDetector:
    def test_nvidia_machine(self, os_release):
        registry = _registry(
            FakeBackend("nvidia", result=GPUDetection(GPUVendor.NVIDIA, "GTX 1660 SUPER", "nvidia-smi"))
        )
        tools = frozenset({Tool.FFMPEG, Tool.NVIDIA_SMI, Tool.CPUPOWER, Tool.SYSTEMD})
        with patch("hwtune.hardware._unified.query_vram_mb", return_value=6144), patch(
            "hwtune.hardware._unified.probe_tooling", return_value=tools
        ):
            facts = HardwareDetector(os_release=os_release, registry=registry).detect()

        assert facts == HardwareFacts(
            gpu_vendor=GPUVendor.NVIDIA,
            gpu_name="GTX 1660 SUPER",
            vram_mb=6144,
            distro_id=Distro.UBUNTU,
            tooling_available=tools,
            distro_name="Ubuntu 24.04 LTS",
        )
        assert "vram: 6144 MB" in facts.diagnostics
        assert not any(d.startswith("tooling:") for d in facts.diagnostics)

    def test_no_gpu_no_tools(self, tmp_path):
        registry = _registry(FakeBackend("nvidia", available=False))
        with patch(
            "hwtune.hardware._unified.query_vram_mb",
            side_effect=ProbeUnavailable("nvidia-smi", "not found"),
        ), patch("hwtune.hardware._unified.probe_tooling", return_value=frozenset()):
            facts = HardwareDetector(os_release=tmp_path / "missing", registry=registry).detect()

        assert facts.gpu_vendor == GPUVendor.NONE
        assert facts.gpu_name == ""
        assert facts.vram_mb == 0
        assert facts.distro_id == Distro.ARCH
        assert facts.tooling_available == frozenset()
        assert "vram: unknown (nvidia-smi: not found)" in facts.diagnostics
        assert "tooling: missing cpupower, ffmpeg, nvidia_smi, systemd" in facts.diagnostics

    def test_hung_probe_is_unknown_not_fatal(self, os_release):
        registry = _registry(
            FakeBackend("nvidia", result=GPUDetection(GPUVendor.NVIDIA, "RTX 3060", "nvidia-smi"))
        )
        with patch(
            "hwtune.hardware._unified.query_vram_mb",
            side_effect=ProbeUnavailable("nvidia-smi", "timed out after 10s"),
        ), patch("hwtune.hardware._unified.probe_tooling", return_value=frozenset()):
            facts = HardwareDetector(os_release=os_release, registry=registry).detect()
        assert facts.gpu_vendor == GPUVendor.NVIDIA
        assert facts.vram_mb == 0

    def test_non_utf8_os_release(self, tmp_path):
        os_release = tmp_path / "os-release"
        os_release.write_bytes(b'PRETTY_NAME="Arch \xff Linux"\nID=arch\n')
        with patch(
            "hwtune.hardware._unified.query_vram_mb",
            side_effect=ProbeUnavailable("nvidia-smi", "not found"),
        ), patch("hwtune.hardware._unified.probe_tooling", return_value=frozenset()):
            facts = HardwareDetector(os_release=os_release, registry=_registry()).detect()
        assert facts.distro_id == Distro.ARCH
        assert facts.gpu_vendor == GPUVendor.NONE

    def test_default_registry_built_with_timeout(self):
        detector = HardwareDetector(timeout=4)
        assert [b.timeout for b in detector.registry.backends] == [4, 4, 4]


class TestHardwareFacts:
    def test_defaults(self):
        facts = HardwareFacts()
        assert facts.gpu_vendor == GPUVendor.NONE
        assert facts.vram_mb == 0
        assert facts.distro_id == Distro.OTHER
        assert not facts.has_tool(Tool.FFMPEG)

    def test_negative_vram_rejected(self):
        with pytest.raises(ValueError):
            HardwareFacts(vram_mb=-1)

    def test_diagnostics_ignored_in_equality(self):
        assert HardwareFacts(diagnostics=("a",)) == HardwareFacts(diagnostics=("b",))

    def test_frozen(self):
        facts = HardwareFacts()
        with pytest.raises(AttributeError):
            facts.vram_mb = 10
