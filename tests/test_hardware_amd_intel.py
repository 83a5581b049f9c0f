"""Tests for AMD and Intel detection via rocm-smi and lspci."""

from __future__ import annotations

import subprocess
from unittest.mock import patch

from hwtune.hardware._amd import FALLBACK_NAME, AMDBackend, controller_description
from hwtune.hardware._intel import IGPU_NAME, IntelBackend
from hwtune.hardware._types import GPUVendor

_LSPCI_AMD = (
    "00:00.0 Host bridge: Advanced Micro Devices, Inc. [AMD] Family 17h Root Complex\n"
    "0a:00.0 VGA compatible controller: Advanced Micro Devices, Inc. [AMD/ATI] "
    "Navi 21 [Radeon RX 6800/6800 XT / 6900 XT] (rev c1)\n"
)
_LSPCI_INTEL = (
    "00:02.0 VGA compatible controller: Intel Corporation Alder Lake-P GT2 [Iris Xe Graphics]\n"
    "00:1f.3 Audio device: Intel Corporation Alder Lake PCH-P High Definition Audio\n"
)
_LSPCI_NONE = "00:00.0 Host bridge: Intel Corporation Device 4621\n"


def _lspci(stdout: str, returncode: int = 0) -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(args=["lspci"], returncode=returncode, stdout=stdout, stderr="")


class TestAMDBackend:
    def test_available_via_rocm_smi(self) -> None:
        backend = AMDBackend(timeout=5)
        with patch("hwtune.hardware._amd.shutil.which", return_value="/opt/rocm/bin/rocm-smi"):
            with patch("hwtune.hardware._base.subprocess.run") as mock_run:
                assert backend.check_availability() is True
                mock_run.assert_not_called()

    def test_rocm_smi_detection_uses_generic_name(self) -> None:
        backend = AMDBackend(timeout=5)
        with patch("hwtune.hardware._amd.shutil.which", return_value="/opt/rocm/bin/rocm-smi"):
            backend.check_availability()
        result = backend.detect()
        assert result is not None
        assert result.vendor == GPUVendor.AMD
        assert result.name == FALLBACK_NAME
        assert result.detection_method == "rocm-smi"

    def test_available_via_pci_scan(self) -> None:
        backend = AMDBackend(timeout=5)
        with patch("hwtune.hardware._amd.shutil.which", return_value=None):
            with patch("hwtune.hardware._base.subprocess.run", return_value=_lspci(_LSPCI_AMD)):
                assert backend.check_availability() is True
        result = backend.detect()
        assert result is not None
        assert result.detection_method == "lspci"
        assert "Navi 21" in result.name

    def test_host_bridge_alone_does_not_count(self) -> None:
        backend = AMDBackend(timeout=5)
        lines = "00:00.0 Host bridge: Advanced Micro Devices, Inc. [AMD] Root Complex\n"
        with patch("hwtune.hardware._amd.shutil.which", return_value=None):
            with patch("hwtune.hardware._base.subprocess.run", return_value=_lspci(lines)):
                assert backend.check_availability() is False

    def test_intel_vga_is_not_amd(self) -> None:
        backend = AMDBackend(timeout=5)
        with patch("hwtune.hardware._amd.shutil.which", return_value=None):
            with patch("hwtune.hardware._base.subprocess.run", return_value=_lspci(_LSPCI_INTEL)):
                assert backend.check_availability() is False

    def test_lspci_missing(self) -> None:
        backend = AMDBackend(timeout=5)
        with patch("hwtune.hardware._amd.shutil.which", return_value=None):
            with patch("hwtune.hardware._base.subprocess.run", side_effect=FileNotFoundError):
                assert backend.check_availability() is False


class TestControllerDescription:
    def test_extracts_text_after_controller(self) -> None:
        line = "00:02.0 VGA compatible controller: Intel Corporation UHD Graphics 630"
        assert controller_description(line) == "Intel Corporation UHD Graphics 630"

    def test_no_controller_marker(self) -> None:
        assert controller_description("garbage") == ""


class TestIntelBackend:
    def test_detects_intel_vga(self) -> None:
        backend = IntelBackend(timeout=5)
        with patch("hwtune.hardware._base.subprocess.run", return_value=_lspci(_LSPCI_INTEL)):
            result = backend.detect()
        assert result is not None
        assert result.vendor == GPUVendor.INTEL
        assert result.name == IGPU_NAME

    def test_no_vga_controller(self) -> None:
        backend = IntelBackend(timeout=5)
        with patch("hwtune.hardware._base.subprocess.run", return_value=_lspci(_LSPCI_NONE)):
            assert backend.detect() is None

    def test_availability_tracks_lspci(self) -> None:
        backend = IntelBackend(timeout=5)
        with patch("hwtune.hardware._intel.shutil.which", return_value=None):
            assert backend.check_availability() is False
        with patch("hwtune.hardware._intel.shutil.which", return_value="/usr/bin/lspci"):
            assert backend.check_availability() is True
