"""Tests for NVIDIA detection (hwtune.hardware._nvidia) and the probe runner."""

from __future__ import annotations

import subprocess
import sys
from unittest.mock import patch

import pytest

from hwtune.errors import ProbeUnavailable
from hwtune.hardware._base import run_probe
from hwtune.hardware._nvidia import FALLBACK_NAME, NvidiaBackend, query_vram_mb
from hwtune.hardware._types import GPUVendor


@pytest.fixture
def backend() -> NvidiaBackend:
    return NvidiaBackend(timeout=5)


def _smi_result(stdout: str, returncode: int = 0) -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(
        args=["nvidia-smi"],
        returncode=returncode,
        stdout=stdout,
        stderr="",
    )


# ---------------------------------------------------------------------------
# run_probe
# ---------------------------------------------------------------------------


class TestRunProbe:
    def test_returns_stdout_on_success(self) -> None:
        with patch("hwtune.hardware._base.subprocess.run", return_value=_smi_result("ok\n")):
            assert run_probe(["nvidia-smi"], timeout=1) == "ok\n"

    def test_passes_timeout(self) -> None:
        with patch("hwtune.hardware._base.subprocess.run", return_value=_smi_result("")) as mock_run:
            run_probe(["lspci"], timeout=2.5)
        assert mock_run.call_args.kwargs["timeout"] == 2.5

    def test_missing_binary(self) -> None:
        with patch("hwtune.hardware._base.subprocess.run", side_effect=FileNotFoundError):
            with pytest.raises(ProbeUnavailable, match="not found"):
                run_probe(["nvidia-smi"], timeout=1)

    def test_timeout_is_unavailable(self) -> None:
        with patch(
            "hwtune.hardware._base.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="nvidia-smi", timeout=1),
        ):
            with pytest.raises(ProbeUnavailable, match="timed out"):
                run_probe(["nvidia-smi"], timeout=1)

    def test_nonzero_exit(self) -> None:
        with patch("hwtune.hardware._base.subprocess.run", return_value=_smi_result("", 9)):
            with pytest.raises(ProbeUnavailable, match="exit code 9"):
                run_probe(["nvidia-smi"], timeout=1)

    def test_permission_error(self) -> None:
        with patch("hwtune.hardware._base.subprocess.run", side_effect=PermissionError("denied")):
            with pytest.raises(ProbeUnavailable):
                run_probe(["nvidia-smi"], timeout=1)

    def test_decodes_with_replacement(self) -> None:
        with patch("hwtune.hardware._base.subprocess.run", return_value=_smi_result("")) as mock_run:
            run_probe(["lspci"], timeout=1)
        assert mock_run.call_args.kwargs["errors"] == "replace"

    def test_non_utf8_output_does_not_raise(self) -> None:
        script = "import sys; sys.stdout.buffer.write(b\"GeForce \\xff GTX\\n\")"
        output = run_probe([sys.executable, "-c", script], timeout=30)
        assert output == "GeForce \ufffd GTX\n"


# ---------------------------------------------------------------------------
# NvidiaBackend
# ---------------------------------------------------------------------------


class TestNvidiaBackend:
    def test_available_when_on_path(self, backend: NvidiaBackend) -> None:
        with patch("hwtune.hardware._nvidia.shutil.which", return_value="/usr/bin/nvidia-smi"):
            assert backend.check_availability() is True

    def test_not_available_when_missing(self, backend: NvidiaBackend) -> None:
        with patch("hwtune.hardware._nvidia.shutil.which", return_value=None):
            assert backend.check_availability() is False

    def test_detects_first_gpu_name(self, backend: NvidiaBackend) -> None:
        out = "NVIDIA GeForce GTX 1660 SUPER\nNVIDIA GeForce RTX 4090\n"
        with patch("hwtune.hardware._base.subprocess.run", return_value=_smi_result(out)):
            result = backend.detect()
        assert result is not None
        assert result.vendor == GPUVendor.NVIDIA
        assert result.name == "NVIDIA GeForce GTX 1660 SUPER"
        assert result.detection_method == "nvidia-smi"

    def test_empty_output_uses_placeholder_name(self, backend: NvidiaBackend) -> None:
        with patch("hwtune.hardware._base.subprocess.run", return_value=_smi_result("\n")):
            result = backend.detect()
        assert result is not None
        assert result.name == FALLBACK_NAME

    def test_failed_query_raises(self, backend: NvidiaBackend) -> None:
        with patch("hwtune.hardware._base.subprocess.run", return_value=_smi_result("", 6)):
            with pytest.raises(ProbeUnavailable):
                backend.detect()

    def test_non_utf8_name(self, backend: NvidiaBackend) -> None:
        script = "import sys; sys.stdout.buffer.write(b\"GeForce \\xff GTX\\n\")"
        with patch("hwtune.hardware._nvidia._NAME_QUERY", [sys.executable, "-c", script]):
            result = backend.detect()
        assert result is not None
        assert result.name == "GeForce \ufffd GTX"


# ---------------------------------------------------------------------------
# query_vram_mb
# ---------------------------------------------------------------------------


class TestQueryVram:
    def test_first_gpu_memory(self) -> None:
        with patch("hwtune.hardware._base.subprocess.run", return_value=_smi_result("6144\n24564\n")):
            assert query_vram_mb(timeout=1) == 6144

    def test_fractional_value_truncated(self) -> None:
        with patch("hwtune.hardware._base.subprocess.run", return_value=_smi_result("8191.6\n")):
            assert query_vram_mb(timeout=1) == 8191

    def test_unparseable_output(self) -> None:
        with patch("hwtune.hardware._base.subprocess.run", return_value=_smi_result("[N/A]\n")):
            with pytest.raises(ProbeUnavailable, match="unparseable"):
                query_vram_mb(timeout=1)

    def test_missing_tool(self) -> None:
        with patch("hwtune.hardware._base.subprocess.run", side_effect=FileNotFoundError):
            with pytest.raises(ProbeUnavailable):
                query_vram_mb(timeout=1)
