"""GPU backend base class, ordered registry, and the bounded probe runner."""

from __future__ import annotations

import abc
import logging
import re
import subprocess

from ..errors import ProbeUnavailable
from ._types import GPUDetection

logger = logging.getLogger(__name__)


def run_probe(args: list[str], timeout: float) -> str:
    """Run an external probe command and return its stdout.

    A missing binary, a timeout, an OS error or a non-zero exit all raise
    :class:`ProbeUnavailable`; a hung probe is treated exactly like an
    absent one.
    """
    probe = args[0]
    try:
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
    except FileNotFoundError:
        raise ProbeUnavailable(probe, "not found") from None
    except subprocess.TimeoutExpired:
        raise ProbeUnavailable(probe, f"timed out after {timeout:g}s") from None
    except OSError as exc:
        raise ProbeUnavailable(probe, str(exc)) from exc
    if result.returncode != 0:
        raise ProbeUnavailable(probe, f"exit code {result.returncode}")
    return result.stdout


def scan_video_controllers(timeout: float) -> list[str]:
    """Return ``lspci`` lines describing VGA controllers."""
    output = run_probe(["lspci"], timeout)
    return [line for line in output.splitlines() if re.search(r"vga", line, re.I)]


class GPUBackend(abc.ABC):
    """Base class for GPU vendor detection backends."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout

    @property
    @abc.abstractmethod
    def name(self) -> str: ...

    @abc.abstractmethod
    def check_availability(self) -> bool: ...

    @abc.abstractmethod
    def detect(self) -> GPUDetection | None: ...


class GPUBackendRegistry:
    """Backends in priority order; the first one that detects a GPU wins."""

    def __init__(self) -> None:
        self._backends: list[GPUBackend] = []

    def register(self, backend: GPUBackend) -> None:
        for existing in self._backends:
            if existing.name == backend.name:
                return
        self._backends.append(backend)

    @property
    def backends(self) -> list[GPUBackend]:
        return list(self._backends)

    def detect_best(self) -> tuple[GPUDetection | None, list[str]]:
        """Try backends in order, return the first result + diagnostics."""
        diagnostics: list[str] = []
        for backend in self._backends:
            try:
                if not backend.check_availability():
                    diagnostics.append(f"{backend.name}: not available")
                    continue
                result = backend.detect()
                if result is not None:
                    diagnostics.append(
                        f"{backend.name}: detected {result.name!r}"
                        f" via {result.detection_method or 'unknown'}"
                    )
                    return result, diagnostics
                diagnostics.append(f"{backend.name}: available but no GPU detected")
            except ProbeUnavailable as exc:
                diagnostics.append(f"{backend.name}: {exc}")
        return None, diagnostics


def default_gpu_registry(timeout: float) -> GPUBackendRegistry:
    """NVIDIA first, then AMD, then Intel."""
    from ._amd import AMDBackend
    from ._intel import IntelBackend
    from ._nvidia import NvidiaBackend

    registry = GPUBackendRegistry()
    registry.register(NvidiaBackend(timeout))
    registry.register(AMDBackend(timeout))
    registry.register(IntelBackend(timeout))
    return registry
