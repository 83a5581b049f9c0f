"""Unified hardware detector: one sequential pass over every probe."""

from __future__ import annotations

import logging
from pathlib import Path

from ..config import DEFAULT_OS_RELEASE, DEFAULT_PROBE_TIMEOUT
from ..errors import ProbeUnavailable
from ._base import GPUBackendRegistry, default_gpu_registry
from ._nvidia import query_vram_mb
from ._system import detect_distro, probe_tooling
from ._types import GPUVendor, HardwareFacts, Tool

logger = logging.getLogger(__name__)


class HardwareDetector:
    """Builds a :class:`HardwareFacts` without ever raising.

    Each probe is independent: a missing tool or a timeout leaves the
    matching fact at its default and adds a diagnostic line.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
        os_release: Path = Path(DEFAULT_OS_RELEASE),
        registry: GPUBackendRegistry | None = None,
    ) -> None:
        self.timeout = timeout
        self.os_release = os_release
        self.registry = registry or default_gpu_registry(timeout)

    def detect(self) -> HardwareFacts:
        diagnostics: list[str] = []

        gpu, gpu_diagnostics = self.registry.detect_best()
        diagnostics.extend(gpu_diagnostics)
        if gpu is None:
            logger.warning("No dedicated GPU detected, using CPU mode")

        vram_mb = 0
        try:
            vram_mb = query_vram_mb(self.timeout)
            diagnostics.append(f"vram: {vram_mb} MB")
        except ProbeUnavailable as exc:
            diagnostics.append(f"vram: unknown ({exc})")
            if gpu is not None and gpu.vendor == GPUVendor.NVIDIA:
                logger.warning("Cannot read VRAM size, no launch flags will be assumed")
            else:
                logger.debug("vram: %s", exc)

        distro, distro_name, distro_diagnostics = detect_distro(self.os_release)
        diagnostics.extend(distro_diagnostics)

        tooling = probe_tooling()
        missing = sorted(t.value for t in Tool if t not in tooling)
        if missing:
            diagnostics.append(f"tooling: missing {', '.join(missing)}")

        return HardwareFacts(
            gpu_vendor=gpu.vendor if gpu else GPUVendor.NONE,
            gpu_name=gpu.name if gpu else "",
            vram_mb=vram_mb,
            distro_id=distro,
            tooling_available=tooling,
            distro_name=distro_name,
            diagnostics=tuple(diagnostics),
        )


def detect_hardware(
    timeout: float = DEFAULT_PROBE_TIMEOUT,
    os_release: Path = Path(DEFAULT_OS_RELEASE),
) -> HardwareFacts:
    """One-liner API: detect all hardware facts."""
    return HardwareDetector(timeout=timeout, os_release=os_release).detect()

