"""Shared dataclasses and enums for hardware detection."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class GPUVendor(str, Enum):
    NVIDIA = "nvidia"
    AMD = "amd"
    INTEL = "intel"
    NONE = "none"


class Distro(str, Enum):
    ARCH = "arch"
    UBUNTU = "ubuntu"
    DEBIAN = "debian"
    FEDORA = "fedora"
    OTHER = "other"


class Tool(str, Enum):
    FFMPEG = "ffmpeg"
    CPUPOWER = "cpupower"
    NVIDIA_SMI = "nvidia_smi"
    SYSTEMD = "systemd"


@dataclass(frozen=True)
class GPUDetection:
    vendor: GPUVendor
    name: str
    detection_method: str | None = None


@dataclass(frozen=True)
class HardwareFacts:
    """Everything the profile selector is allowed to look at.

    Built once per run by :class:`HardwareDetector`. ``diagnostics`` is a
    record of what each probe saw and does not take part in equality.
    """

    gpu_vendor: GPUVendor = GPUVendor.NONE
    gpu_name: str = ""
    vram_mb: int = 0  # 0 = unknown
    distro_id: Distro = Distro.OTHER
    tooling_available: frozenset[Tool] = frozenset()
    distro_name: str = ""
    diagnostics: tuple[str, ...] = field(default=(), compare=False)

    def __post_init__(self) -> None:
        if self.vram_mb < 0:
            raise ValueError(f"vram_mb must be >= 0, got {self.vram_mb}")

    def has_tool(self, tool: Tool) -> bool:
        return tool in self.tooling_available
