"""Configuration profile selection from detected hardware.

Maps :class:`~hwtune.hardware.HardwareFacts` to precision, tile size,
device mode and WebUI launch flags through ordered rule tables, and a
power mode to a CPU governor. Pure computation: no subprocess calls, no
file I/O, no module state consulted beyond the constant tables below.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable

from hwtune.hardware import GPUVendor, HardwareFacts

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Enums & result dataclasses
# ---------------------------------------------------------------------------


class Precision(str, Enum):
    FP16 = "fp16"
    FP32 = "fp32"


class DeviceMode(str, Enum):
    CUDA = "cuda"
    ROCM = "rocm"
    CPU = "cpu"


class Governor(str, Enum):
    PERFORMANCE = "performance"
    SCHEDUTIL = "schedutil"
    ONDEMAND = "ondemand"
    POWERSAVE = "powersave"


class PowerMode(str, Enum):
    PERFORMANCE = "performance"
    BALANCED = "balanced"
    POWERSAVE = "powersave"


class VramTier(str, Enum):
    UNKNOWN = "unknown"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class PrecisionRule:
    name: str
    matches: Callable[[HardwareFacts], bool]
    precision: Precision
    device_mode: DeviceMode


@dataclass(frozen=True)
class Profile:
    precision: Precision
    tile_size: int
    device_mode: DeviceMode
    launch_args: tuple[str, ...] = ()
    governor: Governor | None = None  # None = no power mode chosen
    rule: str = ""

    @property
    def use_half_precision(self) -> bool:
        return self.precision == Precision.FP16

    @property
    def gpu_type(self) -> str:
        """Vendor-mode string the generated WebUI switches on."""
        return _GPU_TYPES[self.device_mode]

    @property
    def torch_index_url(self) -> str:
        return _TORCH_INDEX_URLS[self.device_mode]

    @property
    def vram_tier(self) -> VramTier:
        for tier, flags in _LAUNCH_ARGS.items():
            if flags == self.launch_args:
                return tier
        return VramTier.UNKNOWN


# ---------------------------------------------------------------------------
# Reference tables
# ---------------------------------------------------------------------------

# GPUs that produce NaN / black output under fp16 in the upscaler.
# Any "16xx" model is included, not just the ones listed.
FP16_UNSTABLE_SUBSTRINGS: tuple[str, ...] = ("1660", "1650", "1060", "1050", "1630")
_FP16_UNSTABLE_PATTERN = re.compile(
    "|".join(re.escape(s) for s in FP16_UNSTABLE_SUBSTRINGS) + r"|16\d\d"
)

CUDA_TILE_SIZE = 200
DEFAULT_TILE_SIZE = 100

LOW_VRAM_LIMIT_MB = 4096
HIGH_VRAM_LIMIT_MB = 8192

_LAUNCH_ARGS: dict[VramTier, tuple[str, ...]] = {
    VramTier.UNKNOWN: (),
    VramTier.LOW: ("--lowvram", "--opt-split-attention"),
    VramTier.MEDIUM: ("--medvram", "--opt-split-attention"),
    VramTier.HIGH: ("--xformers",),
}

_GPU_TYPES: dict[DeviceMode, str] = {
    DeviceMode.CUDA: "nvidia",
    DeviceMode.ROCM: "amd",
    DeviceMode.CPU: "cpu",
}

_TORCH_INDEX_URLS: dict[DeviceMode, str] = {
    DeviceMode.CUDA: "https://download.pytorch.org/whl/cu121",
    DeviceMode.ROCM: "https://download.pytorch.org/whl/rocm6.2",
    DeviceMode.CPU: "https://download.pytorch.org/whl/cpu",
}


def is_fp16_unstable(gpu_name: str) -> bool:
    return bool(_FP16_UNSTABLE_PATTERN.search(gpu_name))


# Evaluated top-down, first match wins. The fp16-unstable override must
# stay ahead of the plain NVIDIA rule.
PRECISION_RULES: tuple[PrecisionRule, ...] = (
    PrecisionRule(
        name="nvidia-fp16-unstable",
        matches=lambda f: f.gpu_vendor == GPUVendor.NVIDIA and is_fp16_unstable(f.gpu_name),
        precision=Precision.FP32,
        device_mode=DeviceMode.CUDA,
    ),
    PrecisionRule(
        name="nvidia",
        matches=lambda f: f.gpu_vendor == GPUVendor.NVIDIA,
        precision=Precision.FP16,
        device_mode=DeviceMode.CUDA,
    ),
    PrecisionRule(
        name="amd",
        matches=lambda f: f.gpu_vendor == GPUVendor.AMD,
        precision=Precision.FP32,
        device_mode=DeviceMode.ROCM,
    ),
    PrecisionRule(
        name="cpu",
        matches=lambda f: f.gpu_vendor in (GPUVendor.INTEL, GPUVendor.NONE),
        precision=Precision.FP32,
        device_mode=DeviceMode.CPU,
    ),
)


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


def match_precision_rule(
    facts: HardwareFacts,
    rules: Iterable[PrecisionRule] = PRECISION_RULES,
) -> PrecisionRule:
    for rule in rules:
        if rule.matches(facts):
            return rule
    # Unreachable with the default table: the last rule covers every
    # vendor the first three do not.
    raise AssertionError(f"no precision rule matched vendor {facts.gpu_vendor!r}")


def tile_size_for(device_mode: DeviceMode) -> int:
    return CUDA_TILE_SIZE if device_mode == DeviceMode.CUDA else DEFAULT_TILE_SIZE


def classify_vram(vram_mb: int) -> VramTier:
    if vram_mb <= 0:
        return VramTier.UNKNOWN
    if vram_mb < LOW_VRAM_LIMIT_MB:
        return VramTier.LOW
    if vram_mb < HIGH_VRAM_LIMIT_MB:
        return VramTier.MEDIUM
    return VramTier.HIGH


def launch_args_for(vram_mb: int) -> tuple[str, ...]:
    return _LAUNCH_ARGS[classify_vram(vram_mb)]


def select_governor(mode: PowerMode, available_governors: Iterable[str] = ()) -> Governor:
    """Governor for a power mode.

    Balanced prefers schedutil and falls back to ondemand when the kernel
    does not offer it.
    """
    if mode == PowerMode.PERFORMANCE:
        return Governor.PERFORMANCE
    if mode == PowerMode.POWERSAVE:
        return Governor.POWERSAVE
    if Governor.SCHEDUTIL.value in set(available_governors):
        return Governor.SCHEDUTIL
    return Governor.ONDEMAND


def select_profile(
    facts: HardwareFacts,
    power_mode: PowerMode | None = None,
    available_governors: Iterable[str] = (),
) -> Profile:
    """Derive the configuration profile for ``facts``.

    The governor comes from ``power_mode`` alone; GPU facts never
    influence it. Without a power mode the profile carries no governor.
    """
    rule = match_precision_rule(facts)
    governor = (
        select_governor(power_mode, available_governors) if power_mode is not None else None
    )
    profile = Profile(
        precision=rule.precision,
        tile_size=tile_size_for(rule.device_mode),
        device_mode=rule.device_mode,
        launch_args=launch_args_for(facts.vram_mb),
        governor=governor,
        rule=rule.name,
    )
    logger.debug("profile: rule=%s -> %s", rule.name, profile)
    return profile
