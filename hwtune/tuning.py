"""Power-mode tuning: CPU governor, cpufreq bounds, VM sysctls, NVIDIA PowerMizer.

:func:`build_plan` is pure; :func:`apply_plan` performs the writes and
commands. A knob that cannot be written is logged and skipped, the rest
of the plan still runs.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable

from hwtune.config import DEFAULT_PROBE_TIMEOUT
from hwtune.errors import NotRootError
from hwtune.hardware._cpu import cpufreq_dirs
from hwtune.profiles import Governor, PowerMode, select_governor
from hwtune.render import render_files, update_governor_line
from hwtune.templates import get_template

logger = logging.getLogger(__name__)

# powersave caps scaling_max_freq this far above the hardware minimum (kHz)
POWERSAVE_HEADROOM_KHZ = 500_000

CPUPOWER_SERVICE = "cpupower.service"


class FreqPolicy(str, Enum):
    KEEP = "keep"
    PIN_MAX = "pin_max"  # min and max both at cpuinfo_max_freq
    CAP_LOW = "cap_low"  # max at cpuinfo_min_freq + headroom


@dataclass(frozen=True)
class KnobWrite:
    path: str  # relative to the sysfs root
    value: str
    optional: bool = False  # skip silently when the knob does not exist


@dataclass(frozen=True)
class TuningPlan:
    mode: PowerMode
    governor: Governor
    freq_policy: FreqPolicy = FreqPolicy.KEEP
    knobs: tuple[KnobWrite, ...] = ()
    nvidia_attributes: tuple[str, ...] = ()


@dataclass
class ApplyResult:
    action: str
    ok: bool = True
    detail: str = ""


@dataclass
class ApplyReport:
    plan: TuningPlan
    dry_run: bool = False
    results: list[ApplyResult] = field(default_factory=list)

    @property
    def failures(self) -> list[ApplyResult]:
        return [r for r in self.results if not r.ok]


# ---------------------------------------------------------------------------
# Reference tables
# ---------------------------------------------------------------------------

_PERFORMANCE_KNOBS: tuple[KnobWrite, ...] = (
    KnobWrite("proc/sys/vm/dirty_ratio", "10"),
    KnobWrite("proc/sys/vm/dirty_background_ratio", "5"),
    KnobWrite("proc/sys/vm/swappiness", "10"),
    KnobWrite("proc/sys/fs/file-max", "1000000"),
    KnobWrite("proc/sys/net/core/rmem_max", "16777216", optional=True),
    KnobWrite("proc/sys/net/core/wmem_max", "16777216", optional=True),
    KnobWrite("sys/devices/system/cpu/cpu0/power/energy_perf_bias", "performance", optional=True),
)

# Kernel defaults
_BALANCED_KNOBS: tuple[KnobWrite, ...] = (
    KnobWrite("proc/sys/vm/dirty_ratio", "20"),
    KnobWrite("proc/sys/vm/dirty_background_ratio", "10"),
    KnobWrite("proc/sys/vm/swappiness", "60"),
)

# PowerMizer: 0 adaptive, 1 prefer maximum performance, 2 auto/power saving
_NVIDIA_ATTRIBUTES: dict[PowerMode, tuple[str, ...]] = {
    PowerMode.PERFORMANCE: (
        "[gpu:0]/GpuPowerMizerMode=1",
        "[gpu:0]/GPUTextureFilteringMode=1",
        "[gpu:0]/OpenGLImageSettings=3",
    ),
    PowerMode.BALANCED: (
        "[gpu:0]/GpuPowerMizerMode=0",
        "[gpu:0]/GPUTextureFilteringMode=0",
    ),
    PowerMode.POWERSAVE: ("[gpu:0]/GpuPowerMizerMode=2",),
}

_FREQ_POLICIES: dict[PowerMode, FreqPolicy] = {
    PowerMode.PERFORMANCE: FreqPolicy.PIN_MAX,
    PowerMode.BALANCED: FreqPolicy.KEEP,
    PowerMode.POWERSAVE: FreqPolicy.CAP_LOW,
}

_KNOBS: dict[PowerMode, tuple[KnobWrite, ...]] = {
    PowerMode.PERFORMANCE: _PERFORMANCE_KNOBS,
    PowerMode.BALANCED: _BALANCED_KNOBS,
    PowerMode.POWERSAVE: (),
}


def build_plan(
    mode: PowerMode,
    available_governors: Iterable[str] = (),
    has_nvidia: bool = False,
) -> TuningPlan:
    return TuningPlan(
        mode=mode,
        governor=select_governor(mode, available_governors),
        freq_policy=_FREQ_POLICIES[mode],
        knobs=_KNOBS[mode],
        nvidia_attributes=_NVIDIA_ATTRIBUTES[mode] if has_nvidia else (),
    )


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def require_root() -> None:
    if os.geteuid() != 0:
        raise NotRootError("applying a tuning plan requires root (use sudo)")


def apply_plan(
    plan: TuningPlan,
    sysfs_root: Path = Path("/"),
    timeout: float = DEFAULT_PROBE_TIMEOUT,
    dry_run: bool = False,
) -> ApplyReport:
    report = ApplyReport(plan=plan, dry_run=dry_run)

    report.results.append(
        _run_command(["cpupower", "frequency-set", "-g", plan.governor.value], timeout, dry_run)
    )

    for cpufreq in cpufreq_dirs(sysfs_root):
        report.results.append(
            _write_knob(cpufreq / "scaling_governor", plan.governor.value, dry_run)
        )
        report.results.extend(_apply_freq_policy(cpufreq, plan.freq_policy, dry_run))

    for knob in plan.knobs:
        path = sysfs_root / knob.path
        if knob.optional and not path.exists():
            logger.debug("tuning: %s absent, skipped", path)
            continue
        report.results.append(_write_knob(path, knob.value, dry_run))

    for attribute in plan.nvidia_attributes:
        report.results.append(_run_command(["nvidia-settings", "-a", attribute], timeout, dry_run))

    if report.failures:
        logger.warning(
            "%d of %d tuning steps failed", len(report.failures), len(report.results)
        )
    return report


def _apply_freq_policy(cpufreq: Path, policy: FreqPolicy, dry_run: bool) -> list[ApplyResult]:
    if policy == FreqPolicy.KEEP:
        return []
    try:
        if policy == FreqPolicy.PIN_MAX:
            hw_max = (cpufreq / "cpuinfo_max_freq").read_text().strip()
            return [
                _write_knob(cpufreq / "scaling_min_freq", hw_max, dry_run),
                _write_knob(cpufreq / "scaling_max_freq", hw_max, dry_run),
            ]
        hw_min = int((cpufreq / "cpuinfo_min_freq").read_text().strip())
    except (OSError, ValueError) as exc:
        return [ApplyResult(f"read hardware limits in {cpufreq}", ok=False, detail=str(exc))]
    cap = str(hw_min + POWERSAVE_HEADROOM_KHZ)
    return [_write_knob(cpufreq / "scaling_max_freq", cap, dry_run)]


def _write_knob(path: Path, value: str, dry_run: bool) -> ApplyResult:
    action = f"write {value} > {path}"
    if dry_run:
        return ApplyResult(action, detail="dry run")
    try:
        path.write_text(value)
    except OSError as exc:
        logger.warning("tuning: cannot write %s: %s", path, exc)
        return ApplyResult(action, ok=False, detail=str(exc))
    return ApplyResult(action)


def _run_command(args: list[str], timeout: float, dry_run: bool) -> ApplyResult:
    action = " ".join(args)
    if dry_run:
        return ApplyResult(action, detail="dry run")
    try:
        result = subprocess.run(args, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError:
        logger.warning("tuning: %s not found, skipped", args[0])
        return ApplyResult(action, ok=False, detail="not found")
    except subprocess.TimeoutExpired:
        logger.warning("tuning: %s timed out", args[0])
        return ApplyResult(action, ok=False, detail="timed out")
    if result.returncode != 0:
        detail = result.stderr.strip() or f"exit code {result.returncode}"
        return ApplyResult(action, ok=False, detail=detail)
    return ApplyResult(action)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def persist_governor(governor: Governor, config_path: Path) -> Path:
    """Record ``governor`` in the cpupower boot config.

    A fresh file gets the full template (governor plus frequency bounds
    of 0); an existing one only has its governor line replaced.
    """
    config_path = Path(config_path)
    if config_path.exists():
        update_governor_line(config_path, governor)
    else:
        render_files([(get_template("cpupower-config"), config_path)], {"GOVERNOR": governor})
    return config_path
