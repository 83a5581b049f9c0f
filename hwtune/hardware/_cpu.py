"""CPU frequency-scaling state, read from sysfs and psutil."""

from __future__ import annotations

import logging
import platform
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

CPUFREQ_DIR = "sys/devices/system/cpu"


@dataclass(frozen=True)
class CPUStatus:
    model: str
    cores: int
    threads: int
    current_governor: str | None
    available_governors: tuple[str, ...]
    current_mhz: tuple[float, ...] = ()
    total_ram_gb: float = 0.0
    available_ram_gb: float = 0.0
    diagnostics: list[str] = field(default_factory=list)


def cpu_root(sysfs_root: Path) -> Path:
    return sysfs_root / CPUFREQ_DIR


def cpufreq_dirs(sysfs_root: Path) -> list[Path]:
    """``cpuN/cpufreq`` directories that exist, in CPU order."""
    base = cpu_root(sysfs_root)
    try:
        candidates = [p for p in base.glob("cpu[0-9]*") if p.name[3:].isdigit()]
    except OSError:
        return []
    candidates.sort(key=lambda p: int(p.name[3:]))
    return [p / "cpufreq" for p in candidates if (p / "cpufreq").is_dir()]


def read_available_governors(sysfs_root: Path) -> frozenset[str]:
    path = cpu_root(sysfs_root) / "cpu0" / "cpufreq" / "scaling_available_governors"
    try:
        return frozenset(path.read_text().split())
    except OSError:
        logger.debug("cpu: %s unreadable", path)
        return frozenset()


def read_current_governor(sysfs_root: Path) -> str | None:
    path = cpu_root(sysfs_root) / "cpu0" / "cpufreq" / "scaling_governor"
    try:
        return path.read_text().strip() or None
    except OSError:
        return None


def read_cpu_model(sysfs_root: Path) -> str:
    cpuinfo = sysfs_root / "proc" / "cpuinfo"
    try:
        for line in cpuinfo.read_text().splitlines():
            if line.lower().startswith("model name"):
                return line.split(":", 1)[1].strip()
    except OSError:
        pass
    return platform.processor() or platform.machine()


def read_cpu_status(sysfs_root: Path) -> CPUStatus:
    """Snapshot of CPU model, core counts, governor state and memory."""
    import psutil

    diagnostics: list[str] = []
    cores = psutil.cpu_count(logical=False) or 1
    threads = psutil.cpu_count(logical=True) or 1

    current_mhz: tuple[float, ...] = ()
    try:
        freqs = psutil.cpu_freq(percpu=True) or []
        current_mhz = tuple(round(f.current, 1) for f in freqs)
    except (AttributeError, NotImplementedError, OSError) as exc:
        diagnostics.append(f"cpu: frequency readout unavailable: {exc}")

    ram = psutil.virtual_memory()
    available = read_available_governors(sysfs_root)
    if not available:
        diagnostics.append("cpu: no cpufreq governors exposed")

    return CPUStatus(
        model=read_cpu_model(sysfs_root),
        cores=cores,
        threads=threads,
        current_governor=read_current_governor(sysfs_root),
        available_governors=tuple(sorted(available)),
        current_mhz=current_mhz,
        total_ram_gb=round(ram.total / (1024**3), 2),
        available_ram_gb=round(ram.available / (1024**3), 2),
        diagnostics=diagnostics,
    )
