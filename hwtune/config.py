"""Runtime settings read from the environment.

CLI options override these per invocation; nothing here is cached in a
module-level global.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 10.0
DEFAULT_OS_RELEASE = "/etc/os-release"
DEFAULT_SYSFS_ROOT = "/"
DEFAULT_CPUPOWER_CONFIG = "/etc/default/cpupower"
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(frozen=True)
class Settings:
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    os_release: Path = Path(DEFAULT_OS_RELEASE)
    sysfs_root: Path = Path(DEFAULT_SYSFS_ROOT)
    cpupower_config: Path = Path(DEFAULT_CPUPOWER_CONFIG)
    install_root: Path = Path(".")
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            probe_timeout=_float_env("HWTUNE_PROBE_TIMEOUT", DEFAULT_PROBE_TIMEOUT),
            os_release=Path(os.environ.get("HWTUNE_OS_RELEASE", DEFAULT_OS_RELEASE)),
            sysfs_root=Path(os.environ.get("HWTUNE_SYSFS_ROOT", DEFAULT_SYSFS_ROOT)),
            cpupower_config=Path(
                os.environ.get("HWTUNE_CPUPOWER_CONFIG", DEFAULT_CPUPOWER_CONFIG)
            ),
            install_root=Path(os.environ.get("INSTALL_ROOT") or os.getcwd()),
            log_level=os.environ.get("HWTUNE_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        )

    def with_overrides(self, **overrides: object) -> "Settings":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a number, using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring %s=%r: must be positive, using %s", name, raw, default)
        return default
    return value
