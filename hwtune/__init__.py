"""hwtune: hardware detection, configuration profiles and generated launchers."""

from __future__ import annotations

__version__ = "0.3.0"

from hwtune.errors import HwtuneError, NotRootError, ProbeUnavailable, TemplateError  # noqa: E402
from hwtune.hardware import HardwareFacts, detect_hardware  # noqa: E402
from hwtune.profiles import Profile, select_profile  # noqa: E402

__all__ = [
    "HardwareFacts",
    "HwtuneError",
    "NotRootError",
    "ProbeUnavailable",
    "Profile",
    "TemplateError",
    "__version__",
    "detect_hardware",
    "select_profile",
]
