"""Hardware detection subsystem for hwtune.

Used by ``hwtune detect`` and ``hwtune render`` to build the immutable
:class:`HardwareFacts` the profile selector works from.
"""

from __future__ import annotations

from ._cpu import CPUStatus, read_available_governors, read_cpu_status
from ._types import Distro, GPUDetection, GPUVendor, HardwareFacts, Tool
from ._unified import HardwareDetector, detect_hardware

__all__ = [
    "CPUStatus",
    "Distro",
    "GPUDetection",
    "GPUVendor",
    "HardwareDetector",
    "HardwareFacts",
    "Tool",
    "detect_hardware",
    "read_available_governors",
    "read_cpu_status",
]
