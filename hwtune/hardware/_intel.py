"""Intel integrated graphics, found by lspci only.

An Intel GPU is reported but never treated as an accelerator: the
profile selector maps it to CPU execution.
"""

from __future__ import annotations

import re
import shutil

from ._base import GPUBackend, scan_video_controllers
from ._types import GPUDetection, GPUVendor

IGPU_NAME = "Intel iGPU (using CPU mode)"

_INTEL_VGA = re.compile(r"vga.*intel", re.I)


class IntelBackend(GPUBackend):
    @property
    def name(self) -> str:
        return "intel"

    def check_availability(self) -> bool:
        return shutil.which("lspci") is not None

    def detect(self) -> GPUDetection | None:
        for line in scan_video_controllers(self.timeout):
            if _INTEL_VGA.search(line):
                return GPUDetection(
                    vendor=GPUVendor.INTEL,
                    name=IGPU_NAME,
                    detection_method="lspci",
                )
        return None
