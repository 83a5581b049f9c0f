"""AMD detection: rocm-smi, with an lspci scan as fallback."""

from __future__ import annotations

import logging
import re
import shutil

from ..errors import ProbeUnavailable
from ._base import GPUBackend, scan_video_controllers
from ._types import GPUDetection, GPUVendor

logger = logging.getLogger(__name__)

FALLBACK_NAME = "AMD GPU"

_AMD_VGA = re.compile(r"vga.*amd", re.I)


class AMDBackend(GPUBackend):
    """Either signal is enough: rocm-smi on PATH or an AMD VGA controller."""

    def __init__(self, timeout: float) -> None:
        super().__init__(timeout)
        self._pci_line: str | None = None

    @property
    def name(self) -> str:
        return "amd"

    def check_availability(self) -> bool:
        self._pci_line = None
        if shutil.which("rocm-smi") is not None:
            return True
        try:
            lines = scan_video_controllers(self.timeout)
        except ProbeUnavailable as exc:
            logger.debug("amd: %s", exc)
            return False
        for line in lines:
            if _AMD_VGA.search(line):
                self._pci_line = line
                return True
        return False

    def detect(self) -> GPUDetection | None:
        if self._pci_line is not None:
            return GPUDetection(
                vendor=GPUVendor.AMD,
                name=controller_description(self._pci_line) or FALLBACK_NAME,
                detection_method="lspci",
            )
        return GPUDetection(
            vendor=GPUVendor.AMD,
            name=FALLBACK_NAME,
            detection_method="rocm-smi",
        )


def controller_description(line: str) -> str:
    """``00:02.0 VGA compatible controller: Foo [Bar]`` -> ``Foo [Bar]``."""
    _, sep, rest = line.partition("controller:")
    if not sep:
        return ""
    return rest.strip()
