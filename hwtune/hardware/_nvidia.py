"""NVIDIA detection via nvidia-smi."""

from __future__ import annotations

import logging
import shutil

from ..errors import ProbeUnavailable
from ._base import GPUBackend, run_probe
from ._types import GPUDetection, GPUVendor

logger = logging.getLogger(__name__)

FALLBACK_NAME = "NVIDIA GPU"

_NAME_QUERY = ["nvidia-smi", "--query-gpu=name", "--format=csv,noheader"]
_MEMORY_QUERY = [
    "nvidia-smi",
    "--query-gpu=memory.total",
    "--format=csv,noheader,nounits",
]


class NvidiaBackend(GPUBackend):
    @property
    def name(self) -> str:
        return "nvidia"

    def check_availability(self) -> bool:
        return shutil.which("nvidia-smi") is not None

    def detect(self) -> GPUDetection | None:
        output = run_probe(_NAME_QUERY, self.timeout)
        gpu_name = _first_line(output) or FALLBACK_NAME
        return GPUDetection(
            vendor=GPUVendor.NVIDIA,
            name=gpu_name,
            detection_method="nvidia-smi",
        )


def query_vram_mb(timeout: float) -> int:
    """Total memory of the first GPU in MB.

    Raises :class:`ProbeUnavailable` when nvidia-smi is missing or its
    output cannot be read as a number.
    """
    output = run_probe(_MEMORY_QUERY, timeout)
    first = _first_line(output)
    try:
        return max(int(float(first)), 0)
    except ValueError:
        raise ProbeUnavailable("nvidia-smi", f"unparseable memory.total {first!r}") from None


def _first_line(output: str) -> str:
    for line in output.splitlines():
        if line.strip():
            return line.strip()
    return ""
