"""Install layouts and artifact bundles for the supported WebUIs.

Only the generated files are produced here. Cloning the upstream
repositories, building the Python environment and downloading weights
are left to the commands printed in :func:`next_steps`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from hwtune.hardware import HardwareFacts, Tool
from hwtune.profiles import Profile
from hwtune.render import build_context, render_files
from hwtune.templates import get_template

logger = logging.getLogger(__name__)

REALESRGAN_PYTHON_VERSION = "3.11.11"
SD_WEBUI_PYTHON_VERSION = "3.10"


@dataclass(frozen=True)
class RealESRGANLayout:
    install_root: Path
    pyenv_dir: Path
    venv_dir: Path
    install_dir: Path
    python_version: str = REALESRGAN_PYTHON_VERSION

    @classmethod
    def from_root(cls, root: Path) -> "RealESRGANLayout":
        root = Path(root).expanduser().resolve()
        return cls(
            install_root=root,
            pyenv_dir=root / ".pyenv",
            venv_dir=root / "venv",
            install_dir=root / "Real-ESRGAN",
        )

    def placeholders(self) -> dict[str, Any]:
        return {
            "INSTALL_ROOT": self.install_root,
            "INSTALL_DIR": self.install_dir,
            "VENV_DIR": self.venv_dir,
            "PYENV_DIR": self.pyenv_dir,
            "PYTHON_VERSION": self.python_version,
        }


@dataclass(frozen=True)
class SDWebUILayout:
    install_dir: Path
    python_version: str = SD_WEBUI_PYTHON_VERSION

    @classmethod
    def default(cls) -> "SDWebUILayout":
        return cls(install_dir=Path.home() / "stable-diffusion-webui")

    def placeholders(self) -> dict[str, Any]:
        return {
            "INSTALL_DIR": self.install_dir,
            "PYTHON_VERSION": self.python_version,
        }


def install_plan(
    facts: HardwareFacts,
    profile: Profile,
    location: Path,
) -> list[tuple[str, str]]:
    """Rows of the confirmation table shown before anything is written."""
    precision = "FP16 (Fast)" if profile.use_half_precision else "FP32 (Stable)"
    rows = [
        ("Location", str(location)),
        ("Distribution", facts.distro_name or facts.distro_id.value),
        ("GPU Type", profile.gpu_type),
        ("GPU Name", facts.gpu_name or "None"),
        ("Precision", precision),
        ("Tile size", str(profile.tile_size)),
        ("Device", profile.device_mode.value),
    ]
    if facts.vram_mb:
        rows.append(("VRAM", f"{facts.vram_mb} MB"))
    rows.append(("Launch flags", " ".join(profile.launch_args) or "(none)"))
    rows.append(("PyTorch index", profile.torch_index_url))
    return rows


def render_realesrgan(profile: Profile, layout: RealESRGANLayout) -> list[Path]:
    """Write ``webui.py`` into the app dir and ``run.sh``/``README.txt`` into the root."""
    context = build_context(profile, layout)
    return render_files(
        [
            (get_template("realesrgan-webui"), layout.install_dir / "webui.py"),
            (get_template("realesrgan-launcher"), layout.install_root / "run.sh"),
            (get_template("realesrgan-readme"), layout.install_root / "README.txt"),
        ],
        context,
    )


def render_sd_webui(profile: Profile, layout: SDWebUILayout) -> list[Path]:
    """Write ``webui-user.sh`` and ``launch.sh`` into the WebUI checkout."""
    context = build_context(profile, layout)
    return render_files(
        [
            (get_template("sd-webui-user"), layout.install_dir / "webui-user.sh"),
            (get_template("sd-launcher"), layout.install_dir / "launch.sh"),
        ],
        context,
    )


def next_steps(facts: HardwareFacts, profile: Profile, launcher: Path) -> list[str]:
    """Follow-up hints printed after rendering."""
    steps = [
        f"pip install torch torchvision --index-url {profile.torch_index_url}",
        f"Start with: {launcher}",
    ]
    if not facts.has_tool(Tool.FFMPEG):
        steps.insert(0, "ffmpeg not found: video support is disabled until it is installed")
    return steps
