"""hwtune render -- generate WebUI entry points, launchers and user config.

Each subcommand detects the hardware, shows the plan, asks for
confirmation and then writes every artifact in one pass.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Optional

import click

from hwtune.cli_helpers import fail, get_settings, print_table, warn
from hwtune.errors import TemplateError
from hwtune.hardware import GPUVendor, HardwareDetector, HardwareFacts
from hwtune.installers import (
    RealESRGANLayout,
    SDWebUILayout,
    install_plan,
    next_steps,
    render_realesrgan,
    render_sd_webui,
)
from hwtune.profiles import Profile, VramTier, select_profile


# ---------------------------------------------------------------------------
# Local helpers
# ---------------------------------------------------------------------------


def _detect(ctx: click.Context) -> tuple[HardwareFacts, Profile]:
    settings = get_settings(ctx)
    facts = HardwareDetector(
        timeout=settings.probe_timeout, os_release=settings.os_release
    ).detect()
    profile = select_profile(facts)

    if facts.gpu_vendor == GPUVendor.NONE:
        warn("No dedicated GPU detected. Using CPU mode.")
    elif profile.rule == "nvidia-fp16-unstable":
        warn(f"{facts.gpu_name} is known to have FP16 issues. Using FP32 for stability.")
    elif facts.gpu_vendor == GPUVendor.AMD:
        warn("Using FP32 for AMD compatibility.")
    return facts, profile


def _confirm_and_render(
    rows: list[tuple[str, str]],
    assume_yes: bool,
    render: Callable[[], list[Path]],
) -> list[Path]:
    print_table("Installation Plan", rows)
    if not assume_yes and not click.confirm("Continue?", default=False):
        click.echo("Installation cancelled.")
        sys.exit(0)
    try:
        written = render()
    except TemplateError as exc:
        fail(str(exc))
    except OSError as exc:
        fail(f"cannot write generated files: {exc}")
    for path in written:
        click.secho(f"  ✓ {path}", fg="green")
    return written


# ---------------------------------------------------------------------------
# Click group & subcommands
# ---------------------------------------------------------------------------


@click.group("render")
def render_group() -> None:
    """Generate hardware-tuned launchers and WebUI configuration."""


@render_group.command("realesrgan")
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Install root (default: $INSTALL_ROOT or the current directory).",
)
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def render_realesrgan_cmd(ctx: click.Context, root: Optional[Path], assume_yes: bool) -> None:
    """Write the Real-ESRGAN WebUI, run.sh launcher and README.

    Example:

        hwtune render realesrgan --root ~/realesrgan
    """
    settings = get_settings(ctx)
    layout = RealESRGANLayout.from_root(root or settings.install_root)
    facts, profile = _detect(ctx)

    _confirm_and_render(
        install_plan(facts, profile, layout.install_root),
        assume_yes,
        lambda: render_realesrgan(profile, layout),
    )

    if not (layout.install_dir / "realesrgan").is_dir():
        warn(f"{layout.install_dir} is not a Real-ESRGAN checkout yet; clone it there before starting.")
    click.echo()
    for step in next_steps(facts, profile, layout.install_root / "run.sh"):
        click.echo(f"  {step}")


@render_group.command("sd-webui")
@click.option(
    "--dir",
    "install_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="WebUI checkout (default: ~/stable-diffusion-webui).",
)
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def render_sd_webui_cmd(ctx: click.Context, install_dir: Optional[Path], assume_yes: bool) -> None:
    """Write webui-user.sh (VRAM-based COMMANDLINE_ARGS) and launch.sh.

    Example:

        hwtune render sd-webui --dir ~/stable-diffusion-webui
    """
    layout = SDWebUILayout(install_dir.expanduser()) if install_dir else SDWebUILayout.default()
    facts, profile = _detect(ctx)

    tier = profile.vram_tier
    if tier == VramTier.UNKNOWN:
        warn("Cannot detect VRAM. Edit webui-user.sh later to add optimization flags.")
    elif tier == VramTier.LOW:
        warn("Low VRAM detected (<4GB). Using --lowvram mode.")

    _confirm_and_render(
        install_plan(facts, profile, layout.install_dir),
        assume_yes,
        lambda: render_sd_webui(profile, layout),
    )

    if not (layout.install_dir / "webui.sh").exists():
        warn(f"{layout.install_dir} has no webui.sh; clone the WebUI there before launching.")
    click.echo(f"\n  Start with: {layout.install_dir / 'launch.sh'}")


def register(cli: click.Group) -> None:
    cli.add_command(render_group)
