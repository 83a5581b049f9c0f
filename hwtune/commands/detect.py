"""hwtune detect -- show hardware facts and the profile derived from them."""

from __future__ import annotations

import json
from typing import Optional

import click

from hwtune.cli_helpers import get_settings, print_facts, print_table, to_jsonable
from hwtune.hardware import HardwareDetector, read_available_governors
from hwtune.profiles import PowerMode, select_profile


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option(
    "--mode",
    "-m",
    type=click.Choice([m.value for m in PowerMode]),
    default=None,
    help="Also pick the CPU governor for this power mode.",
)
@click.pass_context
def detect(ctx: click.Context, as_json: bool, mode: Optional[str]) -> None:
    """Detect hardware and show the configuration profile.

    Prints the GPU, VRAM, distro and tooling found on this machine, then
    the precision, tile size, device mode and WebUI launch flags chosen
    for it.
    """
    settings = get_settings(ctx)
    facts = HardwareDetector(
        timeout=settings.probe_timeout, os_release=settings.os_release
    ).detect()
    power_mode = PowerMode(mode) if mode else None
    available = read_available_governors(settings.sysfs_root) if power_mode else frozenset()
    profile = select_profile(facts, power_mode, available)

    if as_json:
        payload = {
            "hardware": to_jsonable(facts),
            "profile": to_jsonable(profile),
            "derived": {
                "use_half_precision": profile.use_half_precision,
                "gpu_type": profile.gpu_type,
                "vram_tier": profile.vram_tier.value,
                "torch_index_url": profile.torch_index_url,
            },
        }
        click.echo(json.dumps(payload, indent=2))
        return

    click.secho("\n  Hardware\n", bold=True)
    print_facts(facts)

    rows = [
        ("Rule", profile.rule),
        ("Precision", profile.precision.value),
        ("Device", profile.device_mode.value),
        ("Tile size", str(profile.tile_size)),
        ("Launch flags", " ".join(profile.launch_args) or "(none, VRAM unknown)"),
        ("PyTorch index", profile.torch_index_url),
    ]
    if profile.governor is not None:
        rows.append(("Governor", profile.governor.value))
    print_table("Profile", rows)

    if facts.diagnostics:
        click.secho("  Diagnostics", bold=True, fg="yellow")
        for line in facts.diagnostics:
            click.echo(f"    • {line}")
        click.echo()


def register(cli: click.Group) -> None:
    cli.add_command(detect)
