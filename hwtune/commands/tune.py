"""hwtune tune / status -- CPU governor and system performance tuning."""

from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import Optional

import click

from hwtune.cli_helpers import fail, get_settings, print_table, to_jsonable, warn
from hwtune.errors import NotRootError, ProbeUnavailable
from hwtune.hardware import read_available_governors, read_cpu_status
from hwtune.hardware._base import run_probe
from hwtune.profiles import PowerMode
from hwtune.tuning import CPUPOWER_SERVICE, apply_plan, build_plan, persist_governor, require_root

_GPU_STATUS_QUERY = [
    "nvidia-smi",
    "--query-gpu=name,utilization.gpu,memory.used,memory.total,temperature.gpu",
    "--format=csv,noheader",
]

_MODE_BANNERS = {
    PowerMode.PERFORMANCE: ("ACTIVATING PERFORMANCE MODE", "red"),
    PowerMode.BALANCED: ("ACTIVATING BALANCED MODE", "green"),
    PowerMode.POWERSAVE: ("ACTIVATING POWER SAVE MODE", "blue"),
}


@click.command()
@click.argument("mode", type=click.Choice([m.value for m in PowerMode]))
@click.option("--persist", is_flag=True, help="Write the governor to the cpupower boot config.")
@click.option(
    "--config-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="cpupower config to persist into (default: /etc/default/cpupower).",
)
@click.option("--dry-run", is_flag=True, help="Show what would change without writing.")
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Do not prompt.")
@click.pass_context
def tune(
    ctx: click.Context,
    mode: str,
    persist: bool,
    config_file: Optional[Path],
    dry_run: bool,
    assume_yes: bool,
) -> None:
    """Apply a power mode: performance, balanced or powersave.

    Sets the CPU governor and frequency bounds, VM sysctls and (when
    nvidia-smi is present) the NVIDIA PowerMizer mode. Needs root unless
    --dry-run is given.
    """
    settings = get_settings(ctx)
    power_mode = PowerMode(mode)

    if not dry_run:
        try:
            require_root()
        except NotRootError as exc:
            fail(str(exc))
        if shutil.which("cpupower") is None:
            fail("cpupower not found. Install it with your package manager (e.g. pacman -S cpupower).")

    has_nvidia = shutil.which("nvidia-smi") is not None
    if not has_nvidia:
        warn("nvidia-smi not found. GPU optimizations will be skipped.")

    plan = build_plan(
        power_mode,
        available_governors=read_available_governors(settings.sysfs_root),
        has_nvidia=has_nvidia,
    )
    banner, color = _MODE_BANNERS[power_mode]
    click.secho(f"\n  {banner}\n", fg=color, bold=True)

    report = apply_plan(
        plan,
        sysfs_root=settings.sysfs_root,
        timeout=settings.probe_timeout,
        dry_run=dry_run,
    )
    for result in report.results:
        if result.ok:
            suffix = f" ({result.detail})" if result.detail else ""
            click.echo(f"  ✓ {result.action}{suffix}")
        else:
            click.secho(f"  ✗ {result.action}: {result.detail}", fg="yellow")

    click.echo(f"\n  Governor: {plan.governor.value}")

    if dry_run:
        return
    if not persist and not assume_yes:
        persist = click.confirm("Make these settings persistent across reboots?", default=False)
    if persist:
        target = config_file or settings.cpupower_config
        try:
            persist_governor(plan.governor, target)
        except OSError as exc:
            fail(f"cannot write {target}: {exc}")
        click.secho(f"  ✓ Governor '{plan.governor.value}' saved to {target}", fg="green")
        click.echo(f"  Enable it at boot with: systemctl enable {CPUPOWER_SERVICE}")


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show CPU governor, frequencies, memory and GPU state."""
    settings = get_settings(ctx)
    cpu = read_cpu_status(settings.sysfs_root)

    gpu_lines: list[str] = []
    try:
        output = run_probe(_GPU_STATUS_QUERY, settings.probe_timeout)
        gpu_lines = [line.strip() for line in output.splitlines() if line.strip()]
    except ProbeUnavailable:
        pass

    if as_json:
        click.echo(json.dumps({"cpu": to_jsonable(cpu), "gpu": gpu_lines}, indent=2))
        return

    rows = [
        ("Model", cpu.model),
        ("Cores", f"{cpu.cores} ({cpu.threads} threads)"),
        ("Current governor", cpu.current_governor or "Unknown"),
        ("Available governors", " ".join(cpu.available_governors) or "N/A"),
    ]
    if cpu.current_mhz:
        shown = ", ".join(f"{mhz:.0f}" for mhz in cpu.current_mhz[:5])
        rows.append(("Frequencies (MHz)", shown))
    rows.append(("Memory", f"{cpu.available_ram_gb:.1f} / {cpu.total_ram_gb:.1f} GB available"))
    print_table("CPU", rows)

    if gpu_lines:
        click.secho("  GPU (name, util, mem used, mem total, temp)", bold=True)
        for line in gpu_lines:
            click.echo(f"    {line}")
        click.echo()


def register(cli: click.Group) -> None:
    cli.add_command(tune)
    cli.add_command(status)
