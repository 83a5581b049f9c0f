"""
hwtune command-line interface.

Usage::

    hwtune detect
    hwtune detect --json --mode balanced
    hwtune render realesrgan --root ~/realesrgan
    hwtune render sd-webui --dir ~/stable-diffusion-webui
    sudo hwtune tune performance --persist
    hwtune tune powersave --dry-run
    hwtune status
"""

from __future__ import annotations

from typing import Optional

import click

from hwtune import __version__
from hwtune.cli_helpers import WELCOME_MESSAGE, configure_logging
from hwtune.config import Settings


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="hwtune")
@click.option("--verbose", "-v", is_flag=True, help="Log probe details to stderr.")
@click.option(
    "--probe-timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds before a hardware probe counts as unavailable.",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, probe_timeout: Optional[float]) -> None:
    """hwtune: hardware-aware setup for ML WebUIs and Linux tuning."""
    settings = Settings.from_env().with_overrides(
        probe_timeout=probe_timeout,
        log_level="DEBUG" if verbose else None,
    )
    configure_logging(settings.log_level)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    if ctx.invoked_subcommand is None:
        click.echo(WELCOME_MESSAGE)


# ---------------------------------------------------------------------------
# Register command modules
# ---------------------------------------------------------------------------

from hwtune.commands import detect, install, tune  # noqa: E402

for _mod in [detect, install, tune]:
    _mod.register(main)
