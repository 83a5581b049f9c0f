"""Shared helpers for CLI commands.

Kept apart from cli.py so command modules can import them without a
circular import.
"""

from __future__ import annotations

import dataclasses
import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Any, NoReturn, Sequence

import click

from hwtune.config import Settings
from hwtune.hardware import HardwareFacts

_logger = logging.getLogger(__name__)

WELCOME_MESSAGE = """\
hwtune: hardware-aware setup for ML WebUIs and Linux performance tuning

  hwtune detect                 Show detected hardware and the chosen profile
  hwtune render realesrgan      Generate the Real-ESRGAN WebUI and launcher
  hwtune render sd-webui        Generate Stable Diffusion WebUI config
  hwtune tune performance       Apply a power mode (root)
  hwtune status                 Show CPU, memory and GPU state

Run 'hwtune COMMAND --help' for details.
"""


def configure_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        numeric = logging.WARNING
    logging.basicConfig(
        level=numeric,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    _logger.debug("log level %s", logging.getLevelName(numeric))


def get_settings(ctx: click.Context) -> Settings:
    obj = ctx.find_object(dict) or {}
    settings = obj.get("settings")
    if settings is None:
        settings = Settings.from_env()
    return settings


def fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def warn(message: str) -> None:
    click.secho(f"Warning: {message}", fg="yellow", err=True)


def print_table(title: str, rows: Sequence[tuple[str, str]]) -> None:
    click.secho(f"\n  {title}\n", bold=True)
    width = max((len(k) for k, _ in rows), default=0) + 1
    for key, value in rows:
        click.echo(f"    {key + ':':<{width}} {value}")
    click.echo()


def print_facts(facts: HardwareFacts) -> None:
    if facts.gpu_vendor.value == "none":
        click.secho("  GPU: None detected (CPU mode)", fg="yellow")
    else:
        click.echo(f"  GPU: {facts.gpu_name} [{facts.gpu_vendor.value}]")
    click.echo(f"  VRAM: {facts.vram_mb} MB" if facts.vram_mb else "  VRAM: unknown")
    click.echo(f"  Distro: {facts.distro_name or facts.distro_id.value} ({facts.distro_id.value})")
    tools = ", ".join(sorted(t.value for t in facts.tooling_available)) or "none"
    click.echo(f"  Tools: {tools}")


def to_jsonable(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_jsonable(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(to_jsonable(v) for v in obj)
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    if isinstance(obj, dict):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    return obj
