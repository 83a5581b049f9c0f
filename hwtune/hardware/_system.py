"""Distro identity and optional tool availability."""

from __future__ import annotations

import logging
import shlex
import shutil
from pathlib import Path

from ._types import Distro, Tool

logger = logging.getLogger(__name__)

# Assumed when os-release is missing.
DEFAULT_DISTRO = Distro.ARCH

# Derivatives the installers treat the same as their base distro.
_DISTRO_ALIASES: dict[str, Distro] = {
    "arch": Distro.ARCH,
    "manjaro": Distro.ARCH,
    "endeavouros": Distro.ARCH,
    "ubuntu": Distro.UBUNTU,
    "pop": Distro.UBUNTU,
    "linuxmint": Distro.UBUNTU,
    "debian": Distro.DEBIAN,
    "fedora": Distro.FEDORA,
    "rhel": Distro.FEDORA,
    "centos": Distro.FEDORA,
}

# Tool -> executable looked up on PATH
_TOOL_COMMANDS: dict[Tool, str] = {
    Tool.FFMPEG: "ffmpeg",
    Tool.CPUPOWER: "cpupower",
    Tool.NVIDIA_SMI: "nvidia-smi",
    Tool.SYSTEMD: "systemctl",
}


def parse_os_release(text: str) -> dict[str, str]:
    """Parse os-release ``KEY=value`` lines, honouring shell quoting."""
    fields: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        try:
            parts = shlex.split(value)
        except ValueError:
            parts = [value.strip("\"'")]
        fields[key.strip()] = parts[0] if parts else ""
    return fields


def resolve_distro(fields: dict[str, str]) -> Distro:
    """Map ``ID`` (then each ``ID_LIKE`` entry) onto a known distro."""
    candidates = [fields.get("ID", "")]
    candidates.extend(fields.get("ID_LIKE", "").split())
    for candidate in candidates:
        distro = _DISTRO_ALIASES.get(candidate.lower())
        if distro is not None:
            return distro
    return Distro.OTHER


def detect_distro(os_release: Path) -> tuple[Distro, str, list[str]]:
    """Return ``(distro, pretty_name, diagnostics)``; never raises."""
    try:
        text = os_release.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.warning(
            "Cannot read %s (%s), assuming %s", os_release, exc, DEFAULT_DISTRO.value
        )
        return DEFAULT_DISTRO, "", [f"distro: {os_release} unreadable, assumed arch"]

    fields = parse_os_release(text)
    distro = resolve_distro(fields)
    name = fields.get("PRETTY_NAME") or fields.get("NAME") or fields.get("ID", "")
    return distro, name, [f"distro: {fields.get('ID', '?')} -> {distro.value}"]


def probe_tooling() -> frozenset[Tool]:
    """Tools whose executable is on PATH."""
    found = set()
    for tool, command in _TOOL_COMMANDS.items():
        if shutil.which(command) is not None:
            found.add(tool)
        else:
            logger.debug("tooling: %s not found", command)
    return frozenset(found)
