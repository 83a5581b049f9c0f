"""Placeholder rendering for generated launcher scripts and config files.

Templates carry ``UPPER_SNAKE_PLACEHOLDER`` tokens. Each token name must
be a field of the fixed render schema below, and the render context must
hold a value for it; anything else is a :class:`TemplateError`. Values
are spelled as literals of the template's language (``True`` in Python,
``true`` in shell).

Writes are all-or-nothing per call: every template is rendered in memory
before the first file is touched, and each file lands through a
temporary sibling and ``os.replace``.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Protocol, Sequence

from hwtune.errors import TemplateError
from hwtune.profiles import Governor, Profile

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\b([A-Z][A-Z0-9_]*?)_PLACEHOLDER\b")

LANGUAGES = ("python", "shell", "text")

# Every placeholder a template may reference.
RENDER_FIELDS: frozenset[str] = frozenset(
    {
        "USE_HALF_PRECISION",
        "PRECISION",
        "GPU_TYPE",
        "DEVICE_MODE",
        "TILE_SIZE",
        "LAUNCH_ARGS",
        "GOVERNOR",
        "TORCH_INDEX_URL",
        "INSTALL_ROOT",
        "INSTALL_DIR",
        "VENV_DIR",
        "PYENV_DIR",
        "PYTHON_VERSION",
    }
)

_GOVERNOR_LINE_RE = re.compile(r"^governor=.*$", re.M)


@dataclass(frozen=True)
class Template:
    name: str
    filename: str
    body: str
    language: str = "text"
    executable: bool = False

    def __post_init__(self) -> None:
        if self.language not in LANGUAGES:
            raise ValueError(f"unknown template language {self.language!r}")

    def placeholders(self) -> list[str]:
        """Placeholder names in order of first appearance."""
        seen: dict[str, None] = {}
        for match in PLACEHOLDER_RE.finditer(self.body):
            seen.setdefault(match.group(1), None)
        return list(seen)


class Layout(Protocol):
    def placeholders(self) -> dict[str, Any]: ...


def build_context(profile: Profile, layout: Layout | None = None) -> dict[str, Any]:
    """Render context for ``profile``; fields without a value are left out."""
    context: dict[str, Any] = {
        "USE_HALF_PRECISION": profile.use_half_precision,
        "PRECISION": profile.precision,
        "GPU_TYPE": profile.gpu_type,
        "DEVICE_MODE": profile.device_mode,
        "TILE_SIZE": profile.tile_size,
        "LAUNCH_ARGS": profile.launch_args,
        "TORCH_INDEX_URL": profile.torch_index_url,
    }
    if profile.governor is not None:
        context["GOVERNOR"] = profile.governor
    if layout is not None:
        context.update(layout.placeholders())
    return context


def format_literal(value: Any, language: str) -> str:
    if isinstance(value, bool):
        if language == "python":
            return "True" if value else "False"
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (list, tuple)):
        return " ".join(format_literal(v, language) for v in value)
    if isinstance(value, os.PathLike):
        return os.fspath(value)
    return str(value)


def render_text(template: Template, context: Mapping[str, Any]) -> str:
    for name in template.placeholders():
        if name not in RENDER_FIELDS:
            raise TemplateError(template.name, name, "is not a known render field")
        if context.get(name) is None:
            raise TemplateError(template.name, name, "has no value in the profile")

    def _substitute(match: re.Match[str]) -> str:
        return format_literal(context[match.group(1)], template.language)

    return PLACEHOLDER_RE.sub(_substitute, template.body)


def render_files(
    outputs: Sequence[tuple[Template, Path]],
    context: Mapping[str, Any],
) -> list[Path]:
    """Render every template, then write each to its destination.

    A :class:`TemplateError` is raised before anything is written. Write
    failures surface as ``OSError``.
    """
    rendered = [(template, Path(dest), render_text(template, context)) for template, dest in outputs]
    written: list[Path] = []
    for template, dest, text in rendered:
        write_atomic(dest, text, executable=template.executable)
        logger.info("Wrote %s (%s)", dest, template.name)
        written.append(dest)
    return written


def render_bundle(
    templates: Sequence[Template],
    context: Mapping[str, Any],
    output_dir: Path,
) -> list[Path]:
    return render_files([(t, Path(output_dir) / t.filename) for t in templates], context)


def write_atomic(dest: Path, text: str, executable: bool = False, errors: str = "strict") -> None:
    """Replace ``dest`` with ``text``; an existing file is overwritten whole."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=dest.parent, prefix=f".{dest.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", errors=errors) as f:
            f.write(text)
        os.chmod(tmp_name, 0o755 if executable else 0o644)
        os.replace(tmp_name, dest)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def update_governor_line(path: Path, governor: Governor) -> None:
    """Set the ``governor=`` line of an existing cpupower config.

    Every other line is kept as is; a file without a governor line gets
    one appended. Bytes that are not valid UTF-8 are written back unchanged.
    """
    text = path.read_text(encoding="utf-8", errors="surrogateescape")
    line = f"governor='{governor.value}'"
    if _GOVERNOR_LINE_RE.search(text):
        text = _GOVERNOR_LINE_RE.sub(line, text, count=1)
    else:
        if text and not text.endswith("\n"):
            text += "\n"
        text += line + "\n"
    write_atomic(path, text, errors="surrogateescape")
    logger.info("Updated governor in %s", path)
