"""Exception types shared across hwtune."""

from __future__ import annotations


class HwtuneError(Exception):
    """Base class for hwtune failures surfaced to the caller."""


class ProbeUnavailable(HwtuneError):
    """An optional probe could not run (missing tool, timeout, bad exit).

    Raised inside the hardware detector only; every caller there turns it
    into a default fact value plus a diagnostic line.
    """

    def __init__(self, probe: str, reason: str) -> None:
        super().__init__(f"{probe}: {reason}")
        self.probe = probe
        self.reason = reason


class TemplateError(HwtuneError, ValueError):
    """A template references a placeholder the render context cannot fill."""

    def __init__(self, template: str, placeholder: str, reason: str) -> None:
        super().__init__(f"template {template!r}: {placeholder} {reason}")
        self.template = template
        self.placeholder = placeholder


class NotRootError(HwtuneError):
    """Applying a tuning plan requires root privileges."""
