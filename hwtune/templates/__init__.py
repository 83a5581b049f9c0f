"""Bundled templates for the generated launcher, WebUI and config files."""

from __future__ import annotations

from functools import lru_cache
from importlib import resources

from hwtune.render import Template

# name -> (resource file, output filename, language, executable)
_CATALOG: dict[str, tuple[str, str, str, bool]] = {
    "realesrgan-webui": ("realesrgan_webui.py.tmpl", "webui.py", "python", False),
    "realesrgan-launcher": ("realesrgan_run.sh.tmpl", "run.sh", "shell", True),
    "realesrgan-readme": ("realesrgan_readme.txt.tmpl", "README.txt", "text", False),
    "sd-webui-user": ("sd_webui_user.sh.tmpl", "webui-user.sh", "shell", True),
    "sd-launcher": ("sd_launch.sh.tmpl", "launch.sh", "shell", True),
    "cpupower-config": ("cpupower.tmpl", "cpupower", "text", False),
}


def template_names() -> list[str]:
    return list(_CATALOG)


@lru_cache(maxsize=None)
def get_template(name: str) -> Template:
    try:
        resource, filename, language, executable = _CATALOG[name]
    except KeyError:
        raise KeyError(f"unknown template {name!r}") from None
    body = resources.files(__name__).joinpath(resource).read_text(encoding="utf-8")
    return Template(
        name=name,
        filename=filename,
        body=body,
        language=language,
        executable=executable,
    )
