"""Host configuration file rendering.

Files the installer writes (kernel module list, sysctl parameters, containerd
systemd override, crictl config, kubelet defaults, apt source list) are
rendered from the Jinja2 templates in ``templates/``. The containerd config
is generated by ``containerd config default`` and patched here.
"""

import logging
import os
import re
from functools import lru_cache

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateNotFound,
    TemplateSyntaxError,
    UndefinedError,
)

from .core import InstallerError

logger = logging.getLogger("kubeprep.installer.configuration")

SYSTEMD_CGROUP_FALSE = re.compile(r'^([ \t]*)SystemdCgroup[ \t]*=[ \t]*false[ \t]*$', re.MULTILINE)
SYSTEMD_CGROUP_TRUE = re.compile(r'^[ \t]*SystemdCgroup[ \t]*=[ \t]*true[ \t]*$', re.MULTILINE)
RUNC_OPTIONS_TABLE = re.compile(r'^([ \t]*)\[plugins\.[^\n]*runtimes\.runc\.options\][ \t]*$', re.MULTILINE)
CONFIG_VERSION = re.compile(r'^[ \t]*version[ \t]*=[ \t]*(\d+)', re.MULTILINE)

# runc options table per containerd config schema version
RUNC_OPTIONS_TABLES = {
    2: '[plugins."io.containerd.grpc.v1.cri".containerd.runtimes.runc.options]',
    3: "[plugins.'io.containerd.cri.v1.runtime'.containerd.runtimes.runc.options]",
}


class ConfigurationError(InstallerError):
    """Raised when there is an error generating a configuration file."""
    pass


def get_template_path() -> str:
    """Get the absolute path to the templates directory."""
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), 'templates')


@lru_cache(maxsize=1)
def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(get_template_path()),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined  # Raise error for undefined variables
    )


def render_template(name: str, **context) -> str:
    """Render one of the bundled configuration templates.

    Args:
        name: Template file name, e.g. ``crictl.yaml.j2``
        **context: Template variables

    Returns:
        str: Rendered file contents

    Raises:
        ConfigurationError: If the template is missing, invalid, or a variable is undefined
    """
    try:
        return _environment().get_template(name).render(**context)
    except TemplateNotFound as e:
        raise ConfigurationError(f"Configuration template not found: {e}") from e
    except TemplateSyntaxError as e:
        raise ConfigurationError(f"Template syntax error in {name}: {e}") from e
    except UndefinedError as e:
        raise ConfigurationError(f"Missing required template variable in {name}: {e}") from e


def patch_containerd_config(config_text: str) -> str:
    """Enable the systemd cgroup driver and keep every plugin enabled.

    Every ``SystemdCgroup = false`` becomes ``true``. If the config carries no
    SystemdCgroup setting at all, it is added under the runc options table,
    appending that table when the config lacks it. Any line mentioning
    ``disabled_plugins`` is dropped so the CRI plugin cannot be disabled.

    Args:
        config_text: Output of ``containerd config default``

    Returns:
        str: The patched config
    """
    lines = [line for line in config_text.splitlines() if 'disabled_plugins' not in line]
    text = '\n'.join(lines)
    if text:
        text += '\n'

    text = SYSTEMD_CGROUP_FALSE.sub(r'\1SystemdCgroup = true', text)
    if SYSTEMD_CGROUP_TRUE.search(text):
        return text

    match = RUNC_OPTIONS_TABLE.search(text)
    if match:
        indent = match.group(1) + '  '
        logger.debug("Adding SystemdCgroup to existing runc options table")
        return f"{text[:match.end()]}\n{indent}SystemdCgroup = true{text[match.end():]}"

    version_match = CONFIG_VERSION.search(text)
    version = int(version_match.group(1)) if version_match else 2
    table = RUNC_OPTIONS_TABLES.get(version, RUNC_OPTIONS_TABLES[2])
    logger.debug(f"Appending runc options table for config version {version}")
    prefix = f"{text.rstrip()}\n\n" if text.strip() else ''
    return f"{prefix}{table}\n  SystemdCgroup = true\n"
