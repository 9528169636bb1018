"""Utility functions for kubeadm node installation."""
import logging
import os
import pwd
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Tuple

logger = logging.getLogger("kubeprep.kubeadm.utils")

# A swap field surrounded by whitespace, as in "/swap.img none swap sw 0 0"
SWAP_ENTRY = re.compile(r'\sswap\s')


def parse_os_release(text: str) -> Dict[str, str]:
    """Parse the contents of /etc/os-release into a dictionary.

    Args:
        text: Raw file contents

    Returns:
        dict: KEY -> value with surrounding quotes removed
    """
    os_info = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        key, value = line.split('=', 1)
        os_info[key.strip()] = value.strip().strip('"').strip("'")
    return os_info


def comment_swap_entries(fstab: str) -> Tuple[str, int]:
    """Comment out every active swap entry of an fstab.

    Args:
        fstab: Raw fstab contents

    Returns:
        tuple: (new contents, number of entries commented out)
    """
    lines = []
    commented = 0
    for line in fstab.splitlines(keepends=True):
        if not line.lstrip().startswith('#') and SWAP_ENTRY.search(line):
            line = f"#{line}"
            commented += 1
        lines.append(line)
    return ''.join(lines), commented


@dataclass(frozen=True)
class InvokingUser:
    """The user who started the installer, even when it runs under sudo."""
    name: str
    home: Path
    uid: int
    gid: int


def resolve_invoking_user() -> InvokingUser:
    """Return the user behind sudo, or the current user when not under sudo."""
    sudo_user = os.environ.get('SUDO_USER')
    if sudo_user:
        try:
            entry = pwd.getpwnam(sudo_user)
            logger.debug(f"Detected original user: {sudo_user}")
            return InvokingUser(sudo_user, Path(entry.pw_dir), entry.pw_uid, entry.pw_gid)
        except KeyError:
            logger.warning(f"SUDO_USER {sudo_user} has no passwd entry, using the current user")

    entry = pwd.getpwuid(os.getuid())
    return InvokingUser(entry.pw_name, Path(entry.pw_dir), entry.pw_uid, entry.pw_gid)
