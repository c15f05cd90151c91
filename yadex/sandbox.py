"""One-time confinement of the process to the served directory."""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

_confined = False


class SandboxError(Exception):
    """Confinement failed; the process must not serve requests."""


def confine(root: Path) -> None:
    """Make ``root`` the filesystem root of this process and ``cd`` into it.

    Irreversible, and allowed only once per process.

    Raises:
        SandboxError: On a repeated call or when ``chroot``/``chdir`` fails
    """
    global _confined

    if _confined:
        raise SandboxError("process is already confined")

    try:
        os.chroot(root)
        os.chdir("/")
    except OSError as exc:
        raise SandboxError(f"cannot confine process to {root}: {exc}") from exc

    _confined = True
    logger.info("Confined process to %s", root)
