"""Thin wrapper around the ``cargo`` executable."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Sequence

from .errors import CommandError

logger = logging.getLogger(__name__)


def run_cargo(args: Sequence[str], *, cwd: Path) -> str:
    cmd = ["cargo", *args]
    logger.info("Running %s in %s", " ".join(cmd), cwd)
    try:
        proc = subprocess.run(cmd, cwd=str(cwd), capture_output=True, text=True, check=False)
    except FileNotFoundError as exc:
        raise CommandError("cargo executable not found on PATH.") from exc
    if proc.returncode != 0:
        raise CommandError(f"{' '.join(cmd)} failed with exit code {proc.returncode}: {proc.stderr.strip()}")
    return proc.stdout
