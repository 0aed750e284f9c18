"""Invocation settings for the xtask helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import dotenv_values

ENV_WORKSPACE_ROOT = "XTASKS_WORKSPACE_ROOT"
ENV_REFERENCE = "XTASKS_REFERENCE"
ENV_STRICT = "XTASKS_STRICT"
ENV_LOG_LEVEL = "XTASKS_LOG_LEVEL"

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass
class XtaskConfig:
    workspace_root: Path
    manifest_path: Path
    lock_path: Path
    reference_path: Optional[Path] = None
    strict: bool = False
    log_level: str = "WARNING"

    @classmethod
    def from_project(
        cls,
        workspace_root: Path,
        manifest: str = "Cargo.toml",
        lock: str = "Cargo.lock",
        reference: Optional[str] = None,
        strict: bool = False,
        log_level: str = "WARNING",
    ) -> "XtaskConfig":
        level = log_level.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level '{log_level}'; expected one of {', '.join(LOG_LEVELS)}.")
        root = Path(workspace_root).resolve()
        return cls(
            workspace_root=root,
            manifest_path=(root / manifest).resolve(),
            lock_path=(root / lock).resolve(),
            reference_path=(root / reference).resolve() if reference else None,
            strict=strict,
            log_level=level,
        )

    @classmethod
    def from_env(
        cls,
        workspace_root: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "XtaskConfig":
        """Build settings from ``XTASKS_*`` variables.

        A ``.env`` file in the workspace root fills in anything the process
        environment leaves unset.
        """

        process_env = os.environ if environ is None else environ
        root = Path(workspace_root or process_env.get(ENV_WORKSPACE_ROOT) or Path.cwd())

        values: dict[str, str] = {}
        env_file = root / ".env"
        if env_file.is_file():
            values.update({key: value for key, value in dotenv_values(env_file).items() if value is not None})
        values.update(process_env)

        return cls.from_project(
            root,
            reference=values.get(ENV_REFERENCE) or None,
            strict=_to_bool(values.get(ENV_STRICT)),
            log_level=values.get(ENV_LOG_LEVEL) or "WARNING",
        )


def _to_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)
