"""Shared xtask helpers for toolchain projects."""

__version__ = "0.3.0"

from .advisor import (
    DEFAULT_REFERENCE,
    PRESENT,
    REFERENCE_VERSION,
    Diagnostic,
    DiagnosticKind,
    evaluate,
    load_project_descriptor,
    load_reference,
)
from .config import XtaskConfig
from .errors import CommandError, InvalidReference, ManifestError, XtaskError
from .upgrade import DepName, UpgradeResult, UpgradeSpec
from .versioning import SemVer, SyncVersionResult, expected_version, sync_version

__all__ = [
    "__version__",
    "DEFAULT_REFERENCE",
    "PRESENT",
    "REFERENCE_VERSION",
    "Diagnostic",
    "DiagnosticKind",
    "evaluate",
    "load_project_descriptor",
    "load_reference",
    "XtaskConfig",
    "XtaskError",
    "InvalidReference",
    "ManifestError",
    "CommandError",
    "DepName",
    "UpgradeSpec",
    "UpgradeResult",
    "SemVer",
    "SyncVersionResult",
    "expected_version",
    "sync_version",
]
