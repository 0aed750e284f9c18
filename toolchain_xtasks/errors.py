"""Exception types shared by the xtask helpers."""

from __future__ import annotations


class XtaskError(RuntimeError):
    """Base class for failures raised by xtask helpers."""


class InvalidReference(XtaskError):
    """Raised when a reference descriptor is empty or cannot be loaded.

    This points at a defect in the shipped baseline (or in an override file),
    never at the project being checked.
    """


class ManifestError(XtaskError):
    """Raised when a Cargo manifest or lockfile cannot be interpreted."""


class CommandError(XtaskError):
    """Raised when an external command (``cargo``) exits unsuccessfully."""
