"""Upgrade advisor: check a project's metadata against the shared baseline."""

from .descriptor import descriptor_from_document, flatten_descriptor, load_project_descriptor
from .evaluate import evaluate, normalize_value
from .models import PRESENT, DescriptorValue, Diagnostic, DiagnosticKind
from .reference import (
    DEFAULT_REFERENCE,
    REFERENCE_VERSION,
    ReferenceDescriptor,
    default_reference,
    load_reference,
)
from .report import count_by_kind, diagnostics_to_payload, exit_code_for, render_text

__all__ = [
    "DEFAULT_REFERENCE",
    "PRESENT",
    "REFERENCE_VERSION",
    "DescriptorValue",
    "Diagnostic",
    "DiagnosticKind",
    "ReferenceDescriptor",
    "count_by_kind",
    "default_reference",
    "descriptor_from_document",
    "diagnostics_to_payload",
    "evaluate",
    "exit_code_for",
    "flatten_descriptor",
    "load_project_descriptor",
    "load_reference",
    "normalize_value",
    "render_text",
]
