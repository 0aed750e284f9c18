"""Render advisor diagnostics for humans and machines."""

from __future__ import annotations

from typing import Dict, Iterable, Optional, Sequence

from .models import DescriptorValue, Diagnostic, DiagnosticKind


def render_text(diagnostics: Sequence[Diagnostic]) -> str:
    if not diagnostics:
        return "aligned"
    return "\n".join(_render_line(diagnostic) for diagnostic in diagnostics)


def diagnostics_to_payload(diagnostics: Sequence[Diagnostic], reference_version: str) -> Dict[str, object]:
    return {
        "reference_version": reference_version,
        "aligned": not diagnostics,
        "counts": count_by_kind(diagnostics),
        "diagnostics": [diagnostic.to_dict() for diagnostic in diagnostics],
    }


def count_by_kind(diagnostics: Iterable[Diagnostic]) -> Dict[str, int]:
    counts = {kind.value: 0 for kind in DiagnosticKind}
    for diagnostic in diagnostics:
        counts[diagnostic.kind.value] += 1
    return counts


def exit_code_for(diagnostics: Sequence[Diagnostic], strict: bool) -> int:
    """Suggested process exit code: non-zero only when ``strict`` and misaligned."""

    return 1 if strict and diagnostics else 0


def _render_line(diagnostic: Diagnostic) -> str:
    label = f"{diagnostic.kind.value:<11} {diagnostic.key}"
    if diagnostic.kind is DiagnosticKind.MISSING:
        if diagnostic.expected is None:
            return f"{label}: expected to be set"
        return f"{label}: expected {_format_value(diagnostic.expected)}"
    if diagnostic.kind is DiagnosticKind.MISMATCHED:
        return f"{label}: expected {_format_value(diagnostic.expected)}, found {_format_value(diagnostic.found)}"
    return f"{label}: found {_format_value(diagnostic.found)}; remove it or add it to the reference"


def _format_value(value: Optional[DescriptorValue]) -> str:
    if value is None:
        return "nothing"
    if isinstance(value, tuple):
        return "[" + ", ".join(f"'{item}'" for item in value) + "]"
    return f"'{value}'"
