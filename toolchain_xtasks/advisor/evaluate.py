"""Compare a project descriptor against a reference descriptor."""

from __future__ import annotations

import json
from datetime import date, datetime, time
from typing import Any, List, Mapping

from ..errors import InvalidReference
from .models import PRESENT, DescriptorValue, Diagnostic


def evaluate(reference: Mapping[str, Any], project: Mapping[str, Any]) -> List[Diagnostic]:
    """Return the diagnostics for ``project`` measured against ``reference``.

    Reference keys are visited in the reference's own order and produce at most
    one ``missing`` or ``mismatched`` diagnostic each. Project keys the reference
    does not know about follow, in the project's order, as ``unexpected``.
    Neither mapping is modified and the result depends on nothing else.
    """

    if not reference:
        raise InvalidReference("Reference descriptor is empty; refusing to treat it as a baseline.")

    diagnostics: List[Diagnostic] = []
    for key, expected in reference.items():
        if key not in project:
            diagnostics.append(Diagnostic.missing(key, None if expected is PRESENT else normalize_value(expected)))
            continue
        if expected is PRESENT:
            continue
        wanted = normalize_value(expected)
        found = normalize_value(project[key])
        if wanted != found:
            diagnostics.append(Diagnostic.mismatched(key, wanted, found))

    for key, value in project.items():
        if key not in reference:
            diagnostics.append(Diagnostic.unexpected(key, normalize_value(value)))

    return diagnostics


def normalize_value(value: Any) -> DescriptorValue:
    """Reduce a TOML/YAML value to the form compared by :func:`evaluate`."""

    if isinstance(value, (list, tuple)):
        return tuple(_normalize_scalar(item) for item in value)
    return _normalize_scalar(value)


def _normalize_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, sort_keys=True, default=str)
    return str(value)
