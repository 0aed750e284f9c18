"""Build project descriptors from a consuming project's Cargo manifest."""

from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from ..errors import ManifestError
from ..manifest import load_toml, lookup_table

logger = logging.getLogger(__name__)

INHERITED = "workspace"


def load_project_descriptor(manifest_path: Path, table: Optional[str] = None) -> Mapping[str, Any]:
    """Read ``manifest_path`` and return the flattened package metadata table."""

    document = load_toml(manifest_path)
    return descriptor_from_document(document, table=table, source=manifest_path)


def descriptor_from_document(
    document: Mapping[str, Any],
    *,
    table: Optional[str] = None,
    source: Optional[Path] = None,
) -> Mapping[str, Any]:
    table_path = table or _default_table(document)
    package = lookup_table(document, table_path)
    if package is None:
        if table and _has_value(document, table):
            raise ManifestError(f"[{table}] in {source or 'manifest'} is not a table.")
        logger.warning("No [%s] table in %s; every reference key will be reported missing.", table_path, source or "manifest")
        return MappingProxyType({})

    workspace_package = lookup_table(document, "workspace.package") or {}
    resolved: Dict[str, Any] = {}
    for key, value in package.items():
        if _inherits_from_workspace(value):
            if table_path != "workspace.package" and key in workspace_package:
                resolved[key] = workspace_package[key]
            else:
                resolved[key] = INHERITED
        else:
            resolved[key] = value
    return MappingProxyType(flatten_descriptor(resolved))


def flatten_descriptor(mapping: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flatten nested tables into dotted keys, keeping insertion order."""

    flat: Dict[str, Any] = {}
    for key, value in mapping.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping) and value:
            flat.update(flatten_descriptor(value, full_key))
        else:
            flat[full_key] = value
    return flat


def _default_table(document: Mapping[str, Any]) -> str:
    if lookup_table(document, "workspace.package") is not None:
        return "workspace.package"
    return "package"


def _has_value(document: Mapping[str, Any], dotted: str) -> bool:
    parent, _, leaf = dotted.rpartition(".")
    container = lookup_table(document, parent) if parent else document
    return container is not None and leaf in container


def _inherits_from_workspace(value: Any) -> bool:
    return isinstance(value, Mapping) and value.get("workspace") is True
