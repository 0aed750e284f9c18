"""Reference descriptors: the shared shape every consuming project should match."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import InvalidReference
from .descriptor import flatten_descriptor
from .models import PRESENT

REFERENCE_VERSION = "2025.1"

DEFAULT_REFERENCE: Mapping[str, Any] = MappingProxyType(
    {
        "name": PRESENT,
        "version": PRESENT,
        "edition": "2024",
        "rust-version": "1.85",
        "license": "MIT",
        "description": PRESENT,
        "repository": PRESENT,
        "readme": "README.md",
    }
)


@dataclass(frozen=True)
class ReferenceDescriptor:
    version: str
    entries: Mapping[str, Any]


class ReferenceFile(BaseModel):
    """On-disk layout of a reference override file."""

    version: str = Field(default="custom", description="Label reported alongside diagnostics.")
    keys: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")


class _ReferenceLoader(yaml.SafeLoader):
    """Safe loader that keeps numeric scalars as written, so ``1.70`` stays ``"1.70"``."""


def _scalar_text(loader: _ReferenceLoader, node: yaml.ScalarNode) -> str:
    return loader.construct_scalar(node)


_ReferenceLoader.add_constructor("tag:yaml.org,2002:int", _scalar_text)
_ReferenceLoader.add_constructor("tag:yaml.org,2002:float", _scalar_text)


def default_reference() -> ReferenceDescriptor:
    return ReferenceDescriptor(version=REFERENCE_VERSION, entries=DEFAULT_REFERENCE)


def load_reference(path: Path) -> ReferenceDescriptor:
    """Load a reference override from YAML.

    A ``null`` value marks a key that only has to be present. Nested mappings
    flatten into dotted keys, the same way project descriptors do.
    """

    try:
        payload = yaml.load(path.read_text(encoding="utf-8"), Loader=_ReferenceLoader) or {}
    except OSError as exc:
        raise InvalidReference(f"Unable to read reference file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise InvalidReference(f"Reference file {path} is not valid YAML: {exc}") from exc

    try:
        parsed = ReferenceFile.model_validate(payload)
    except ValidationError as exc:
        raise InvalidReference(f"Reference file {path} does not match the expected layout: {exc}") from exc

    if not parsed.keys:
        raise InvalidReference(f"Reference file {path} declares no keys.")

    flat = flatten_descriptor(parsed.keys)
    entries = {key: PRESENT if value is None else value for key, value in flat.items()}
    return ReferenceDescriptor(version=str(parsed.version), entries=MappingProxyType(entries))
