"""Value objects produced by the upgrade advisor."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

DescriptorValue = Union[str, Tuple[str, ...]]


class _PresenceMarker:
    """Reference value for keys that only need to be set, whatever their value."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "PRESENT"


PRESENT = _PresenceMarker()


class DiagnosticKind(str, Enum):
    MISSING = "missing"
    UNEXPECTED = "unexpected"
    MISMATCHED = "mismatched"


class Diagnostic(BaseModel):
    """One discrepancy between a project descriptor and the reference."""

    key: str
    kind: DiagnosticKind
    expected: Optional[DescriptorValue] = None
    found: Optional[DescriptorValue] = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def missing(cls, key: str, expected: Optional[DescriptorValue]) -> "Diagnostic":
        return cls(key=key, kind=DiagnosticKind.MISSING, expected=expected)

    @classmethod
    def mismatched(cls, key: str, expected: DescriptorValue, found: DescriptorValue) -> "Diagnostic":
        return cls(key=key, kind=DiagnosticKind.MISMATCHED, expected=expected, found=found)

    @classmethod
    def unexpected(cls, key: str, found: DescriptorValue) -> "Diagnostic":
        return cls(key=key, kind=DiagnosticKind.UNEXPECTED, found=found)

    def to_dict(self) -> Dict[str, object]:
        return self.model_dump(mode="json")
