"""Cargo manifest helpers.

Parsing goes through ``tomllib``. Edits are applied to the raw text line by
line so that comments, spacing and key order written by project owners
survive a rewrite.
"""

from __future__ import annotations

import re
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import ManifestError

_SECTION_RE = re.compile(r"^\s*(?P<open>\[\[?)\s*(?P<name>[^\[\]]+?)\s*\]\]?\s*(?:#.*)?$")
_ENTRY_RE = re.compile(r'^(?P<indent>\s*)(?P<key>"[^"]+"|[A-Za-z0-9_-]+)\s*=')


def load_toml(path: Path) -> Dict[str, Any]:
    return parse_toml(path.read_text(encoding="utf-8"), source=path)


def parse_toml(text: str, *, source: Optional[Path] = None) -> Dict[str, Any]:
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        where = f" in {source}" if source else ""
        raise ManifestError(f"Invalid TOML{where}: {exc}") from exc


def lookup_table(document: Mapping[str, Any], dotted: str) -> Optional[Mapping[str, Any]]:
    """Return the table at ``dotted`` (e.g. ``workspace.package``) or ``None``."""

    node: Any = document
    for part in dotted.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return None
        node = node[part]
    return node if isinstance(node, Mapping) else None


def package_table_path(document: Mapping[str, Any]) -> str:
    """Pick the table holding package metadata: ``workspace.package`` wins over ``package``."""

    if lookup_table(document, "workspace.package") is not None:
        return "workspace.package"
    if lookup_table(document, "package") is not None:
        return "package"
    raise ManifestError("Manifest has neither a [workspace.package] nor a [package] table.")


def split_lines(text: str) -> List[str]:
    lines = text.splitlines(keepends=True)
    if lines and not lines[-1].endswith("\n"):
        lines[-1] += "\n"
    return lines


def join_lines(lines: List[str]) -> str:
    return "".join(lines)


def section_name(line: str) -> Optional[str]:
    match = _SECTION_RE.match(line)
    if not match:
        return None
    name = match.group("name")
    parts = [part.strip().strip('"') for part in name.split(".")]
    prefix = "[[" if match.group("open") == "[[" else "["
    return prefix + ".".join(parts)


def find_section(lines: List[str], name: str) -> Optional[Tuple[int, int]]:
    """Locate ``[name]`` and return ``(header_index, end_index)``.

    The section body is ``lines[header_index + 1:end_index]``.
    """

    target = f"[{name}"
    header: Optional[int] = None
    for index, line in enumerate(lines):
        current = section_name(line)
        if current is None:
            continue
        if header is not None:
            return header, index
        if current == target:
            header = index
    if header is None:
        return None
    return header, len(lines)


def section_entries(lines: List[str], span: Tuple[int, int]) -> List[Tuple[int, str]]:
    """Return ``(line_index, key)`` for each ``key = value`` line of a section body."""

    start, end = span
    entries: List[Tuple[int, str]] = []
    for index in range(start + 1, end):
        line = lines[index]
        if line.lstrip().startswith("#"):
            continue
        match = _ENTRY_RE.match(line)
        if match:
            entries.append((index, match.group("key").strip('"')))
    return entries


def render_section(lines: List[str], name: str) -> str:
    span = find_section(lines, name)
    if span is None:
        return ""
    start, end = span
    return join_lines(lines[start:end]).rstrip("\n")


def toml_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def toml_key(key: str) -> str:
    return key if re.fullmatch(r"[A-Za-z0-9_-]+", key) else toml_string(key)


def inline_table(pairs: List[Tuple[str, str]]) -> str:
    """Render already-formatted ``(key, value)`` pairs as a TOML inline table."""

    body = ", ".join(f"{toml_key(key)} = {value}" for key, value in pairs)
    return "{ " + body + " }"
