"""Keep the crate version in step with the Cairo compiler crates."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, List, Optional

from .commands import run_cargo
from .config import XtaskConfig
from .errors import ManifestError
from .manifest import (
    find_section,
    join_lines,
    load_toml,
    lookup_table,
    package_table_path,
    parse_toml,
    render_section,
    section_entries,
    split_lines,
    toml_string,
)

logger = logging.getLogger(__name__)

COMPILER_CRATE = "cairo-lang-compiler"

_IDENT = r"[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*"
_SEMVER_RE = re.compile(
    rf"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    rf"(?:-(?P<pre>{_IDENT}))?(?:\+(?P<build>{_IDENT}))?$"
)
_BUILD_RE = re.compile(rf"^(?:{_IDENT})?$")
_VERSION_LINE_RE = re.compile(r"""^(?P<prefix>\s*version\s*=\s*)(?:"[^"]*"|'[^']*')(?P<suffix>.*)$""", re.DOTALL)


@dataclass(frozen=True)
class SemVer:
    major: int
    minor: int
    patch: int
    pre: str = ""
    build: str = ""

    @classmethod
    def parse(cls, value: str) -> "SemVer":
        match = _SEMVER_RE.match(value.strip())
        if not match:
            raise ValueError(f"Version '{value}' is not a valid semantic version.")
        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(match.group("patch")),
            pre=match.group("pre") or "",
            build=match.group("build") or "",
        )

    def with_build(self, build: str) -> "SemVer":
        if not _BUILD_RE.match(build):
            raise ValueError(f"Build metadata '{build}' is not valid.")
        return replace(self, build=build)

    def without_pre_release(self) -> "SemVer":
        return replace(self, pre="")

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.pre:
            text += f"-{self.pre}"
        if self.build:
            text += f"+{self.build}"
        return text


@dataclass(slots=True)
class SyncVersionResult:
    manifest_path: str
    table: str
    previous_version: Optional[str]
    version: str
    written: bool
    section: str
    logs: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "manifest_path": self.manifest_path,
            "table": self.table,
            "previous_version": self.previous_version,
            "version": self.version,
            "written": self.written,
            "section": self.section,
            "logs": self.logs,
        }


def expected_version(lock_path: Path, package: str = COMPILER_CRATE) -> SemVer:
    """Return the version of ``package`` recorded in ``Cargo.lock``."""

    document = load_toml(lock_path)
    packages = document.get("package", [])
    matches = [pkg for pkg in packages if isinstance(pkg, dict) and pkg.get("name") == package]
    if len(matches) != 1:
        raise ManifestError(f"expected exactly one {package} package in Cargo.lock, found: {len(matches)}")
    return SemVer.parse(str(matches[0]["version"]))


def set_package_version(text: str, version: str) -> tuple[str, str]:
    """Rewrite the package version in manifest ``text``; return ``(new_text, table)``.

    A table without a ``version`` key gets one right after its header.
    """

    document = parse_toml(text)
    table = package_table_path(document)
    lines = split_lines(text)
    span = find_section(lines, table)
    if span is None:
        raise ManifestError(f"[{table}] must be declared as a standalone table to update its version.")
    for index, key in section_entries(lines, span):
        if key != "version":
            continue
        match = _VERSION_LINE_RE.match(lines[index])
        if not match:
            raise ManifestError(f"Unable to rewrite version line in [{table}]: {lines[index].strip()}")
        lines[index] = f"{match.group('prefix')}{toml_string(version)}{match.group('suffix')}"
        return join_lines(lines), table
    if "version" in (lookup_table(document, table) or {}):
        raise ManifestError(f"Unable to rewrite the version of [{table}]; set it as `version = \"...\"`.")
    lines.insert(span[0] + 1, f"version = {toml_string(version)}\n")
    return join_lines(lines), table


def sync_version(
    config: XtaskConfig,
    *,
    build: Optional[str] = None,
    no_pre_release: bool = False,
    dry_run: bool = False,
) -> SyncVersionResult:
    version = expected_version(config.lock_path)
    if build is not None:
        version = version.with_build(build)
    if no_pre_release:
        version = version.without_pre_release()

    text = config.manifest_path.read_text(encoding="utf-8")
    document = parse_toml(text, source=config.manifest_path)
    previous_table = lookup_table(document, package_table_path(document)) or {}
    previous = previous_table.get("version")

    updated, table = set_package_version(text, str(version))
    section = render_section(split_lines(updated), table)
    logger.info("[%s] version %s -> %s", table, previous, version)

    logs: List[str] = [f"[{table}] version = {version}"]
    if not dry_run:
        config.manifest_path.write_text(updated, encoding="utf-8")
        run_cargo(["fetch"], cwd=config.workspace_root)
        logs.append("cargo fetch completed")
    else:
        logs.append("dry run: Cargo.toml left untouched")

    return SyncVersionResult(
        manifest_path=str(config.manifest_path),
        table=table,
        previous_version=previous if isinstance(previous, str) else None,
        version=str(version),
        written=not dry_run,
        section=section,
        logs=logs,
    )
