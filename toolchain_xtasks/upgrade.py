"""Point toolchain dependencies at a release, a git ref, or a local checkout."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

import requests
from requests import Session
from requests.exceptions import RequestException

from .commands import run_cargo
from .config import XtaskConfig
from .errors import ManifestError, XtaskError
from .manifest import (
    find_section,
    inline_table,
    join_lines,
    load_toml,
    lookup_table,
    parse_toml,
    render_section,
    section_entries,
    split_lines,
    toml_key,
    toml_string,
)
from .versioning import SemVer, SyncVersionResult, sync_version

logger = logging.getLogger(__name__)

DEPENDENCY_TABLES = ("dependencies", "dev-dependencies", "workspace.dependencies")
PATCH_TABLE = "patch.crates-io"
RELEASE_SCRIPT_URL = "https://raw.githubusercontent.com/starkware-libs/cairo/{ref}/scripts/release_crates.sh"


class DepName(str, Enum):
    CAIRO = "cairo"
    CAIROLS = "cairols"
    CAIROLINT = "cairolint"

    @property
    def repo(self) -> str:
        return _TOOL_REPOS[self]


_TOOL_REPOS = {
    DepName.CAIRO: "https://github.com/starkware-libs/cairo",
    DepName.CAIROLS: "https://github.com/software-mansion/cairols",
    DepName.CAIROLINT: "https://github.com/software-mansion/cairo-lint",
}

_STATIC_CRATES = {
    DepName.CAIROLS: ("cairo-language-server",),
    DepName.CAIROLINT: ("cairo-lint-core",),
}


@dataclass(frozen=True)
class UpgradeSpec:
    """Where the dependency group should be sourced from."""

    version: Optional[SemVer] = None
    rev: Optional[str] = None
    branch: Optional[str] = None
    path: Optional[Path] = None

    def __post_init__(self) -> None:
        if not (self.version or self.rev or self.branch or self.path):
            raise ValueError("Provide at least one of version, rev, branch or path.")
        if self.rev and self.branch:
            raise ValueError("rev and branch are mutually exclusive.")
        if self.path and (self.rev or self.branch):
            raise ValueError("path cannot be combined with rev or branch.")

    @property
    def uses_git(self) -> bool:
        return bool(self.rev or self.branch)

    @property
    def uses_patch(self) -> bool:
        return self.uses_git or self.path is not None

    @property
    def requirement(self) -> str:
        # crates.io requirements are kept even for git/path sources so that
        # [patch.crates-io] can redirect them.
        return str(self.version) if self.version else "*"

    def release_script_ref(self) -> str:
        if self.version:
            return f"refs/tags/v{self.version}"
        if self.rev:
            return self.rev
        if self.branch:
            return f"refs/heads/{self.branch}"
        return "refs/heads/main"


@dataclass(slots=True)
class UpgradeResult:
    dep: str
    crates: List[str]
    sections: Dict[str, str]
    written: bool
    purged_patches: List[str] = field(default_factory=list)
    sync: Optional[SyncVersionResult] = None
    logs: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "dep": self.dep,
            "crates": self.crates,
            "sections": self.sections,
            "written": self.written,
            "purged_patches": self.purged_patches,
            "sync": self.sync.to_dict() if self.sync else None,
            "logs": self.logs,
        }


def parse_release_crates(script: str) -> List[str]:
    """Extract the sorted ``cairo-lang-*`` names from ``CRATES_TO_PUBLISH=( ... )``."""

    _, marker, rest = script.partition("CRATES_TO_PUBLISH=(")
    if not marker:
        raise ManifestError("failed to extract start of `CRATES_TO_PUBLISH` from `scripts/release_crates.sh`")
    source_list, marker, _ = rest.partition(")")
    if not marker:
        raise ManifestError("failed to extract end of `CRATES_TO_PUBLISH` from `scripts/release_crates.sh`")
    return sorted(name for name in source_list.split() if name.startswith("cairo-lang-"))


def pull_cairo_crates(spec: UpgradeSpec, *, session: Optional[Session] = None, timeout: float = 30.0) -> List[str]:
    """Read the list of crates published from the Cairo repository."""

    if spec.path is not None:
        script_path = spec.path / "scripts" / "release_crates.sh"
        return parse_release_crates(script_path.read_text(encoding="utf-8"))

    url = RELEASE_SCRIPT_URL.format(ref=spec.release_script_ref())
    request_session = session or requests.Session()
    logger.info("Fetching %s", url)
    try:
        response = request_session.get(url, timeout=timeout)
        response.raise_for_status()
    except RequestException as exc:
        raise XtaskError(f"Failed to fetch Cairo release script from {url}: {exc}") from exc
    return parse_release_crates(response.text)


def tool_crates(dep: DepName, spec: UpgradeSpec, *, session: Optional[Session] = None) -> List[str]:
    if dep is DepName.CAIRO:
        return pull_cairo_crates(spec, session=session)
    return list(_STATIC_CRATES[dep])


def render_dependency(requirement: str, features: Optional[Sequence[str]] = None) -> str:
    """Render a dependency value, using the ``"V"`` shorthand when nothing else is set."""

    if not features:
        return toml_string(requirement)
    rendered_features = "[" + ", ".join(toml_string(str(item)) for item in features) + "]"
    return inline_table([("version", toml_string(requirement)), ("features", rendered_features)])


def render_patch(crate: str, repo: str, spec: UpgradeSpec) -> str:
    pairs: List[Tuple[str, str]] = []
    if spec.uses_git:
        pairs.append(("git", toml_string(repo)))
    if spec.branch:
        pairs.append(("branch", toml_string(spec.branch)))
    if spec.rev:
        pairs.append(("rev", toml_string(spec.rev)))
    if spec.path is not None:
        # Cargo does not search path sources recursively, so each crate gets its own path.
        pairs.append(("path", toml_string(str(spec.path / "crates" / crate))))
    return inline_table(pairs)


def edit_dependencies(
    lines: List[str],
    table: str,
    crates: Sequence[str],
    spec: UpgradeSpec,
    document: Mapping[str, Any],
) -> Optional[List[str]]:
    """Rewrite owned crates in ``[table]``; return the rewritten lines, or ``None`` without a table."""

    for crate in crates:
        if find_section(lines, f"{table}.{crate}") is not None:
            logger.warning("Skipping [%s.%s]: table-form dependencies are not rewritten.", table, crate)

    span = find_section(lines, table)
    if span is None:
        return None

    declared = lookup_table(document, table) or {}
    owned = set(crates)
    rendered: List[str] = []
    for index, key in section_entries(lines, span):
        if key not in owned:
            continue
        current = declared.get(key)
        features = current.get("features") if isinstance(current, Mapping) else None
        indent = lines[index][: len(lines[index]) - len(lines[index].lstrip())]
        line = f"{toml_key(key)} = {render_dependency(spec.requirement, features)}"
        lines[index] = f"{indent}{line}\n"
        rendered.append(line)
    return rendered


def edit_patch(lines: List[str], crates: Sequence[str], repo: str, spec: UpgradeSpec) -> List[str]:
    """Replace the group's entries in ``[patch.crates-io]``.

    For git and path sources every crate of the group is patched, whether or not
    the project depends on it directly, so transitive dependencies resolve to a
    single copy.
    """

    owned = set(crates)
    new_entries: List[Tuple[str, str]] = []
    if spec.uses_patch:
        new_entries = [(crate, f"{toml_key(crate)} = {render_patch(crate, repo, spec)}\n") for crate in crates]
    return _rewrite_patch_section(lines, drop=owned, add=new_entries)


def find_unused_patches(lock_document: Mapping[str, Any]) -> List[str]:
    """Names listed under ``[[patch.unused]]`` in ``Cargo.lock``."""

    patch = lock_document.get("patch")
    if not isinstance(patch, Mapping):
        return []
    unused = patch.get("unused", [])
    return [str(entry["name"]) for entry in unused if isinstance(entry, Mapping) and "name" in entry]


def purge_unused_patches(lines: List[str], names: Sequence[str]) -> List[str]:
    return _rewrite_patch_section(lines, drop=set(names), add=[])


def upgrade(
    config: XtaskConfig,
    dep: DepName,
    spec: UpgradeSpec,
    *,
    dry_run: bool = False,
    session: Optional[Session] = None,
) -> UpgradeResult:
    crates = tool_crates(dep, spec, session=session)
    text = config.manifest_path.read_text(encoding="utf-8")
    document = parse_toml(text, source=config.manifest_path)
    lines = split_lines(text)

    sections: Dict[str, str] = {}
    logs: List[str] = []
    for table in DEPENDENCY_TABLES:
        rendered = edit_dependencies(lines, table, crates, spec, document)
        if rendered is None:
            continue
        sections[table] = "\n".join([f"[{table}]", *rendered])
        logger.info("[%s] rewrote %d %s dependencies", table, len(rendered), dep.value)

    lines = edit_patch(lines, crates, dep.repo, spec)
    sections[PATCH_TABLE] = render_section(lines, PATCH_TABLE)

    result = UpgradeResult(dep=dep.value, crates=crates, sections=sections, written=not dry_run, logs=logs)
    if dry_run:
        logs.append("dry run: Cargo.toml left untouched")
        return result

    config.manifest_path.write_text(join_lines(lines), encoding="utf-8")
    run_cargo(["fetch"], cwd=config.workspace_root)
    logs.append("cargo fetch completed")

    unused = find_unused_patches(load_toml(config.lock_path))
    if unused:
        lines = purge_unused_patches(lines, unused)
        config.manifest_path.write_text(join_lines(lines), encoding="utf-8")
        sections[PATCH_TABLE] = render_section(lines, PATCH_TABLE)
        logs.append(f"removed unused patches: {', '.join(unused)}")
    result.purged_patches = unused

    result.sync = sync_version(config)
    logs.extend(result.sync.logs)
    return result


def _rewrite_patch_section(lines: List[str], *, drop: Set[str], add: List[Tuple[str, str]]) -> List[str]:
    span = find_section(lines, PATCH_TABLE)
    if span is None:
        if not add:
            return lines
        body = [line for _, line in sorted(add)]
        prefix = list(lines)
        if prefix and prefix[-1].strip():
            prefix.append("\n")
        return prefix + [f"[{PATCH_TABLE}]\n"] + body

    start, end = span
    entry_lines = {index: key for index, key in section_entries(lines, span)}
    comments: List[str] = []
    entries: List[Tuple[str, str]] = list(add)
    for index in range(start + 1, end):
        line = lines[index]
        if index in entry_lines:
            if entry_lines[index] not in drop:
                entries.append((entry_lines[index], line))
        elif line.strip():
            comments.append(line)
    body = comments + [line for _, line in sorted(entries)]
    if end < len(lines):
        body.append("\n")
    return lines[: start + 1] + body + lines[end:]
