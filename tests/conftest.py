from __future__ import annotations

from pathlib import Path

import pytest

from toolchain_xtasks import upgrade as upgrade_module
from toolchain_xtasks import versioning as versioning_module
from toolchain_xtasks.config import ENV_LOG_LEVEL, ENV_REFERENCE, ENV_STRICT, ENV_WORKSPACE_ROOT, XtaskConfig

CARGO_TOML = """\
[workspace]
resolver = "2"
members = ["crates/*"]

[workspace.package]
version = "2.9.0"  # tracked by sync-version
edition = "2024"
license = "MIT"

[workspace.dependencies]
cairo-lang-compiler = "2.9.0"
cairo-lang-utils = { version = "2.9.0", features = ["serde"] }
serde = "1"

[patch.crates-io]
# toolchain overrides
cairo-lang-parser = { git = "https://github.com/starkware-libs/cairo", rev = "abc123" }
other-crate = { path = "../other" }
"""

CARGO_LOCK = """\
version = 4

[[package]]
name = "cairo-lang-compiler"
version = "2.10.0-rc.1"

[[package]]
name = "serde"
version = "1.0.210"

[[patch.unused]]
name = "cairo-lang-parser"
version = "2.10.0-rc.1"
"""


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (ENV_WORKSPACE_ROOT, ENV_REFERENCE, ENV_STRICT, ENV_LOG_LEVEL):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    (root / "Cargo.toml").write_text(CARGO_TOML, encoding="utf-8")
    (root / "Cargo.lock").write_text(CARGO_LOCK, encoding="utf-8")
    return root


@pytest.fixture()
def config(workspace: Path) -> XtaskConfig:
    return XtaskConfig.from_project(workspace)


@pytest.fixture()
def cargo_calls(monkeypatch: pytest.MonkeyPatch) -> list:
    calls: list = []

    def fake_run_cargo(args, *, cwd):
        calls.append((list(args), Path(cwd)))
        return ""

    monkeypatch.setattr(versioning_module, "run_cargo", fake_run_cargo)
    monkeypatch.setattr(upgrade_module, "run_cargo", fake_run_cargo)
    return calls
