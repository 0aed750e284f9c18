from __future__ import annotations

from pathlib import Path

import pytest

from toolchain_xtasks.config import XtaskConfig
from toolchain_xtasks.errors import ManifestError
from toolchain_xtasks.versioning import SemVer, expected_version, set_package_version, sync_version


def test_semver_parse_and_render() -> None:
    version = SemVer.parse("2.10.0-rc.1+nightly.3")
    assert (version.major, version.minor, version.patch) == (2, 10, 0)
    assert version.pre == "rc.1"
    assert version.build == "nightly.3"
    assert str(version) == "2.10.0-rc.1+nightly.3"


def test_semver_adjustments() -> None:
    version = SemVer.parse("2.10.0-rc.1")
    assert str(version.with_build("local")) == "2.10.0-rc.1+local"
    assert str(version.without_pre_release()) == "2.10.0"
    assert str(version.with_build("local").with_build("")) == "2.10.0-rc.1"


@pytest.mark.parametrize("value", ["2.10", "v2.10.0", "02.1.0", "2.10.0-", "2.10.0+"])
def test_semver_rejects_invalid(value: str) -> None:
    with pytest.raises(ValueError):
        SemVer.parse(value)


def test_semver_rejects_invalid_build() -> None:
    with pytest.raises(ValueError):
        SemVer.parse("1.0.0").with_build("not valid!")


def test_expected_version_reads_lockfile(workspace: Path) -> None:
    assert str(expected_version(workspace / "Cargo.lock")) == "2.10.0-rc.1"


def test_expected_version_requires_exactly_one_package(tmp_path: Path) -> None:
    lock = tmp_path / "Cargo.lock"
    lock.write_text('[[package]]\nname = "serde"\nversion = "1.0.0"\n', encoding="utf-8")
    with pytest.raises(ManifestError, match="found: 0"):
        expected_version(lock)

    lock.write_text(
        '[[package]]\nname = "cairo-lang-compiler"\nversion = "2.9.0"\n\n'
        '[[package]]\nname = "cairo-lang-compiler"\nversion = "2.10.0"\n',
        encoding="utf-8",
    )
    with pytest.raises(ManifestError, match="found: 2"):
        expected_version(lock)


def test_set_package_version_keeps_comments() -> None:
    text = '[package]\nname = "demo"\nversion = "0.1.0"  # synced\n\n[dependencies]\nversion = "9"\n'
    updated, table = set_package_version(text, "2.0.0")
    assert table == "package"
    assert updated == '[package]\nname = "demo"\nversion = "2.0.0"  # synced\n\n[dependencies]\nversion = "9"\n'


def test_set_package_version_inserts_missing_field() -> None:
    updated, table = set_package_version('[package]\nname = "x"\nedition = "2024"\n', "2.10.0")

    assert table == "package"
    assert updated == '[package]\nversion = "2.10.0"\nname = "x"\nedition = "2024"\n'


def test_set_package_version_accepts_literal_strings() -> None:
    updated, _ = set_package_version("[package]\nname = 'x'\nversion = '1.0.0'\n", "1.1.0")
    assert updated == "[package]\nname = 'x'\nversion = \"1.1.0\"\n"


def test_set_package_version_rejects_dotted_version_key() -> None:
    with pytest.raises(ManifestError, match="Unable to rewrite"):
        set_package_version('[package]\nname = "demo"\nversion.workspace = true\n', "1.0.0")


def test_sync_version_dry_run_leaves_manifest(config: XtaskConfig, cargo_calls: list) -> None:
    before = config.manifest_path.read_text(encoding="utf-8")

    result = sync_version(config, dry_run=True)

    assert result.table == "workspace.package"
    assert result.previous_version == "2.9.0"
    assert result.version == "2.10.0-rc.1"
    assert result.written is False
    assert 'version = "2.10.0-rc.1"' in result.section
    assert config.manifest_path.read_text(encoding="utf-8") == before
    assert cargo_calls == []


def test_sync_version_writes_and_fetches(config: XtaskConfig, cargo_calls: list) -> None:
    result = sync_version(config, build="dev", no_pre_release=True)

    assert result.version == "2.10.0+dev"
    content = config.manifest_path.read_text(encoding="utf-8")
    assert 'version = "2.10.0+dev"  # tracked by sync-version' in content
    assert 'cairo-lang-compiler = "2.9.0"' in content
    assert cargo_calls == [(["fetch"], config.workspace_root)]
    assert result.to_dict()["written"] is True
