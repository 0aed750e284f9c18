from __future__ import annotations

import json
from pathlib import Path

import pytest

from toolchain_xtasks import cli

MEMBER_MANIFEST = """\
[package]
name = "demo"
version = "0.1.0"
edition = "2021"
license = "Apache-2.0"
publish = false
"""


@pytest.fixture()
def member(tmp_path: Path) -> Path:
    root = tmp_path / "member"
    root.mkdir()
    (root / "Cargo.toml").write_text(MEMBER_MANIFEST, encoding="utf-8")
    return root


def test_upgrade_check_json(member: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["--workspace-root", str(member), "upgrade-check"])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert payload["aligned"] is False
    assert payload["counts"] == {"missing": 4, "unexpected": 1, "mismatched": 2}
    assert [(item["key"], item["kind"]) for item in payload["diagnostics"]] == [
        ("edition", "mismatched"),
        ("rust-version", "missing"),
        ("license", "mismatched"),
        ("description", "missing"),
        ("repository", "missing"),
        ("readme", "missing"),
        ("publish", "unexpected"),
    ]


def test_upgrade_check_strict_text(member: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["--workspace-root", str(member), "upgrade-check", "--strict", "--format", "text"])
    output = capsys.readouterr().out

    assert exit_code == 1
    assert "mismatched  edition: expected '2024', found '2021'" in output
    assert "unexpected  publish: found 'false'" in output


def test_upgrade_check_with_reference_override(member: Path, capsys: pytest.CaptureFixture[str]) -> None:
    reference = member / "reference.yaml"
    reference.write_text(
        "version: local\nkeys:\n  name: ~\n  version: ~\n  edition: '2021'\n  license: Apache-2.0\n  publish: false\n",
        encoding="utf-8",
    )
    exit_code = cli.main(
        ["--workspace-root", str(member), "upgrade-check", "--reference", str(reference), "--strict"]
    )
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert payload == {
        "reference_version": "local",
        "aligned": True,
        "counts": {"missing": 0, "unexpected": 0, "mismatched": 0},
        "diagnostics": [],
    }


def test_upgrade_check_strict_from_environment(
    member: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("XTASKS_STRICT", "1")
    assert cli.main(["--workspace-root", str(member), "upgrade-check"]) == 1
    capsys.readouterr()
    assert cli.main(["--workspace-root", str(member), "upgrade-check", "--no-strict"]) == 0


def test_invalid_reference_exits_with_error(member: Path, capsys: pytest.CaptureFixture[str]) -> None:
    reference = member / "reference.yaml"
    reference.write_text("keys: {}\n", encoding="utf-8")

    exit_code = cli.main(["--workspace-root", str(member), "upgrade-check", "--reference", str(reference)])

    assert exit_code == 2
    assert "declares no keys" in capsys.readouterr().err


def test_sync_version_dry_run(workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["--workspace-root", str(workspace), "sync-version", "--dry-run", "--no-pre-release"])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert payload["version"] == "2.10.0"
    assert payload["written"] is False


def test_upgrade_dry_run(workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["--workspace-root", str(workspace), "upgrade", "cairols", "--rev", "abc123", "--dry-run"])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert payload["crates"] == ["cairo-language-server"]
    assert 'cairo-language-server = { git = "https://github.com/software-mansion/cairols", rev = "abc123" }' in (
        payload["sections"]["patch.crates-io"]
    )


def test_upgrade_rejects_missing_source(workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["--workspace-root", str(workspace), "upgrade", "cairolint"])
    assert exit_code == 2
    assert "at least one" in capsys.readouterr().err


def test_unknown_log_level_from_environment_exits_with_error(
    member: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("XTASKS_LOG_LEVEL", "verbose")

    exit_code = cli.main(["--workspace-root", str(member), "upgrade-check"])

    assert exit_code == 2
    assert "Unknown log level 'verbose'" in capsys.readouterr().err


def test_unknown_log_level_flag_is_rejected_by_parser(member: Path, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--workspace-root", str(member), "--log-level", "verbose", "upgrade-check"])
    assert excinfo.value.code == 2
    assert "invalid choice" in capsys.readouterr().err


def test_unreadable_manifest_exits_with_error(member: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["--workspace-root", str(member), "upgrade-check", "--manifest", str(member)])

    assert exit_code == 2
    assert str(member) in capsys.readouterr().err
