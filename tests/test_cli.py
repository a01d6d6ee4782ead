"""Tests for the projectxfer command line."""

from __future__ import annotations

import pytest

from fake_repository import FakeRepository
from projectxfer import cli

SOURCE_URL = "https://source:9443"
TARGET_URL = "https://target:9443"


@pytest.fixture
def repos(monkeypatch: pytest.MonkeyPatch, tmp_path, source: FakeRepository, target: FakeRepository):
    monkeypatch.chdir(tmp_path)
    by_url = {SOURCE_URL: source, TARGET_URL: target}
    created: list[dict] = []

    def fake_client(base_url, username, password, **kwargs):
        created.append({"url": base_url, "user": username, "password": password, **kwargs})
        return by_url[base_url]

    monkeypatch.setattr(cli, "RepositoryClient", fake_client)
    source.add_project("p1", "PA1", name="Process App 1", branches=["Main"])
    source.add_project("t1", "TK1", name="Toolkit 1", toolkit=True)
    source.add_version("p1", "Main", "v1", depends_on=["TK1"])
    source.add_version("t1", "Main", "1.0")
    return source, target, created


def _argv(tmp_path, *selection: str) -> list[str]:
    return [
        "--source-url", SOURCE_URL,
        "--source-user", "admin",
        "--source-password", "pass1",
        "--target-url", TARGET_URL,
        "--target-user", "admin",
        "--target-password", "pass2",
        "--export-dir", str(tmp_path / "exports"),
        *selection,
    ]


def test_migrate_single_project_by_name(repos, tmp_path, capsys):
    source, target, created = repos

    rc = cli.main(_argv(tmp_path, "--project", "Process App 1"))

    assert rc == 0
    assert target.imported == ["t1_1.0.twx", "p1_v1.twx"]
    assert "Migration complete: 1/1 projects succeeded" in capsys.readouterr().out
    assert [c["url"] for c in created] == [SOURCE_URL, TARGET_URL]
    assert created[0]["verify"] is False
    assert created[0]["timeout"] == 120.0
    assert (tmp_path / "exports" / "p1_v1.twx").exists()


def test_unknown_project_name_exits_1(repos, tmp_path):
    _, target, _ = repos

    assert cli.main(_argv(tmp_path, "-p", "No Such App")) == 1
    assert target.imported == []


def test_migrate_projects_by_acronym_list(repos, tmp_path):
    source, target, _ = repos
    source.add_project("p2", "PA2", branches=["Main"])
    source.add_version("p2", "Main", "r1")

    assert cli.main(_argv(tmp_path, "--projects", "PA2,PA1")) == 0
    assert target.imported == ["p2_r1.twx", "t1_1.0.twx", "p1_v1.twx"]


def test_migrate_all_with_ignore_branches(repos, tmp_path):
    source, target, _ = repos

    assert cli.main(_argv(tmp_path, "--all", "--ignore-branches")) == 0
    assert source.count("list_branches") == 0
    assert "p1_v1.twx" in target.imported


def test_toolkit_failure_exits_1(repos, tmp_path):
    source, target, _ = repos
    source.fail_exports.add(("t1", "1.0"))

    assert cli.main(_argv(tmp_path, "--project", "Process App 1")) == 1
    assert target.imported == []


def test_selection_is_required(repos, tmp_path):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(_argv(tmp_path))
    assert exc_info.value.code == 2


def test_selections_are_mutually_exclusive(repos, tmp_path):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(_argv(tmp_path, "--all", "--projects", "PA1"))
    assert exc_info.value.code == 2


def test_missing_connection_options_exit_2(repos, capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--source-url", SOURCE_URL, "--all"])
    assert exc_info.value.code == 2
    err = capsys.readouterr().err
    assert "--target-url" in err
    assert "--source-password" in err


def test_connection_options_fall_back_to_environment(repos, tmp_path, monkeypatch):
    _, target, created = repos
    monkeypatch.setenv("PROJECTXFER_SOURCE_URL", SOURCE_URL)
    monkeypatch.setenv("PROJECTXFER_SOURCE_USER", "env-admin")
    monkeypatch.setenv("PROJECTXFER_SOURCE_PASSWORD", "env-pass")
    monkeypatch.setenv("PROJECTXFER_TARGET_URL", TARGET_URL)
    monkeypatch.setenv("PROJECTXFER_TARGET_USER", "env-admin")
    monkeypatch.setenv("PROJECTXFER_TARGET_PASSWORD", "env-pass")
    monkeypatch.setenv("PROJECTXFER_EXPORT_DIR", str(tmp_path / "env-exports"))
    monkeypatch.setenv("PROJECTXFER_HTTP_TIMEOUT", "30")
    monkeypatch.setenv("PROJECTXFER_VERIFY_TLS", "true")

    assert cli.main(["--projects", "PA1"]) == 0
    assert created[0]["user"] == "env-admin"
    assert created[0]["timeout"] == 30.0
    assert created[0]["verify"] is True
    assert (tmp_path / "env-exports" / "p1_v1.twx").exists()
    assert target.imported[-1] == "p1_v1.twx"


def test_no_verify_tls_overrides_environment(repos, tmp_path, monkeypatch):
    _, _, created = repos
    monkeypatch.setenv("PROJECTXFER_VERIFY_TLS", "true")

    assert cli.main(_argv(tmp_path, "--projects", "PA1", "--no-verify-tls")) == 0
    assert created[0]["verify"] is False
    assert created[1]["verify"] is False


def test_verify_tls_flag_enables_verification(repos, tmp_path):
    _, _, created = repos

    assert cli.main(_argv(tmp_path, "--projects", "PA1", "--verify-tls")) == 0
    assert created[0]["verify"] is True
