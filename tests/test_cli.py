"""
CLI interface tests for wtool.
Tests the command-line interface and main entry points.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from conftest import FAKE_COMMIT, WORKSPACE_CONTENT
from wtool.dependency import RemoteReference
from wtool.error_handling import get_error_handler
from wtool.main import cli
from wtool.vcs import RepoRootResolver


def fake_repo_root(importpath):
    return RemoteReference(vcs="git", repo=f"https://{importpath}", root=importpath)


@pytest.fixture
def offline():
    """Replace network and git lookups with fakes."""
    with patch.object(
        RepoRootResolver, "resolve", AsyncMock(side_effect=fake_repo_root)
    ) as resolve_mock, patch(
        "wtool.updater.ls_remote", AsyncMock(return_value=FAKE_COMMIT)
    ) as ls_remote_mock:
        yield resolve_mock, ls_remote_mock


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_cli_help(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "--asis" in result.output
        assert "new_go_repository" in result.output

    def test_cli_version(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "1.0.0" in result.output

    def test_identifiers_required(self):
        runner = CliRunner()
        result = runner.invoke(cli, [])

        assert result.exit_code == 2
        assert "Missing argument" in result.output


class TestAddCommand:
    """Test adding repositories from the command line."""

    def test_add_from_nested_directory(self, workspace_dir, monkeypatch, offline):
        resolve_mock, ls_remote_mock = offline
        monkeypatch.chdir(workspace_dir / "go" / "pkg")

        runner = CliRunner()
        result = runner.invoke(cli, ["com_github_golang_glog"])

        assert result.exit_code == 0, result.output
        assert "Added 1 new Go repository" in result.output
        resolve_mock.assert_awaited_once_with("github.com/golang/glog")
        ls_remote_mock.assert_awaited_once_with("https://github.com/golang/glog", "HEAD")
        assert (workspace_dir / "WORKSPACE").read_text() == (
            WORKSPACE_CONTENT
            + "\n"
            + "new_go_repository(\n"
            + '    name = "com_github_golang_glog",\n'
            + '    importpath = "github.com/golang/glog",\n'
            + f'    commit = "{FAKE_COMMIT}",\n'
            + ")\n"
        )

    def test_asis_flag(self, workspace_dir, monkeypatch, offline):
        monkeypatch.chdir(workspace_dir)

        runner = CliRunner()
        result = runner.invoke(cli, ["--asis", "github.com/golang/glog", "-q"])

        assert result.exit_code == 0, result.output
        assert "Added" not in result.output
        content = (workspace_dir / "WORKSPACE").read_text()
        assert 'name = "com_github_golang_glog",' in content
        assert 'importpath = "github.com/golang/glog",' in content

    def test_multiple_identifiers(self, workspace_dir, monkeypatch, offline):
        monkeypatch.chdir(workspace_dir)

        runner = CliRunner()
        result = runner.invoke(cli, ["com_github_golang_glog", "org_golang_google_grpc"])

        assert result.exit_code == 0, result.output
        assert "Added 2 new Go repositories" in result.output
        content = (workspace_dir / "WORKSPACE").read_text()
        assert content.index("com_github_golang_glog") < content.index("org_golang_google_grpc")

    def test_malformed_identifier_fails_without_writing(self, workspace_dir, monkeypatch, offline):
        monkeypatch.chdir(workspace_dir)

        runner = CliRunner()
        result = runner.invoke(cli, ["com_github_golang_glog", "com_github_glog"])

        assert result.exit_code == 1
        assert "Error" in result.output
        assert "4-part" in result.output
        assert get_error_handler().get_error_stats() == {"VALIDATION_ERROR": 1}
        assert (workspace_dir / "WORKSPACE").read_text() == WORKSPACE_CONTENT

    def test_no_workspace(self, temp_dir, monkeypatch, offline):
        monkeypatch.chdir(temp_dir)
        monkeypatch.setenv("WTOOL_WORKSPACE_FILE", "WORKSPACE.wtool-test-marker")

        runner = CliRunner()
        result = runner.invoke(cli, ["com_github_golang_glog"])

        assert result.exit_code == 1
        assert "WORKSPACE.wtool-test-marker" in result.output

    def test_unsupported_vcs(self, workspace_dir, monkeypatch, offline):
        resolve_mock, ls_remote_mock = offline
        resolve_mock.side_effect = lambda importpath: RemoteReference(
            vcs="bzr", repo=f"https://{importpath}", root=importpath
        )
        monkeypatch.chdir(workspace_dir)

        runner = CliRunner()
        result = runner.invoke(cli, ["net_launchpad_goyaml_yaml"])

        assert result.exit_code == 1
        assert "only git supported" in result.output
        ls_remote_mock.assert_not_awaited()
        assert (workspace_dir / "WORKSPACE").read_text() == WORKSPACE_CONTENT

    def test_interrupt_exits_130(self, workspace_dir, monkeypatch):
        monkeypatch.chdir(workspace_dir)

        with patch("wtool.main.async_add_dependencies", MagicMock(side_effect=KeyboardInterrupt)):
            runner = CliRunner()
            result = runner.invoke(cli, ["com_github_golang_glog"])

        assert result.exit_code == 130
        assert "Interrupted" in result.output
        assert get_error_handler().get_error_stats() == {"PROCESS_WARNING": 1}
        assert (workspace_dir / "WORKSPACE").read_text() == WORKSPACE_CONTENT
