"""
Shared fixtures for wtool tests.
"""

import os
import stat
import sys
import textwrap
from pathlib import Path

import pytest

from wtool.cli_config import reset_config
from wtool.dependency import RemoteReference

FAKE_COMMIT = "0123456789abcdef0123456789abcdef01234567"

WORKSPACE_CONTENT = """\
# Test workspace for wtool.

http_archive(
    name = "io_bazel_rules_go",
    url = "https://example.com/rules_go.tar.gz",
)
"""


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep user config files and WTOOL_* variables out of every test."""
    for key in list(os.environ):
        if key.startswith("WTOOL_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    reset_config()
    yield
    reset_config()


@pytest.fixture
def temp_dir(tmp_path):
    return tmp_path


@pytest.fixture
def workspace_dir(tmp_path) -> Path:
    """A workspace root holding WORKSPACE_CONTENT, with a nested package dir."""
    root = tmp_path / "repo"
    (root / "go" / "pkg").mkdir(parents=True)
    (root / "WORKSPACE").write_text(WORKSPACE_CONTENT)
    return root


@pytest.fixture
def make_fake_git(tmp_path):
    """
    Build an executable that behaves like ``git ls-remote``.

    It prints ``output`` and records its arguments, one per line, in
    ``<script>.args``.
    """

    def factory(output: str) -> Path:
        script = tmp_path / "fake-git"
        script.write_text(
            textwrap.dedent(
                f"""\
                #!{sys.executable}
                import sys
                with open({str(script) + '.args'!r}, "w") as f:
                    f.write("\\n".join(sys.argv[1:]))
                sys.stdout.write({output!r})
                """
            )
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return factory


class FakeRepoResolver:
    """Stands in for RepoRootResolver without touching the network."""

    def __init__(self, vcs: str = "git"):
        self.vcs = vcs
        self.resolved = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def resolve(self, importpath: str) -> RemoteReference:
        self.resolved.append(importpath)
        return RemoteReference(vcs=self.vcs, repo=f"https://{importpath}", root=importpath)


class FakeCommitLookup:
    """Records ls-remote calls and answers with FAKE_COMMIT."""

    def __init__(self, commit: str = FAKE_COMMIT):
        self.commit = commit
        self.calls = []

    async def __call__(self, repo: str, ref: str) -> str:
        self.calls.append((repo, ref))
        return self.commit


@pytest.fixture
def fake_resolver():
    return FakeRepoResolver()


@pytest.fixture
def fake_lookup():
    return FakeCommitLookup()
