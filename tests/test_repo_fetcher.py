from __future__ import annotations

import subprocess

import pytest

from webgrader import repo_fetcher
from webgrader.repo_fetcher import RepositoryCloneError, clone_repository


def test_clone_replaces_previous_checkout(tmp_path, monkeypatch):
    dest = tmp_path / "students_project"
    (dest / "old").mkdir(parents=True)
    seen = {}

    def fake_run(cmd, **kwargs):
        seen["cmd"] = cmd
        seen["dest_existed"] = dest.exists()
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    monkeypatch.setattr(repo_fetcher.subprocess, "run", fake_run)

    assert clone_repository("https://example.com/class.git", dest) == dest
    assert seen["cmd"][:2] == ["git", "clone"]
    assert seen["cmd"][-2:] == ["https://example.com/class.git", str(dest)]
    assert seen["dest_existed"] is False


def test_clone_failure_is_fatal(tmp_path, monkeypatch):
    def fake_run(cmd, **kwargs):
        return subprocess.CompletedProcess(cmd, 128, stdout="", stderr="fatal: repository not found")

    monkeypatch.setattr(repo_fetcher.subprocess, "run", fake_run)

    with pytest.raises(RepositoryCloneError, match="repository not found"):
        clone_repository("https://example.com/missing.git", tmp_path / "dest")


def test_missing_git_is_fatal(tmp_path, monkeypatch):
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError("git")

    monkeypatch.setattr(repo_fetcher.subprocess, "run", fake_run)

    with pytest.raises(RepositoryCloneError):
        clone_repository("https://example.com/class.git", tmp_path / "dest")
