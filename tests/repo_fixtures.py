"""Shared helpers that build real git repositories inside temp directories."""

from __future__ import annotations

import os
import shutil
import subprocess
import unittest
from pathlib import Path

GIT_AVAILABLE = shutil.which("git") is not None

requires_git = unittest.skipIf(not GIT_AVAILABLE, "git is required for repository tests")

_GIT_ENV = {
    "GIT_AUTHOR_NAME": "Tests",
    "GIT_AUTHOR_EMAIL": "tests@example.com",
    "GIT_COMMITTER_NAME": "Tests",
    "GIT_COMMITTER_EMAIL": "tests@example.com",
    "GIT_CONFIG_NOSYSTEM": "1",
    "GIT_TERMINAL_PROMPT": "0",
}


def git(cwd: Path, *args: str) -> str:
    env = dict(os.environ)
    env.update(_GIT_ENV)
    proc = subprocess.run(
        ["git", *args],
        cwd=cwd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        check=True,
        env=env,
    )
    return proc.stdout


def init_repo(path: Path) -> Path:
    """Create an empty repository on branch ``main`` at ``path``."""
    path.mkdir(parents=True, exist_ok=True)
    git(path, "init", "-q")
    git(path, "symbolic-ref", "HEAD", "refs/heads/main")
    git(path, "config", "user.email", "tests@example.com")
    git(path, "config", "user.name", "Tests")
    git(path, "config", "commit.gpgsign", "false")
    return path


def commit_file(repo: Path, name: str = "README.md", content: str = "hello\n", message: str = "commit") -> str:
    """Write ``name`` and commit it; returns the new HEAD id."""
    target = repo / name
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")
    git(repo, "add", "--", name)
    git(repo, "commit", "-q", "-m", message)
    return git(repo, "rev-parse", "HEAD").strip()


def make_committed_repo(path: Path, content: str = "hello\n") -> Path:
    init_repo(path)
    commit_file(path, content=content)
    return path


def add_upstream(repo: Path, remote_dir: Path) -> Path:
    """Create a bare remote at ``remote_dir`` and push ``main`` to it with tracking."""
    remote_dir.mkdir(parents=True, exist_ok=True)
    git(remote_dir, "init", "-q", "--bare")
    git(repo, "remote", "add", "origin", str(remote_dir))
    git(repo, "push", "-q", "-u", "origin", "main")
    return remote_dir


def make_pushed_repo(path: Path, remote_dir: Path) -> Path:
    """A repository with one commit that matches its upstream exactly."""
    make_committed_repo(path)
    add_upstream(path, remote_dir)
    return path
