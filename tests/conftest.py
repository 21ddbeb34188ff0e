from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

import pytest

_REPO = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_REPO / "tools"))

BASH_LINE = b"root:x:0:0:root:/root:/bin/bash\n"
ZSH_LINE = b"root:x:0:0:root:/root:/bin/zsh\n"
REST = (
    b"daemon:x:1:1:daemon:/usr/sbin:/usr/sbin/nologin\n"
    b"bin:x:2:2:bin:/bin:/usr/sbin/nologin\n"
    b"sys:x:3:3:sys:/dev:/usr/sbin/nologin\n"
    b"sync:x:4:65534:sync:/bin:/bin/sync\n"
    b"nobody:x:65534:65534:nobody:/nonexistent:/usr/sbin/nologin\n"
)


@pytest.fixture(scope="session")
def repo_root() -> Path:
    return _REPO


@pytest.fixture
def as_root(monkeypatch):
    """Pretend the effective uid is 0."""
    monkeypatch.setattr(os, "geteuid", lambda: 0)


@pytest.fixture
def as_user(monkeypatch):
    monkeypatch.setattr(os, "geteuid", lambda: 1000)


@pytest.fixture
def passwd(tmp_path: Path):
    """Factory: write *content* to a fresh passwd file and return its path."""
    def _make(content: bytes, mode: int = 0o644) -> Path:
        path = tmp_path / "passwd"
        path.write_bytes(content)
        path.chmod(mode)
        return path

    return _make


@pytest.fixture
def run_tool(repo_root: Path):
    """Run a tools/ script as a subprocess: run_tool("shellswap.py", ...)."""
    def _run(script: str, *args: str) -> subprocess.CompletedProcess:
        cmd = [sys.executable, str(repo_root / "tools" / script), *args]
        return subprocess.run(cmd, capture_output=True, text=True)

    return _run
