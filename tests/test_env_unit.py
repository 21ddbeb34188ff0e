"""Unit tests for tools/_env.py."""
from __future__ import annotations

import os

import pytest

import _env
from _env import _PASSTHROUGH, _PINS, clean_env, running_as_root


@pytest.fixture
def host_env(monkeypatch):
    """Replace os.environ with a controlled set of vars."""
    def _set(**env):
        for key in list(os.environ):
            monkeypatch.delenv(key)
        for key, val in env.items():
            monkeypatch.setenv(key, val)

    return _set


def test_clean_env_only_expected_keys(host_env):
    host_env(HOME="/root", PATH="/usr/bin", LD_PRELOAD="/tmp/evil.so",
             PYTHONPATH="/tmp", APT_CONFIG="/tmp/apt.conf")
    env = clean_env()
    assert set(env) <= _PASSTHROUGH | _PINS.keys()
    assert "LD_PRELOAD" not in env
    assert "APT_CONFIG" not in env


def test_clean_env_preserves_path_and_proxy(host_env):
    host_env(PATH="/usr/local/bin:/usr/bin", https_proxy="http://proxy:3128")
    env = clean_env()
    assert env["PATH"] == "/usr/local/bin:/usr/bin"
    assert env["https_proxy"] == "http://proxy:3128"


def test_clean_env_omits_unset_passthrough(host_env):
    host_env()
    assert not set(clean_env()) & _PASSTHROUGH


def test_clean_env_pins_override_host(host_env):
    host_env(LC_ALL="de_DE.UTF-8", DEBIAN_FRONTEND="dialog")
    env = clean_env()
    assert env["LC_ALL"] == "C"
    assert env["LANG"] == "C"
    assert env["DEBIAN_FRONTEND"] == "noninteractive"


def test_clean_env_leaves_os_environ_alone(host_env):
    host_env(FOO="bar")
    clean_env()
    assert os.environ["FOO"] == "bar"


@pytest.mark.parametrize("uid,expected", [(0, True), (1, False), (1000, False)])
def test_running_as_root(monkeypatch, uid, expected):
    monkeypatch.setattr(_env.os, "geteuid", lambda: uid)
    assert running_as_root() is expected
