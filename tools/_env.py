"""Shared process-environment helpers for shellswap tools.

Both tools run as root and the installer shells out to apt/dpkg.  A root
process should not hand its caller's arbitrary environment to a package
manager, so subprocesses get a whitelist-based env: start from a clean
dict with only functional vars, pin locale and frontend vars, and let
each caller add what it needs on top.
"""

import os

# Vars passed through from the host environment when present.
_PASSTHROUGH = frozenset({
    "PATH",
    "HOME", "USER", "LOGNAME",
    "TMPDIR",
    "TERM",
    "http_proxy", "https_proxy", "no_proxy",
    "HTTP_PROXY", "HTTPS_PROXY", "NO_PROXY",
})

# Vars pinned to fixed values so tool output is parseable and prompts
# never block.
_PINS = {
    "LC_ALL": "C",
    "LANG": "C",
    "DEBIAN_FRONTEND": "noninteractive",
}


def running_as_root():
    """True if the effective uid is the superuser."""
    return os.geteuid() == 0


def clean_env():
    """Return a clean env dict for subprocess env= parameter.

    Copies only whitelisted vars from the host, then applies the pins.
    """
    env = {}
    for key in _PASSTHROUGH:
        val = os.environ.get(key)
        if val is not None:
            env[key] = val
    env.update(_PINS)
    return env
