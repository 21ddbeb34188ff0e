#!/usr/bin/env python3
"""Toggle root's login shell between /bin/bash and /bin/zsh.

Rewrites the first line of /etc/passwd when it is one of two known root
entries, copying every other line through untouched.  The new content is
written to a sibling staging file and published with a single rename, so
readers of the real path see either the old file or the new one and
nothing in between.
"""

import argparse
import os
import sys
from dataclasses import dataclass

from _env import running_as_root


PASSWD_FILE = "/etc/passwd"
STAGING_SUFFIX = ".tmp"
PASSWD_MODE = 0o644

ROOT_BASH_LINE = "root:x:0:0:root:/root:/bin/bash"
ROOT_ZSH_LINE = "root:x:0:0:root:/root:/bin/zsh"

_SWAP_TABLE = {
    ROOT_BASH_LINE: ROOT_ZSH_LINE,
    ROOT_ZSH_LINE: ROOT_BASH_LINE,
}


class ShellSwapError(Exception):
    """Base class for every failure that aborts a run."""


class PermissionDenied(ShellSwapError):
    pass


class IoError(ShellSwapError):
    """An open/read/write/close/chmod step failed."""

    def __init__(self, action, path, err):
        self.action = action
        self.path = path
        self.err = err
        super().__init__(f"{action} {path}: {err.strerror or err}")


class MalformedInput(ShellSwapError):
    """The first line is missing or is not one of the known root entries."""

    def __init__(self, message, line=None):
        self.line = line
        super().__init__(message)


class PublishFailed(ShellSwapError):
    """The final rename failed.  The original file is untouched."""

    def __init__(self, staging_path, passwd_path, err):
        self.staging_path = staging_path
        self.passwd_path = passwd_path
        self.err = err
        super().__init__(
            f"CRITICAL: renaming {staging_path} to {passwd_path} failed: "
            f"{err.strerror or err}. The original {passwd_path} is UNCHANGED. "
            f"The modified content is in {staging_path}. "
            "Manual intervention may be required."
        )


@dataclass(frozen=True)
class SwapResult:
    """Which way a successful run flipped the first line."""
    old_line: str
    new_line: str

    @property
    def old_shell(self):
        return self.old_line.rsplit(":", 1)[1]

    @property
    def new_shell(self):
        return self.new_line.rsplit(":", 1)[1]


def require_root():
    """Raise PermissionDenied unless the effective uid is 0."""
    if not running_as_root():
        raise PermissionDenied("This program must be run as root.")


def strip_terminator(line):
    """Drop a trailing \\n (and a \\r before it) from a decoded line."""
    if line.endswith("\n"):
        line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
    return line


def swap_line(line):
    """Return the replacement for a known root entry.

    *line* may still carry its terminator.  Anything other than the two
    known entries raises MalformedInput carrying the stripped text.
    """
    stripped = strip_terminator(line)
    try:
        return _SWAP_TABLE[stripped]
    except KeyError:
        raise MalformedInput(
            "The first line does not match the expected root shell "
            "configuration for bash or zsh.",
            line=stripped,
        ) from None


class StagingFile:
    """Same-directory scratch file holding the pending new content.

    Removed on every exit path that raises, unless ``keep`` was set
    before the failure.  Only the publish step sets ``keep``: once the
    rename has been attempted the staging file may be the only copy of
    the intended result.
    """

    def __init__(self, path):
        self.path = path
        self.keep = False
        self._f = None

    def __enter__(self):
        try:
            self._f = open(self.path, "wb")
        except OSError as e:
            raise IoError("opening for writing", self.path, e) from e
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._f is not None and not self._f.closed:
            try:
                self._f.close()
            except OSError:
                # Already failing; the unlink below discards the data.
                pass
        if exc_type is not None and not self.keep:
            try:
                os.unlink(self.path)
            except FileNotFoundError:
                pass
        return False

    def write(self, data):
        try:
            self._f.write(data)
        except OSError as e:
            raise IoError("writing to", self.path, e) from e

    def close(self):
        """Flush to disk and close.  Any failure means the copy may be short."""
        try:
            self._f.flush()
            os.fsync(self._f.fileno())
            self._f.close()
        except OSError as e:
            raise IoError("closing", self.path, e) from e

    def chmod(self, mode):
        try:
            os.chmod(self.path, mode)
        except OSError as e:
            raise IoError("setting permissions on", self.path, e) from e

    def publish(self, dest):
        """Atomically rename the staging file onto *dest*."""
        self.keep = True
        try:
            os.rename(self.path, dest)
        except OSError as e:
            raise PublishFailed(self.path, dest, e) from e


def _readline(f, path):
    try:
        return f.readline()
    except OSError as e:
        raise IoError("reading", path, e) from e


def swap_root_shell(passwd_path=PASSWD_FILE, staging_path=None):
    """Flip root's shell in *passwd_path* and return a SwapResult.

    Raises a ShellSwapError subclass on any failure.  Until the final
    rename succeeds *passwd_path* is never modified.
    """
    require_root()
    passwd_path = os.fspath(passwd_path)
    if staging_path is None:
        staging_path = passwd_path + STAGING_SUFFIX
    staging_path = os.fspath(staging_path)

    try:
        src = open(passwd_path, "rb")
    except OSError as e:
        raise IoError("opening for reading", passwd_path, e) from e

    with src, StagingFile(staging_path) as staging:
        first = _readline(src, passwd_path)
        if not first:
            raise MalformedInput(
                f"{passwd_path} is empty or could not read the first line.")

        old_line = strip_terminator(first.decode("utf-8", errors="replace"))
        new_line = swap_line(old_line)
        staging.write(new_line.encode() + b"\n")

        # Copy the rest byte-for-byte, terminators included.
        while True:
            line = _readline(src, passwd_path)
            if not line:
                break
            staging.write(line)

        staging.close()
        staging.chmod(PASSWD_MODE)
        staging.publish(passwd_path)

    return SwapResult(old_line, new_line)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Toggle root's login shell between /bin/bash and /bin/zsh")
    parser.add_argument("--passwd-file", default=PASSWD_FILE,
                        help=f"Account database to rewrite (default: {PASSWD_FILE}); "
                             f"staged as PATH{STAGING_SUFFIX}")
    args = parser.parse_args(argv)

    try:
        result = swap_root_shell(args.passwd_file)
    except MalformedInput as e:
        print(f"error: {e}", file=sys.stderr)
        if e.line is not None:
            print(f"Found: \"{e.line}\"", file=sys.stderr)
            print("No changes made.", file=sys.stderr)
        return 1
    except ShellSwapError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(f"Swapped root shell from {result.old_shell} to {result.new_shell}.")
    print(f"{args.passwd_file} has been updated successfully.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
