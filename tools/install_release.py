#!/usr/bin/env python3
"""
Install shellswap from the latest GitHub release.

This script:
1. Maps the machine architecture to a release asset suffix
2. Fetches the latest release metadata from the GitHub API
3. Downloads the matching binary (or .deb) into a temporary directory
4. Installs it (binary: into --install-dir as root:root 0755,
   deb: with apt, falling back to dpkg)

Usage:
    sudo ./tools/install_release.py
    sudo ./tools/install_release.py --kind deb
    sudo ./tools/install_release.py --repo someone/shellswap --install-dir /usr/local/bin
"""

import os
import platform
import shutil
import subprocess
import tempfile
from pathlib import Path

import click
import httpx
from tqdm import tqdm

from _env import clean_env, running_as_root


DEFAULT_REPO = "CurrenlyDying/shellswap"
BINARY_NAME = "shellswap"
GITHUB_API = "https://api.github.com"

_ARCH_MAP = {
    "x86_64": "amd64",
    "aarch64": "arm64",
    "armv7l": "armhf",
}


class InstallError(click.ClickException):
    """Fatal installer failure; click prints it and exits 1."""


def info(msg):
    click.echo(f"{click.style('[INFO]', fg='green', bold=True)} {msg}")


def warn(msg):
    click.echo(f"{click.style('[WARN]', fg='yellow', bold=True)} {msg}")


def step(msg):
    click.echo("\n" + click.style(f"==> {msg}", fg="blue", bold=True))


def detect_arch(machine=None):
    """Map `uname -m` output to the arch suffix used by release assets."""
    machine = machine or platform.machine()
    try:
        return _ARCH_MAP[machine]
    except KeyError:
        raise InstallError(f"Unsupported architecture: {machine}") from None


def fetch_latest_release(client: httpx.Client, repo: str) -> dict:
    """Return the latest release JSON for *repo*."""
    url = f"{GITHUB_API}/repos/{repo}/releases/latest"
    try:
        response = client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise InstallError(
            f"Failed to fetch release information from {url}: {e}") from e
    if not response.content:
        raise InstallError(
            "Failed to fetch release information. Check network or repository URL.")
    try:
        release = response.json()
    except ValueError as e:
        raise InstallError(
            f"Release information from {url} is not valid JSON: {e}") from e
    if not isinstance(release, dict):
        raise InstallError(
            f"Unexpected release information from {url}: expected a JSON object.")
    return release


def _assets(release: dict) -> list[dict]:
    return release.get("assets") or []


def find_binary_asset(release: dict, name: str, arch: str) -> str:
    """Download URL of the asset named exactly ``<name>-<arch>``."""
    expected = f"{name}-{arch}"
    for asset in _assets(release):
        url = asset.get("browser_download_url")
        if asset.get("name") == expected and url and url != "null":
            return url
    raise InstallError(
        f"Could not find download URL for asset '{expected}' for architecture "
        f"'{arch}'. Please check the GitHub Releases page for available assets.")


def find_deb_asset(release: dict, prefix: str, arch: str) -> tuple[str, str]:
    """First ``(name, url)`` whose name contains *prefix* and ends ``_<arch>.deb``."""
    suffix = f"_{arch}.deb"
    for asset in _assets(release):
        name = asset.get("name") or ""
        url = asset.get("browser_download_url")
        if prefix in name and name.endswith(suffix) and url and url != "null":
            return name, url
    raise InstallError(
        f"Could not find a .deb package matching '{prefix}...{suffix}'. "
        "Please check assets on GitHub Releases and their naming.")


def download(client: httpx.Client, url: str, dest: Path) -> Path:
    """Stream *url* to *dest* with a progress bar."""
    try:
        with client.stream("GET", url) as response:
            response.raise_for_status()
            total = int(response.headers.get("content-length", 0)) or None
            with open(dest, "wb") as f, tqdm(
                total=total, unit="B", unit_scale=True, desc=dest.name,
                disable=total is None,
            ) as bar:
                for chunk in response.iter_bytes():
                    f.write(chunk)
                    bar.update(len(chunk))
    except httpx.HTTPError as e:
        raise InstallError(f"Failed to download {url}: {e}") from e
    except OSError as e:
        raise InstallError(f"Failed to write {dest}: {e}") from e

    if dest.stat().st_size == 0:
        raise InstallError("Downloaded file is empty.")
    return dest


def install_binary(path: Path, install_dir: Path, name: str = BINARY_NAME) -> Path:
    """Move *path* into *install_dir* as root:root 0755."""
    dest = install_dir / name
    try:
        shutil.move(str(path), dest)
        os.chown(dest, 0, 0)
        os.chmod(dest, 0o755)
    except OSError as e:
        if dest.exists():
            dest.unlink()
        raise InstallError(f"Failed to install {name} to {install_dir}: {e}") from e
    return dest


def install_deb(path: Path, which=shutil.which, run=subprocess.run) -> str:
    """Install a .deb with apt, falling back to dpkg.  Returns the tool used."""
    env = clean_env()
    have_apt = which("apt") is not None
    have_dpkg = which("dpkg") is not None
    if not have_apt and not have_dpkg:
        raise InstallError(
            "'apt' and 'dpkg' commands not found. Cannot install .deb package.")

    if have_apt:
        info("Updating package lists (apt update)...")
        if run(["apt", "update", "-qq"], env=env).returncode != 0:
            warn("'apt update' failed. Proceeding with install attempt, but "
                 "dependencies might not be found if lists are stale.")
        if run(["apt", "install", "-y", str(path)], env=env).returncode == 0:
            return "apt"
        warn("'apt install' failed. This might be due to unmet dependencies.")
    else:
        warn("'apt' command not found. Will proceed with 'dpkg -i'.")

    if not have_dpkg:
        raise InstallError("'dpkg' command not found and 'apt' failed.")
    if run(["dpkg", "-i", str(path)], env=env).returncode != 0:
        raise InstallError("'dpkg -i' also failed. Failed to install .deb package.")
    warn("Installed with dpkg. Dependencies might be missing.")
    if have_apt:
        info("Run 'sudo apt --fix-broken install' to resolve any dependency issues.")
    return "dpkg"


@click.command()
@click.option("--repo", default=DEFAULT_REPO, show_default=True,
              help="GitHub repository (owner/name) to install from")
@click.option("--kind", type=click.Choice(["binary", "deb"]), default="binary",
              show_default=True, help="Release asset type to install")
@click.option("--install-dir", type=click.Path(file_okay=False, path_type=Path),
              default=Path("/bin"), show_default=True,
              help="Destination directory for --kind binary")
def cli(repo, kind, install_dir):
    """Download and install the latest shellswap release."""
    if not running_as_root():
        raise InstallError("This script must be run as root. Please use 'sudo'.")

    arch = detect_arch()
    step(f"Installing {BINARY_NAME} ({kind}, {arch}) from {repo}")

    with httpx.Client(follow_redirects=True, timeout=60.0) as client, \
            tempfile.TemporaryDirectory() as tmp:
        info(f"Fetching latest release information for {repo}...")
        release = fetch_latest_release(client, repo)

        if kind == "binary":
            url = find_binary_asset(release, BINARY_NAME, arch)
            asset_name = BINARY_NAME
        else:
            asset_name, url = find_deb_asset(release, BINARY_NAME, arch)
        info(f"Found download URL: {url}")

        step(f"Downloading {asset_name}")
        path = download(client, url, Path(tmp) / asset_name)

        step("Installing")
        if kind == "binary":
            dest = install_binary(path, install_dir)
            info(f"{BINARY_NAME} installed successfully to {dest}")
        else:
            tool = install_deb(path)
            info(f"{BINARY_NAME} installed with {tool}")

    info(f"You can now run it with 'sudo {BINARY_NAME}'")


if __name__ == "__main__":
    cli()
