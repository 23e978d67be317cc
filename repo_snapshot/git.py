"""Thin wrappers around the git command line."""

import os
import re
import shutil
import subprocess
from typing import List, Optional

GIT_TIMEOUT = 60

REMOTE_REPO = re.compile(r"[:/]([^/:]+/[^/]+?)(?:\.git)?/?$")


def _git(args: List[str], cwd: str) -> Optional[str]:
    """Run git and return stdout, or None if git is missing or fails."""
    if not shutil.which("git"):
        return None
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT,
        )
    except (OSError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return result.stdout


def tracked_files(scan_path: str) -> List[str]:
    """Files known to git, or every file outside hidden directories."""
    output = _git(["ls-files"], scan_path)
    if output is not None:
        return [line for line in output.splitlines() if line]

    found = []
    for root, dirs, files in os.walk(scan_path):
        dirs[:] = sorted(d for d in dirs if not d.startswith("."))
        for filename in sorted(files):
            found.append(os.path.relpath(os.path.join(root, filename), scan_path))
    return found


def current_branch(scan_path: str) -> Optional[str]:
    output = _git(["symbolic-ref", "--short", "HEAD"], scan_path)
    if not output or not output.strip():
        return None
    return output.strip()


def parse_remote_repository(url: str) -> Optional[str]:
    """``git@github.com:owner/name.git`` or ``https://.../owner/name`` -> owner/name."""
    match = REMOTE_REPO.search(url.strip())
    return match.group(1) if match else None


def remote_repository(scan_path: str) -> Optional[str]:
    output = _git(["config", "--get", "remote.origin.url"], scan_path)
    if not output:
        return None
    return parse_remote_repository(output)
