from __future__ import annotations

import subprocess
import sys

from typing import overload
from typing_extensions import Literal

_verbose: bool = False
_cwd: str | None = None


def set_git_verbose(enabled: bool = True) -> None:
    global _verbose
    _verbose = enabled


def set_git_cwd(path: str | None) -> None:
    """
    Set the working directory that git commands are run from.

    Args:
        path: repository root. None means the current working directory.
    """
    global _cwd
    _cwd = path


def strip_remote(remote: str | None, branch: str) -> str:
    """
    Remove a leading remote prefix from a branch path.

    Args:
        remote: The remote repository name
        branch: The branch path, e.g. "origin/release/1.0.0"

    Returns:
        str: The branch name without the remote, e.g. "release/1.0.0"
    """
    if remote:
        prefix = f"{remote}/"
        if branch.startswith(prefix):
            return branch[len(prefix) :]
    return branch


@overload
def git(*args: str, quiet: bool = False, capture: Literal[True]) -> str:
    pass


@overload
def git(*args: str, quiet: bool = False) -> subprocess.CompletedProcess[str]:
    pass


def git(
    *args: str, quiet: bool = False, capture: bool = False
) -> subprocess.CompletedProcess | str:
    """
    Execute a git command with the specified arguments.

    Args:
        *args: Command line arguments for git.

    Returns:
        A subprocess.CompletedProcess instance, if capture is False, else stdout of the process.

    Raises:
        subprocess.CalledProcessError: If the git command fails.
    """
    cmd = ["git"] + [str(arg).strip() for arg in args]
    if _verbose:
        print(cmd, file=sys.stderr)
    if capture:
        output = subprocess.run(
            cmd,
            check=True,
            text=True,
            cwd=_cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL if quiet else None,
        ).stdout.strip()
        return output
    else:
        return subprocess.run(
            cmd,
            text=True,
            check=True,
            cwd=_cwd,
            stdout=subprocess.DEVNULL if quiet else None,
            stderr=subprocess.DEVNULL if quiet else None,
        )


def current_branch() -> str:
    """
    Get the name of the branch that HEAD points to.

    Raises:
        RuntimeError: If HEAD is detached or the branch cannot be determined.
    """
    try:
        branch = git("symbolic-ref", "HEAD", "--short", quiet=True, capture=True)
    except subprocess.CalledProcessError:
        raise RuntimeError("Current branch cannot be determined")
    if not branch:
        raise RuntimeError("Current branch cannot be determined")
    return branch


def fetch_all() -> None:
    """
    Update the remote-tracking branches of every remote.
    """
    git("fetch", "--all", quiet=not _verbose)


def get_remote_branches() -> list[str]:
    """
    Retrieve the remote-tracking branches of the git repository.

    Symbolic refs such as "origin/HEAD" are skipped.

    Returns:
        A list of branch names prefixed by their remote, e.g. "origin/develop".
        The list is empty if git fails.
    """
    try:
        output = git("branch", "-r", "--format=%(refname:short)", capture=True)
    except subprocess.CalledProcessError:
        return []
    branches = []
    for line in output.splitlines():
        branch = line.strip()
        if not branch or branch.endswith("/HEAD") or "/" not in branch:
            continue
        branches.append(branch)
    return branches


def get_remote_url(remote: str) -> str:
    """
    Return the url configured for a git remote.
    """
    return git("remote", "get-url", remote, capture=True)
