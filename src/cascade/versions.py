from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Pattern

from .gitutils import strip_remote

# a dotted triple that is not part of a longer dotted number
VERSION_REGEX = re.compile(r"(?<![\d.])(\d+)\.(\d+)\.(\d+)(?!\.?\d)")


@dataclass(frozen=True, order=True)
class SemanticVersion:
    """A (major, minor, patch) ordering key extracted from a branch name"""

    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def pattern(self) -> Pattern:
        """
        Return a regex matching this version with the same boundaries used for
        extraction.
        """
        return re.compile(r"(?<![\d.])" + re.escape(str(self)) + r"(?!\.?\d)")


def parse_version(name: str) -> SemanticVersion | None:
    """
    Return the first semantic version found in a branch name, if any.
    """
    match = VERSION_REGEX.search(name)
    if match is None:
        return None
    major, minor, patch = match.groups()
    return SemanticVersion(int(major), int(minor), int(patch))


def contains_version(name: str, version: SemanticVersion) -> bool:
    """
    Return whether the canonical text of `version` appears in `name`.

    This is a containment test, not a structural parse: any path segment that
    carries the version counts, but `release/1.40.10` does not contain `1.40.1`.
    """
    return version.pattern().search(name) is not None


def extract_versions(branch_names: Iterable[str]) -> list[SemanticVersion]:
    """
    Return the semantic versions encoded in the given branch names.

    Names without a version are ignored.

    Returns:
        unique versions, in ascending order
    """
    versions = set()
    for name in branch_names:
        version = parse_version(name)
        if version is not None:
            versions.add(version)
    return sorted(versions)


def resolve_target(
    branch_names: list[str],
    current_branch: str,
    trunk_branch: str,
    remote: str | None = "origin",
) -> str:
    """
    Determine the branch that `current_branch` should be merged into.

    Changes flow from each release into the adjacent newer release, and from
    the newest release into the trunk branch.  Adjacency is determined by
    position in the sorted list of known versions, so gaps are skipped.

    Args:
        branch_names: candidate branch names, optionally prefixed by `remote`
        current_branch: the branch which received the commit
        trunk_branch: fallback target when there is no newer release
        remote: remote alias stripped from the returned branch name

    Returns:
        The name of the target branch, without a remote prefix.
    """
    versions = extract_versions(branch_names)

    index = None
    for i, version in enumerate(versions):
        if contains_version(current_branch, version):
            index = i
            break

    if index is None:
        # the current branch does not carry a known version
        return trunk_branch

    if index + 1 >= len(versions):
        return trunk_branch

    next_version = versions[index + 1]
    for name in branch_names:
        if contains_version(name, next_version):
            return strip_remote(remote, name)

    # unreachable: every extracted version comes from one of the names
    return trunk_branch
