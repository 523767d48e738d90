from __future__ import annotations

import pytest

from cascade.versions import (
    SemanticVersion,
    contains_version,
    extract_versions,
    parse_version,
    resolve_target,
)

PATCH_BRANCHES = ["origin/develop"] + [
    f"origin/release/1.40.{i}" for i in range(11)
]


@pytest.mark.unit
def test_extract_versions_sorted_and_unique() -> None:
    branches = [
        "origin/release/2.0.0",
        "origin/feature/ABC-0001",
        "origin/release/1.10.0",
        "origin/release/1.2.0",
        "origin/hotfix/1.2.0",
        "origin/develop",
    ]

    versions = extract_versions(branches)

    assert versions == [
        SemanticVersion(1, 2, 0),
        SemanticVersion(1, 10, 0),
        SemanticVersion(2, 0, 0),
    ]


@pytest.mark.unit
def test_extract_versions_ignores_non_versions() -> None:
    branches = ["develop", "feature/1.2", "release/v1", "release/1.2.3.4", ""]

    assert extract_versions(branches) == []


@pytest.mark.unit
def test_parse_version_with_suffix() -> None:
    assert parse_version("origin/release/3.1.4-hotfix") == SemanticVersion(3, 1, 4)
    assert parse_version("release/next") is None


@pytest.mark.unit
def test_semantic_version_str() -> None:
    assert str(SemanticVersion(1, 40, 10)) == "1.40.10"


@pytest.mark.unit
@pytest.mark.parametrize(
    "name,version,expected",
    [
        ("release/1.40.10", SemanticVersion(1, 40, 10), True),
        ("release/1.40.10", SemanticVersion(1, 40, 1), False),
        ("release/11.0.0", SemanticVersion(1, 0, 0), False),
        ("origin/release/1.0.0", SemanticVersion(1, 0, 0), True),
        # unrelated paths sharing a version still match
        ("origin/docs/1.0.0", SemanticVersion(1, 0, 0), True),
    ],
)
def test_contains_version(name: str, version: SemanticVersion, expected: bool) -> None:
    assert contains_version(name, version) is expected


@pytest.mark.unit
@pytest.mark.parametrize(
    "branches,current,expected",
    [
        (
            [
                "origin/develop",
                "origin/feature/ABC-0001",
                "origin/release/1.0.0",
                "origin/release/2.0.0",
            ],
            "release/1.0.0",
            "release/2.0.0",
        ),
        (
            [
                "origin/develop",
                "origin/feature/ABC-0001",
                "origin/release/1.0.0",
                "origin/release/1.0.1",
                "origin/release/2.0.0",
            ],
            "release/1.0.0",
            "release/1.0.1",
        ),
        (
            [
                "origin/develop",
                "origin/feature/ABC-0001",
                "origin/release/1.0.0",
                "origin/release/1.1.0",
                "origin/release/2.0.0",
            ],
            "release/1.0.0",
            "release/1.1.0",
        ),
        (
            ["origin/develop", "origin/feature/ABC-0001", "origin/release/1.0.0"],
            "release/1.0.0",
            "develop",
        ),
        (PATCH_BRANCHES, "release/1.40.10", "develop"),
        (
            PATCH_BRANCHES + ["origin/release/1.40.11"],
            "release/1.40.10",
            "release/1.40.11",
        ),
    ],
)
def test_resolve_target(branches: list[str], current: str, expected: str) -> None:
    assert resolve_target(branches, current, "develop") == expected


@pytest.mark.unit
def test_resolve_target_unordered_input() -> None:
    branches = [
        "origin/release/2.0.0",
        "origin/release/1.0.0",
        "origin/release/1.5.0",
    ]

    assert resolve_target(branches, "release/1.0.0", "develop") == "release/1.5.0"
    assert resolve_target(branches, "release/1.5.0", "develop") == "release/2.0.0"
    assert resolve_target(branches, "release/2.0.0", "develop") == "develop"


@pytest.mark.unit
def test_resolve_target_current_without_known_version() -> None:
    branches = ["origin/release/1.0.0", "origin/release/2.0.0"]

    assert resolve_target(branches, "release/3.0.0", "develop") == "develop"
    assert resolve_target(branches, "release/next", "develop") == "develop"


@pytest.mark.unit
def test_resolve_target_no_versions() -> None:
    assert resolve_target([], "release/1.0.0", "main") == "main"


@pytest.mark.unit
def test_resolve_target_other_remote() -> None:
    branches = ["upstream/release/1.0.0", "upstream/release/1.1.0"]

    target = resolve_target(branches, "release/1.0.0", "develop", remote="upstream")

    assert target == "release/1.1.0"


@pytest.mark.unit
def test_resolve_target_first_branch_with_version_wins() -> None:
    branches = [
        "origin/release/1.0.0",
        "origin/hotfix/1.1.0",
        "origin/release/1.1.0",
    ]

    assert resolve_target(branches, "release/1.0.0", "develop") == "hotfix/1.1.0"
