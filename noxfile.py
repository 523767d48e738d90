from __future__ import annotations

import glob

import nox
import os
import shutil


HERE = os.path.dirname(__file__)


@nox.session(reuse_venv=True)
def ruff_lint(session: nox.Session) -> None:
    """
    Lint the project's codebase.

    Args:
        session: The Nox session context.
    """
    session.install("ruff==0.5.4")
    session.run("ruff", "check", "--fix", *session.posargs)


@nox.session(reuse_venv=True)
def ruff_format(session: nox.Session) -> None:
    """
    Format the project's codebase.

    Args:
        session: The Nox session context.
    """
    session.install("ruff==0.5.4")
    session.run("ruff", "format", *session.posargs)


@nox.session(reuse_venv=True)
def type_hints(session: nox.Session) -> None:
    """
    Check type hints in the project's codebase.

    Args:
        session: The Nox session context.
    """
    session.install("mypy==1.9.0")
    session.install("-e", ".")
    session.run("mypy", *session.posargs)


@nox.session(reuse_venv=True)
def unit_tests(session: nox.Session) -> None:
    """
    Run the project's unit tests.

    These tests do not talk to GitHub or modify a real git repo: git commands
    and HTTP requests are mocked.

    Args:
        session: The Nox session context.
    """
    session.install("-e", ".[test]")

    # Default arguments for pytest
    default_args = ["-v", "-m", "unit"]

    # Combine default arguments with any additional args provided
    pytest_args = default_args + list(session.posargs)

    session.run("pytest", *pytest_args)


@nox.session(tags=["ci"], reuse_venv=True)
def merge(session: nox.Session) -> None:
    """
    Merge the current release branch into the next release or develop branch.

    Args:
        session: The Nox session context.
    """
    if "CI" in os.environ:
        session.install("-e", ".")
    else:
        session.install(".")
    session.run("python", "-m", "cascade", "merge", *session.posargs)


@nox.session
def build(session: nox.Session) -> None:
    shutil.rmtree(os.path.join(HERE, "dist"), ignore_errors=True)
    session.run(
        "uvx", "--from", "build", "pyproject-build", "--installer", "uv", external=True
    )


@nox.session
def publish(session: nox.Session) -> None:
    whl = sorted(glob.glob("./dist/git_cascade-*-py3-none-any.whl"))[0]
    print(whl)
    session.run("uvx", "twine", "upload", whl, external=True)
