from __future__ import annotations

import os
import subprocess
from abc import abstractmethod
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Union
from urllib.parse import urlparse

import click

try:
    import tomli as tomllib  # noqa: F401
except ImportError:
    import tomllib  # type: ignore[no-redef]

from .github import GithubClient, GithubError
from .gitutils import (
    current_branch,
    fetch_all,
    get_remote_branches,
    get_remote_url,
)
from .versions import resolve_target

TOOL_NAME = "cascade"
ENVVAR_PREFIX = TOOL_NAME.upper()

PULL_REQUEST_TITLE = "sync: {head} to {base}"
PULL_REQUEST_BODY = (
    "sync-branches: New code has just landed in {head}, "
    "so let's bring {base} up to speed!"
)
TIME_OUTPUT = "time"


@dataclass
class Config:
    # substring identifying release branches, e.g. release/1.2.0
    release_branch_type: str = "release"
    # branch that receives changes from the newest release
    develop_branch: str = "develop"
    remote: str = "origin"
    # only look for develop_branch among the release branches
    filter_trunk_lookup: bool = False
    verbose: bool = False


def load_config(path: str | None = None, verbose: bool = False) -> Config:
    """
    Load the configuration from the `tool.cascade` section of a pyproject.toml file.

    If `path` is not given, pyproject.toml in the current directory is used when
    it exists, otherwise the defaults are returned.

    Returns:
        A configuration object
    """
    config = Config(verbose=verbose)
    if path is None:
        path = os.path.join(os.getcwd(), "pyproject.toml")
        if not os.path.isfile(path):
            return config
    elif not os.path.isfile(path):
        raise click.ClickException(f"Config file not found: {path}")

    with open(path, "rb") as f:
        data = tomllib.load(f)

    try:
        settings = data["tool"][TOOL_NAME]
    except KeyError:
        return config

    types = {f.name: f.type for f in fields(Config) if f.name != "verbose"}
    for key, value in settings.items():
        name = key.replace("-", "_")
        try:
            expected = types[name]
        except KeyError:
            raise click.ClickException(
                f"Unknown setting 'tool.{TOOL_NAME}.{key}': {path}"
            )
        # annotations are strings because of `from __future__ import annotations`
        if not isinstance(value, bool if expected == "bool" else str):
            raise click.ClickException(
                f"'tool.{TOOL_NAME}.{key}' must be a {expected}: {path}"
            )
        setattr(config, name, value)
    return config


# Merge results, as reported by the Backend


@dataclass(frozen=True)
class MergeSuccess:
    sha: str


@dataclass(frozen=True)
class MergeConflict:
    reason: str


@dataclass(frozen=True)
class NothingToMerge:
    pass


MergeResult = Union[MergeSuccess, MergeConflict, NothingToMerge]


# Terminal outcomes of a run


@dataclass(frozen=True)
class Merged:
    sha: str

    @property
    def output(self) -> str:
        return self.sha


@dataclass(frozen=True)
class Skipped:
    reason: str

    @property
    def output(self) -> str:
        return ""


@dataclass(frozen=True)
class ExistingPullRequest:
    number: int
    url: str

    @property
    def output(self) -> str:
        return ""


@dataclass(frozen=True)
class PullRequestCreated:
    number: int
    url: str
    created_at: str = field(default="")

    @property
    def output(self) -> str:
        return self.url


MergeOutcome = Union[Merged, Skipped, ExistingPullRequest, PullRequestCreated]


class Runtime:
    """
    Interact with the environment of the current process
    """

    def __init__(self, config: Config):
        self.config = config

    def current_branch(self) -> str:
        """
        Get the current git branch name.

        Returns:
            The name of the current branch.

        Raises:
            ClickException: If the current branch name is not obtainable
        """
        try:
            return current_branch()
        except RuntimeError as err:
            raise click.ClickException(str(err))

    @abstractmethod
    def workspace(self) -> str:
        """
        Return the root of the git repo that commands are run in.
        """

    @abstractmethod
    def repository(self) -> tuple[str, str]:
        """
        Return the owner and name of the remote repository.
        """

    @abstractmethod
    def set_output(self, name: str, value: str) -> None:
        """
        Publish a named output value of the run.
        """


class GithubRuntime(Runtime):
    """
    Used for processes running as a GitHub Actions step.
    """

    def _getenv(self, name: str) -> str:
        value = os.environ.get(name)
        if not value:
            raise click.ClickException(f"{name} not defined")
        return value

    def workspace(self) -> str:
        path = os.path.abspath(self._getenv("GITHUB_WORKSPACE"))
        if self.config.verbose:
            click.echo(f"workspace: {path}", err=True)
        return path

    def repository(self) -> tuple[str, str]:
        owner, _, repo = self._getenv("GITHUB_REPOSITORY").partition("/")
        if not owner or not repo:
            raise click.ClickException(
                "GITHUB_REPOSITORY must have the form 'owner/repo'"
            )
        click.echo(f"owner: {owner} repository: {repo}", err=True)
        return owner, repo

    def set_output(self, name: str, value: str) -> None:
        output_file = os.environ.get("GITHUB_OUTPUT")
        if not output_file:
            click.echo(f"{name}={value}", err=True)
            return
        with open(output_file, "a") as f:
            f.write(f"{name}={value}\n")


class LocalRuntime(Runtime):
    """
    Used for processes running in local git repos, not in CI.
    """

    def workspace(self) -> str:
        return os.getcwd()

    def repository(self) -> tuple[str, str]:
        try:
            url = get_remote_url(self.config.remote)
        except subprocess.CalledProcessError:
            raise click.ClickException(
                f"Could not read the url of remote '{self.config.remote}'"
            )
        return parse_repository(url)

    def set_output(self, name: str, value: str) -> None:
        click.echo(f"{name} = {value}", err=True)


def parse_repository(url: str) -> tuple[str, str]:
    """
    Extract (owner, repo) from a git remote url.

    Handles https urls as well as scp-style ssh urls, e.g.
    "git@github.com:owner/repo.git".
    """
    if "://" in url:
        path = urlparse(url).path
    else:
        path = url.split(":", 1)[-1]
    path = path.strip("/")
    if path.endswith(".git"):
        path = path[:-4]
    parts = path.split("/")
    if len(parts) < 2 or not parts[-2] or not parts[-1]:
        raise click.ClickException(f"Could not determine repository from url: {url}")
    return parts[-2], parts[-1]


class Backend:
    """
    Interact with the remote hosting service.
    """

    @abstractmethod
    def merge(self, head: str, base: str) -> MergeResult:
        """
        Merge `head` into `base` on the server.

        Rejected merges are reported as MergeConflict, never raised.
        """

    @abstractmethod
    def find_pull_request(self, head: str, base: str) -> tuple[int, str] | None:
        """
        Return the (number, url) of an open pull request from `head` to `base`.
        """

    @abstractmethod
    def has_content_difference(self, base: str, head: str) -> bool:
        """
        Return whether `head` changes any files relative to `base`.
        """

    @abstractmethod
    def create_pull_request(
        self, head: str, base: str, title: str, body: str
    ) -> tuple[int, str]:
        """
        Open a pull request and return its (number, url).
        """


class GithubBackend(Backend):
    """GitHub-specific behavior"""

    def __init__(self, client: GithubClient):
        self.client = client

    def merge(self, head: str, base: str) -> MergeResult:
        try:
            sha = self.client.merge(base=base, head=head)
        except GithubError as err:
            return MergeConflict(str(err))
        if sha is None:
            return NothingToMerge()
        return MergeSuccess(sha)

    def find_pull_request(self, head: str, base: str) -> tuple[int, str] | None:
        for pull in self.client.list_pull_requests(head=head, base=base):
            if pull.head_ref == head and pull.base_ref == base:
                return pull.number, pull.url
        return None

    def has_content_difference(self, base: str, head: str) -> bool:
        return len(self.client.compare_commits(base=base, head=head)) > 0

    def create_pull_request(
        self, head: str, base: str, title: str, body: str
    ) -> tuple[int, str]:
        pull = self.client.create_pull_request(
            head=head, base=base, title=title, body=body, draft=False
        )
        return pull.number, pull.url


def trunk_exists(branches: list[str], develop_branch: str) -> bool:
    return any(develop_branch in branch for branch in branches)


def get_target_branch(config: Config, branch: str) -> str | None:
    """
    List the remote branches and resolve the merge target for `branch`.

    Returns:
        The target branch, or None if the develop branch cannot be found.
    """
    all_branches = get_remote_branches()
    release_branches = [b for b in all_branches if config.release_branch_type in b]
    if config.verbose:
        click.echo(f"Release branches: {', '.join(release_branches)}", err=True)

    lookup = release_branches if config.filter_trunk_lookup else all_branches
    if not trunk_exists(lookup, config.develop_branch):
        return None

    return resolve_target(
        release_branches, branch, config.develop_branch, remote=config.remote
    )


def sync_release_branch(
    config: Config, backend: Backend, runtime: Runtime
) -> MergeOutcome:
    """
    Merge the current release branch into the next release branch, or into the
    develop branch if it is the newest release.

    If the merge is rejected, fall back to reporting an existing pull request, or
    to opening a new one when the branches differ.
    """
    branch = runtime.current_branch()

    if config.release_branch_type not in branch:
        msg = f"The branch {branch} is not a {config.release_branch_type} branch type"
        click.echo(msg, err=True)
        return Skipped(msg)

    fetch_all()

    target = get_target_branch(config, branch)
    if target is None:
        msg = f"Missing {config.develop_branch} branch"
        click.echo(msg, err=True)
        return Skipped(msg)

    click.echo(f"Merge branch: {branch} to: {target}", err=True)
    result = backend.merge(head=branch, base=target)

    if isinstance(result, MergeSuccess):
        click.echo(f"Commit {result.sha}", err=True)
        return Merged(result.sha)

    if isinstance(result, NothingToMerge):
        msg = f"{target} already contains {branch}"
        click.echo(msg, err=True)
        return Skipped(msg)

    click.echo(
        f"Merge branch: {branch} to: {target} failed: {result.reason}", err=True
    )

    existing = backend.find_pull_request(head=branch, base=target)
    if existing is not None:
        number, url = existing
        click.echo(
            f"There is already a pull request ({number}) to {target} from {branch}. "
            f"You can view it here: {url}",
            err=True,
        )
        return ExistingPullRequest(number, url)

    if not backend.has_content_difference(base=target, head=branch):
        msg = f"There is no content difference between {branch} and {target}."
        click.echo(msg, err=True)
        return Skipped(msg)

    number, url = backend.create_pull_request(
        head=branch,
        base=target,
        title=PULL_REQUEST_TITLE.format(head=branch, base=target),
        body=PULL_REQUEST_BODY.format(head=branch, base=target),
    )
    created_at = datetime.now().astimezone().strftime("%H:%M:%S GMT%z (%Z)")
    runtime.set_output(TIME_OUTPUT, created_at)
    click.echo(
        f"Pull request ({number}) successful! You can view it here: {url}", err=True
    )
    return PullRequestCreated(number, url, created_at)
