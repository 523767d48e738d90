from __future__ import annotations
import click
import os
import subprocess

import httpx

from .core import (
    load_config,
    get_target_branch,
    sync_release_branch,
    Config,
    Runtime,
    GithubBackend,
    GithubRuntime,
    LocalRuntime,
    ENVVAR_PREFIX,
)
from .github import GithubClient, GithubError
from .gitutils import set_git_cwd, set_git_verbose

CONFIG: Config
CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def set_config(config: Config) -> Config:
    """
    Set the global configuration object.
    """
    global CONFIG
    CONFIG = config
    set_git_verbose(config.verbose)
    return config


def get_runtime() -> Runtime:
    """
    Return a Runtime corresponding to where the current python process is *running*
    """
    if os.environ.get("GITHUB_ACTIONS", "false") == "true":
        return GithubRuntime(CONFIG)
    else:
        return LocalRuntime(CONFIG)


def _override(config: Config, **options: str | bool | None) -> None:
    """
    Apply command line options that were explicitly provided on top of the config.
    """
    for name, value in options.items():
        if value is not None:
            setattr(config, name, value)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option("--config", "-c", "config_path", metavar="CONFIG", type=str)
@click.option("--verbose", "-v", is_flag=True, default=False)
def cli(config_path: str | None, verbose: bool) -> None:
    set_config(load_config(config_path, verbose))


@cli.command()
@click.option(
    "--token",
    required=True,
    metavar="TOKEN",
    envvar=["INPUT_GITHUB_TOKEN", "GITHUB_TOKEN"],
    help="Token used to authenticate with the GitHub API",
)
@click.option(
    "--release-branch-type",
    metavar="TEXT",
    envvar="INPUT_RELEASE_BRANCH_TYPE",
    help="Text that identifies release branches. [default: release]",
)
@click.option(
    "--develop-branch",
    metavar="BRANCH",
    envvar="INPUT_DEVELOP_BRANCH",
    help="Branch that receives changes from the newest release. [default: develop]",
)
@click.option(
    "--remote",
    metavar="REMOTE",
    help="The name of the git remote that branches are listed from. [default: origin]",
)
@click.option(
    "--filter-trunk-lookup/--no-filter-trunk-lookup",
    default=None,
    help="Only look for the develop branch among the release branches.",
)
def merge(
    token: str,
    release_branch_type: str | None,
    develop_branch: str | None,
    remote: str | None,
    filter_trunk_lookup: bool | None,
) -> None:
    """
    Merge the current release branch into the next release branch.

    The newest release branch is merged into the develop branch. If the merge
    is rejected, a pull request is opened instead.
    """
    _override(
        CONFIG,
        release_branch_type=release_branch_type or None,
        develop_branch=develop_branch or None,
        remote=remote,
        filter_trunk_lookup=filter_trunk_lookup,
    )
    runtime = get_runtime()
    set_git_cwd(runtime.workspace())
    owner, repo = runtime.repository()

    with GithubClient(token, owner, repo) as client:
        try:
            outcome = sync_release_branch(CONFIG, GithubBackend(client), runtime)
        except GithubError as err:
            raise click.ClickException(f"GitHub request failed: {err}")
        except httpx.RequestError as err:
            raise click.ClickException(f"GitHub request failed: {err}")
        except subprocess.CalledProcessError as err:
            raise click.ClickException(str(err))

    click.echo(outcome.output)


@cli.command()
@click.option(
    "--branch",
    default=None,
    help="The release branch to find a target for. Defaults to the current branch.",
)
def target(branch: str | None) -> None:
    """
    Print the branch that a release branch would be merged into.

    Remote branches are not fetched first.
    """
    runtime = get_runtime()
    set_git_cwd(runtime.workspace())
    if branch is None:
        branch = runtime.current_branch()

    target_branch = get_target_branch(CONFIG, branch)
    if target_branch is None:
        raise click.ClickException(f"Missing {CONFIG.develop_branch} branch")
    click.echo(target_branch)


def main() -> None:
    import shutil

    return cli(
        auto_envvar_prefix=ENVVAR_PREFIX,
        max_content_width=shutil.get_terminal_size().columns,
    )
