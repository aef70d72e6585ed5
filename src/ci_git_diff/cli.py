"""Command-line interface for fetching CI git diffs."""

import asyncio
import json
import os
import sys

import click

from . import (
    CredentialMissing,
    ExecutionContext,
    RemoteCallFailure,
    RepositoryLocation,
    UnparsablePolicy,
    __version__,
)
from .acquisition import acquire
from .config import Settings, load_settings
from .context import classify_context
from .diff_filter import IgnoreRuleSet, filter_diff
from .git_utils import GitBackend
from .github import fetch_commit_details
from .locator import locate_repository
from .output import publish_commit_details, publish_diff, write_commit_details, write_diff


def run_diff(
    settings: Settings,
    context: ExecutionContext,
    repo: str | None,
    ignore: tuple[str, ...],
    output: str | None,
    verbose: bool,
    strict: bool,
) -> bool:
    """Acquire, filter and emit the diff. Returns False if no diff could be acquired."""
    if repo:
        location = RepositoryLocation(path=os.path.abspath(repo), candidates=(repo,), found=True)
    else:
        location = locate_repository(context)
        if location.found:
            click.echo(f"Using git repository at: {location.path}", err=True)
        else:
            click.echo(f"Warning: No git repository found, using current directory: {location.path}", err=True)

    rules = IgnoreRuleSet.from_patterns([*settings.ignore_rules, *ignore])
    if rules:
        click.echo(f"Ignoring files: {', '.join(sorted(rules.rules))}", err=True)

    backend = GitBackend(cwd=location.path, timeout=settings.git_timeout)
    result = asyncio.run(acquire(location, context, backend=backend))

    for attempt in result.attempts:
        if not attempt.succeeded:
            click.echo(f"Warning: {attempt.strategy.value} failed: {attempt.error}", err=True)

    if not result.succeeded:
        click.echo(f"Error fetching git diff: {result.error}", err=True)
        click.echo("Try running from within a git repository with commit history.", err=True)
        return False

    click.echo(f"Git diff obtained ({result.source_strategy.value})", err=True)

    policy = UnparsablePolicy.REJECT if strict else settings.unparsable_policy
    filtered = filter_diff(result.text, rules, policy)
    for path in filtered.ignored_paths:
        click.echo(f"Ignoring changes in: {path}", err=True)

    diff_text = filtered.text
    if verbose:
        click.echo(diff_text)

    if output:
        write_diff(diff_text, output)
        click.echo(f"Diff written to {output}", err=True)

    if context.is_ci and diff_text:
        path, wrote_outputs = publish_diff(diff_text, context.workspace)
        click.echo(f"Diff output written to {path}", err=True)
        if wrote_outputs:
            click.echo("Set GitHub Actions outputs: diff_found, diff_output_path", err=True)

    return True


def run_commit(settings: Settings, context: ExecutionContext, output: str | None, verbose: bool) -> bool:
    """Fetch and emit commit details. Returns False if the fetch failed."""
    click.echo(
        f"Repository: {settings.repo_owner}/{settings.repo_name} ({settings.branch})",
        err=True,
    )
    try:
        details = asyncio.run(
            fetch_commit_details(
                settings.repo_owner,
                settings.repo_name,
                settings.branch,
                settings.github_token,
                api_url=settings.api_url,
                timeout=settings.http_timeout,
            )
        )
    except (CredentialMissing, RemoteCallFailure) as e:
        click.echo(f"Error fetching commit details: {e}", err=True)
        return False

    click.echo(f"Commit: {details.sha}", err=True)
    if verbose:
        click.echo(json.dumps(details.data, indent=2))

    if output:
        write_commit_details(details, output)
        click.echo(f"Commit details written to {output}", err=True)

    if context.is_ci:
        path, wrote_outputs = publish_commit_details(details, context.workspace)
        click.echo(f"Commit details written to {path}", err=True)
        if wrote_outputs:
            click.echo("Set GitHub Actions outputs: commit_sha, commit_details_path", err=True)

    return True


@click.command()
@click.version_option(version=__version__)
@click.option("--diff", "-d", "diff_mode", is_flag=True, help="Fetch the git diff")
@click.option("--commit", "-c", "commit_mode", is_flag=True, help="Fetch commit details")
@click.option("--verbose", "-v", is_flag=True, help="Print the filtered diff or commit details")
@click.option(
    "--ignore",
    "-i",
    multiple=True,
    help="Additional path to drop from the diff (repeatable)",
)
@click.option(
    "--repo",
    "-r",
    type=click.Path(exists=True, file_okay=False, dir_okay=True),
    default=None,
    help="Repository directory (default: detect from current directory)",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False),
    default=None,
    help="Also write the result to this file",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Fail on diff headers whose file path cannot be parsed",
)
@click.option(
    "--fail-on-error",
    is_flag=True,
    default=False,
    help="Exit 1 when no diff or commit details could be fetched",
)
@click.pass_context
def cli(ctx, diff_mode, commit_mode, verbose, ignore, repo, output, strict, fail_on_error):
    """
    Fetch the git diff (or latest commit details) for the current environment.

    Works on a developer checkout or under CI (GitHub Actions, GitLab CI,
    Travis, CircleCI). In CI the result is also written to the workspace
    and, on GitHub Actions, exposed as step outputs.
    """
    if diff_mode and commit_mode:
        raise click.UsageError("--diff and --commit are mutually exclusive")

    if not diff_mode and not commit_mode:
        click.echo("No options provided. Use -d for diff or -c for commit details.", err=True)
        click.echo(ctx.get_help())
        return

    context = classify_context(os.environ)

    try:
        settings = load_settings()
        # Reclassify: load_settings may have pulled CI variables from .env
        context = classify_context(os.environ)
        click.echo(f"Running in {'CI' if context.is_ci else 'local'} environment", err=True)

        if diff_mode:
            ok = run_diff(settings, context, repo, ignore, output, verbose, strict)
        else:
            ok = run_commit(settings, context, output, verbose)
    except Exception as e:
        click.echo(f"Error during execution: {e}", err=True)
        if context.is_ci:
            sys.exit(1)
        return

    if not ok and fail_on_error:
        sys.exit(1)

    click.echo("Done.", err=True)


if __name__ == "__main__":
    cli()
