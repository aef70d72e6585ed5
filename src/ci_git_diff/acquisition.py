"""
Diff acquisition engine.

Picks the diff strategy that fits the execution context and runs it,
following fallback pointers when a strategy fails:

    pull_request_refs     origin/<base> vs origin/<head>   -> working_tree
    push_previous_commit  HEAD~1 vs HEAD (after unshallow) -> head_commit
    commit_history        depends on how many commits exist (always applies),
                          reported as single_commit or last_two_commits

working_tree and head_commit are only reached as fallbacks. The first row
whose guard matches is selected; only when its whole fallback chain fails
does acquisition report succeeded=False.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from . import (
    CIGitDiffError,
    DiffFetchFailure,
    DiffResult,
    EventKind,
    ExecutionContext,
    NoCommitHistory,
    NoRepository,
    RepositoryLocation,
    StrategyAttempt,
    StrategyName,
)
from .git_utils import GitBackend, GitCommandError

Guard = Callable[[ExecutionContext], bool]
# A runner may name a more specific producer than its row by returning (name, text)
Runner = Callable[[GitBackend, ExecutionContext], Awaitable[str | tuple[StrategyName, str]]]
Prepare = Callable[[GitBackend], Awaitable[None]]


@dataclass(frozen=True)
class Strategy:
    """One acquisition attempt with its guard and fallback."""

    name: StrategyName
    run: Runner
    guard: Guard | None = None  # None: reachable only as a fallback
    fallback: StrategyName | None = None
    prepare: Prepare | None = None  # best-effort, failures ignored


def is_pull_request(context: ExecutionContext) -> bool:
    return context.is_github_actions and context.event_kind == EventKind.PULL_REQUEST


def is_push(context: ExecutionContext) -> bool:
    return context.is_github_actions and context.event_kind != EventKind.PULL_REQUEST


def always(context: ExecutionContext) -> bool:
    return True


async def diff_pull_request_refs(backend: GitBackend, context: ExecutionContext) -> str:
    if not context.base_ref or not context.head_ref:
        raise DiffFetchFailure("pull request base/head refs are not set")
    return await backend.diff(f"origin/{context.base_ref}", f"origin/{context.head_ref}")


async def diff_working_tree(backend: GitBackend, context: ExecutionContext) -> str:
    return await backend.diff()


async def diff_previous_commit(backend: GitBackend, context: ExecutionContext) -> str:
    return await backend.diff("HEAD~1", "HEAD")


async def show_head_commit(backend: GitBackend, context: ExecutionContext) -> str:
    return await backend.show("HEAD")


async def diff_from_history(backend: GitBackend, context: ExecutionContext) -> tuple[StrategyName, str]:
    """Diff chosen by history depth: none, a single commit, or the last two."""
    try:
        commits = await backend.recent_commits(2)
    except GitCommandError:
        # git log fails outright on a repository with no commits yet
        commits = []

    if not commits:
        raise NoCommitHistory("No commit history found. Is this a git repository with commits?")
    if len(commits) == 1:
        return StrategyName.SINGLE_COMMIT, await backend.show(commits[0])
    return StrategyName.LAST_TWO_COMMITS, await backend.diff("HEAD~1", "HEAD")


async def unshallow(backend: GitBackend) -> None:
    await backend.unshallow()


DEFAULT_STRATEGIES: list[Strategy] = [
    Strategy(
        name=StrategyName.PULL_REQUEST_REFS,
        run=diff_pull_request_refs,
        guard=is_pull_request,
        fallback=StrategyName.WORKING_TREE,
    ),
    Strategy(
        name=StrategyName.PUSH_PREVIOUS_COMMIT,
        run=diff_previous_commit,
        guard=is_push,
        fallback=StrategyName.HEAD_COMMIT,
        prepare=unshallow,
    ),
    Strategy(
        name=StrategyName.COMMIT_HISTORY,
        run=diff_from_history,
        guard=always,
    ),
    Strategy(name=StrategyName.WORKING_TREE, run=diff_working_tree),
    Strategy(name=StrategyName.HEAD_COMMIT, run=show_head_commit),
]


def select_strategy(context: ExecutionContext, strategies: list[Strategy]) -> Strategy | None:
    """First strategy whose guard accepts the context."""
    for strategy in strategies:
        if strategy.guard is not None and strategy.guard(context):
            return strategy
    return None


def fallback_chain(first: Strategy, strategies: list[Strategy]) -> list[Strategy]:
    """The selected strategy followed by its fallbacks, in order."""
    by_name = {s.name: s for s in strategies}
    chain = [first]
    seen = {first.name}
    current = first
    while current.fallback is not None:
        if current.fallback in seen:
            raise ValueError(f"Fallback cycle at {current.fallback.value}")
        if current.fallback not in by_name:
            raise ValueError(f"Unknown fallback strategy: {current.fallback.value}")
        current = by_name[current.fallback]
        chain.append(current)
        seen.add(current.name)
    return chain


async def acquire(
    location: RepositoryLocation,
    context: ExecutionContext,
    backend: GitBackend | None = None,
    strategies: list[Strategy] | None = None,
) -> DiffResult:
    """
    Acquire the diff for this environment.

    Strategy failures never propagate: each failure moves on to the
    fallback, and exhausting the chain yields succeeded=False with the
    last error.

    Args:
        location: Repository to run git in
        context: Classified execution context
        backend: Git backend (default: GitBackend at location.path)
        strategies: Strategy table (default: DEFAULT_STRATEGIES)

    Returns:
        DiffResult with text, producing strategy and every attempt made
    """
    backend = backend or GitBackend(cwd=location.path)
    strategies = strategies if strategies is not None else DEFAULT_STRATEGIES

    selected = select_strategy(context, strategies)
    if selected is None:
        return DiffResult(
            text="",
            source_strategy=None,
            succeeded=False,
            error="No diff strategy applies to this environment",
            failure=DiffFetchFailure("No diff strategy applies to this environment"),
        )

    attempts: list[StrategyAttempt] = []
    last_failure: Exception | None = None

    for strategy in fallback_chain(selected, strategies):
        if strategy.prepare is not None:
            try:
                await strategy.prepare(backend)
            except GitCommandError:
                # A complete repository rejects --unshallow; that is fine
                pass

        try:
            outcome = await strategy.run(backend, context)
        except (GitCommandError, CIGitDiffError) as e:
            last_failure = e
            attempts.append(StrategyAttempt(strategy.name, False, str(e)))
            continue

        produced_by, text = outcome if isinstance(outcome, tuple) else (strategy.name, outcome)
        attempts.append(StrategyAttempt(produced_by, True))
        return DiffResult(
            text=text,
            source_strategy=produced_by,
            succeeded=True,
            attempts=attempts,
        )

    if isinstance(last_failure, NoCommitHistory):
        failure: CIGitDiffError = last_failure
    elif not location.found:
        # the locator fell back to the working directory
        failure = NoRepository(f"No git repository found at {location.path}: {last_failure}")
    else:
        failure = DiffFetchFailure(f"All diff strategies failed: {last_failure}")

    return DiffResult(
        text="",
        source_strategy=None,
        succeeded=False,
        error=str(failure),
        failure=failure,
        attempts=attempts,
    )
