"""Find the root of the git checkout to work in."""

import os
from pathlib import Path

from . import ExecutionContext, RepositoryLocation

GIT_MARKER = ".git"

# How far up from the working directory to look
SEARCH_DEPTH = 2


def candidate_paths(cwd: str) -> list[str]:
    """Current directory, parent, grandparent."""
    base = Path(cwd).resolve()
    paths = [base]
    for _ in range(SEARCH_DEPTH):
        paths.append(paths[-1].parent)
    return [str(p) for p in paths]


def locate_repository(context: ExecutionContext, cwd: str | None = None) -> RepositoryLocation:
    """
    Locate the git repository root.

    In CI the checkout is the working directory, so it is returned as-is.
    Locally the current directory and up to two parents are probed for a
    .git entry. Never raises: if nothing matches, the resolved working
    directory (the first candidate) is returned with found=False.

    Args:
        context: Classified execution context
        cwd: Working directory (default: os.getcwd())

    Returns:
        RepositoryLocation
    """
    cwd = cwd or os.getcwd()

    if context.is_ci:
        return RepositoryLocation(path=cwd, candidates=(cwd,), found=True)

    candidates = candidate_paths(cwd)
    for path in candidates:
        # .git is a file in worktrees and submodules
        if os.path.exists(os.path.join(path, GIT_MARKER)):
            return RepositoryLocation(path=path, candidates=tuple(candidates), found=True)

    return RepositoryLocation(path=candidates[0], candidates=tuple(candidates), found=False)
