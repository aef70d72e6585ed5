"""CI git diff - fetch and filter the change-set for the current environment."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

__version__ = "1.0.0"


class Provider(Enum):
    """Continuous-integration provider running the process."""

    NONE = "none"
    GENERIC_CI = "generic"
    GITHUB_ACTIONS = "github-actions"
    GITLAB_CI = "gitlab-ci"
    TRAVIS = "travis"
    CIRCLECI = "circleci"


class EventKind(Enum):
    """Kind of CI event that triggered the run."""

    UNKNOWN = "unknown"
    PULL_REQUEST = "pull_request"
    PUSH = "push"


class StrategyName(Enum):
    """Named diff acquisition strategies."""

    PULL_REQUEST_REFS = "pull_request_refs"
    WORKING_TREE = "working_tree"
    PUSH_PREVIOUS_COMMIT = "push_previous_commit"
    HEAD_COMMIT = "head_commit"
    COMMIT_HISTORY = "commit_history"
    SINGLE_COMMIT = "single_commit"
    LAST_TWO_COMMITS = "last_two_commits"


class UnparsablePolicy(Enum):
    """What to do with a diff marker line whose path cannot be parsed."""

    KEEP = "keep"
    REJECT = "reject"


@dataclass(frozen=True)
class ExecutionContext:
    """Snapshot of the environment facts the engine cares about."""

    is_ci: bool = False
    provider: Provider = Provider.NONE
    event_kind: EventKind = EventKind.UNKNOWN
    base_ref: str | None = None
    head_ref: str | None = None
    workspace: str | None = None

    @property
    def is_github_actions(self) -> bool:
        return self.is_ci and self.provider == Provider.GITHUB_ACTIONS


@dataclass(frozen=True)
class RepositoryLocation:
    """Directory believed to hold the repository, plus every path probed."""

    path: str
    candidates: tuple[str, ...] = ()
    found: bool = False


@dataclass(frozen=True)
class StrategyAttempt:
    """One executed strategy and how it went."""

    strategy: StrategyName
    succeeded: bool
    error: str = ""


@dataclass
class DiffResult:
    """Raw diff produced by the acquisition engine."""

    text: str
    source_strategy: StrategyName | None
    succeeded: bool
    error: str | None = None
    failure: "CIGitDiffError | None" = None
    attempts: list[StrategyAttempt] = field(default_factory=list)


@dataclass
class DiffSection:
    """A file-scoped chunk of a diff (or the preamble before the first file)."""

    header: str  # "diff --git a/x b/x" marker line, "" for the preamble
    file_path: str | None = None
    body: list[str] = field(default_factory=list)
    ignored: bool = False

    @property
    def is_preamble(self) -> bool:
        return not self.header.startswith("diff --git")

    @property
    def lines(self) -> list[str]:
        if self.is_preamble:
            return list(self.body)
        return [self.header, *self.body]


@dataclass
class FilteredDiff:
    """Sections of a diff with the ignored ones flagged."""

    sections: list[DiffSection] = field(default_factory=list)

    @property
    def text(self) -> str:
        lines: list[str] = []
        for section in self.sections:
            if not section.ignored:
                lines.extend(section.lines)
        return "\n".join(lines)

    @property
    def ignored_paths(self) -> list[str]:
        return [s.file_path for s in self.sections if s.ignored and s.file_path]

    @property
    def kept_paths(self) -> list[str]:
        return [s.file_path for s in self.sections if not s.ignored and s.file_path]


@dataclass(frozen=True)
class CommitDetails:
    """Commit record returned by the hosting API."""

    sha: str
    data: dict[str, Any] = field(default_factory=dict)


class CIGitDiffError(Exception):
    """Base error for this package."""


class NoRepository(CIGitDiffError):
    """The located directory is not a usable repository."""


class NoCommitHistory(CIGitDiffError):
    """The repository has no commits."""


class DiffFetchFailure(CIGitDiffError):
    """Every strategy for the selected branch failed."""


class CredentialMissing(CIGitDiffError):
    """No API token was configured."""


class RemoteCallFailure(CIGitDiffError):
    """The hosting API call failed."""

    def __init__(self, message: str, *, status_code: int | None = None, url: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class MalformedDiffError(CIGitDiffError):
    """A diff marker line could not be parsed under the reject policy."""


__all__ = [
    "Provider",
    "EventKind",
    "StrategyName",
    "UnparsablePolicy",
    "ExecutionContext",
    "RepositoryLocation",
    "StrategyAttempt",
    "DiffResult",
    "DiffSection",
    "FilteredDiff",
    "CommitDetails",
    "CIGitDiffError",
    "NoRepository",
    "NoCommitHistory",
    "DiffFetchFailure",
    "CredentialMissing",
    "RemoteCallFailure",
    "MalformedDiffError",
]
