"""Split a git diff into per-file sections and drop ignored files."""

import re
from collections.abc import Iterable
from dataclasses import dataclass

from . import DiffSection, FilteredDiff, MalformedDiffError, UnparsablePolicy

DIFF_MARKER = "diff --git"
DIFF_MARKER_PATTERN = re.compile(r"diff --git a/(.*) b/(.*)")

# Files the original release pipeline never wants in the diff
DEFAULT_IGNORED_FILES = (
    ".github/workflows/CD",
    ".gitignore",
    "extract_tags.js",
    "package-lock.json",
    "package.json",
    "sample_test.js",
)


@dataclass(frozen=True)
class IgnoreRuleSet:
    """Path rules whose matching diff sections are dropped."""

    rules: frozenset[str] = frozenset()

    @classmethod
    def from_patterns(cls, patterns: Iterable[str]) -> "IgnoreRuleSet":
        return cls(frozenset(p.strip() for p in patterns if p and p.strip()))

    def matches(self, path: str) -> bool:
        """
        Check a path against every rule.

        A rule matches the path itself, any file of that name in a
        subdirectory, and anything below a directory of that name.
        """
        return any(
            path == rule or path.endswith(f"/{rule}") or path.startswith(f"{rule}/")
            for rule in self.rules
        )

    def __len__(self) -> int:
        return len(self.rules)


def parse_marker_path(line: str) -> str | None:
    """Return the "after" (b/) path of a diff marker line, or None."""
    match = DIFF_MARKER_PATTERN.match(line)
    if match is None:
        return None
    return match.group(2)


def split_sections(text: str) -> list[DiffSection]:
    """
    Split diff text into sections, one per "diff --git" marker.

    Lines before the first marker (e.g. the commit header of git show)
    become a preamble section with an empty header.
    """
    sections: list[DiffSection] = []
    current: DiffSection | None = None

    for line in text.split("\n"):
        if line.startswith(DIFF_MARKER):
            current = DiffSection(header=line, file_path=parse_marker_path(line))
            sections.append(current)
        else:
            if current is None:
                current = DiffSection(header="")
                sections.append(current)
            current.body.append(line)

    return sections


def filter_diff(
    text: str,
    rules: IgnoreRuleSet,
    policy: UnparsablePolicy = UnparsablePolicy.KEEP,
) -> FilteredDiff:
    """
    Flag diff sections whose file matches an ignore rule.

    Sections keep their original order. A marker line whose path cannot be
    parsed is kept under the KEEP policy and raises under REJECT.

    Args:
        text: Raw git diff output
        rules: Ignore rules
        policy: Handling of unparsable marker lines

    Returns:
        FilteredDiff; its text property is the diff without ignored sections

    Raises:
        MalformedDiffError: On an unparsable marker with policy REJECT
    """
    sections = split_sections(text)

    for section in sections:
        if section.is_preamble:
            continue
        if section.file_path is None:
            if policy == UnparsablePolicy.REJECT:
                raise MalformedDiffError(f"Cannot parse file path from: {section.header}")
            continue
        section.ignored = rules.matches(section.file_path)

    return FilteredDiff(sections=sections)
