"""Tests for repository location."""

from ci_git_diff import ExecutionContext
from ci_git_diff.locator import candidate_paths, locate_repository

LOCAL = ExecutionContext()
CI = ExecutionContext(is_ci=True)


def test_ci_returns_cwd_unconditionally(tmp_path):
    location = locate_repository(CI, cwd=str(tmp_path))
    assert location.path == str(tmp_path)
    assert location.found is True


def test_finds_git_in_cwd(tmp_path):
    (tmp_path / ".git").mkdir()
    location = locate_repository(LOCAL, cwd=str(tmp_path))
    assert location.path == str(tmp_path.resolve())
    assert location.found is True


def test_finds_git_in_parent(tmp_path):
    (tmp_path / ".git").mkdir()
    sub = tmp_path / "sub"
    sub.mkdir()
    location = locate_repository(LOCAL, cwd=str(sub))
    assert location.path == str(tmp_path.resolve())


def test_finds_git_in_grandparent(tmp_path):
    (tmp_path / ".git").mkdir()
    deep = tmp_path / "a" / "b"
    deep.mkdir(parents=True)
    location = locate_repository(LOCAL, cwd=str(deep))
    assert location.path == str(tmp_path.resolve())


def test_git_file_counts(tmp_path):
    # worktrees have a .git file instead of a directory
    (tmp_path / ".git").write_text("gitdir: /elsewhere\n")
    assert locate_repository(LOCAL, cwd=str(tmp_path)).found is True


def test_nearest_match_wins(tmp_path):
    (tmp_path / ".git").mkdir()
    sub = tmp_path / "sub"
    (sub / ".git").mkdir(parents=True)
    assert locate_repository(LOCAL, cwd=str(sub)).path == str(sub.resolve())


def test_not_found_defaults_to_cwd(tmp_path):
    deep = tmp_path / "a" / "b" / "c"
    deep.mkdir(parents=True)
    location = locate_repository(LOCAL, cwd=str(deep))
    assert location.path == str(deep.resolve())
    assert location.found is False
    assert len(location.candidates) == 3


def test_candidate_order(tmp_path):
    deep = tmp_path / "a" / "b"
    deep.mkdir(parents=True)
    resolved = deep.resolve()
    assert candidate_paths(str(deep)) == [
        str(resolved),
        str(resolved.parent),
        str(resolved.parent.parent),
    ]


def test_not_found_path_matches_first_candidate(tmp_path, monkeypatch):
    deep = tmp_path / "a" / "b" / "c"
    deep.mkdir(parents=True)
    link = tmp_path / "link"
    link.symlink_to(deep)
    monkeypatch.chdir(link)
    location = locate_repository(LOCAL, cwd=".")
    assert location.found is False
    assert location.path == location.candidates[0]
    assert location.path == str(deep.resolve())
