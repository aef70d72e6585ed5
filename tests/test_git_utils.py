"""Tests for the git backend against real temporary repositories."""

import shutil
import subprocess

import pytest

from ci_git_diff import ExecutionContext, RepositoryLocation, StrategyName
from ci_git_diff.acquisition import acquire
from ci_git_diff.diff_filter import IgnoreRuleSet, filter_diff
from ci_git_diff.git_utils import GitBackend, GitCommandError, run_git

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def git(repo, *args):
    subprocess.run(["git", *args], cwd=repo, check=True, capture_output=True)


def commit_file(repo, name, content, message):
    path = repo / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    git(repo, "add", name)
    git(repo, "commit", "-m", message)


@pytest.fixture
def empty_repo(tmp_path):
    git(tmp_path, "init", "-q")
    git(tmp_path, "config", "user.email", "dev@example.com")
    git(tmp_path, "config", "user.name", "Dev")
    git(tmp_path, "config", "commit.gpgsign", "false")
    return tmp_path


@pytest.fixture
def one_commit_repo(empty_repo):
    commit_file(empty_repo, "app.py", "print('one')\n", "first")
    return empty_repo


@pytest.fixture
def two_commit_repo(one_commit_repo):
    commit_file(one_commit_repo, "app.py", "print('two')\n", "second")
    commit_file(one_commit_repo, "secrets.env", "TOKEN=x\n", "third")
    return one_commit_repo


def location(repo):
    return RepositoryLocation(path=str(repo), candidates=(str(repo),), found=True)


class TestRunGit:
    @pytest.mark.asyncio
    async def test_success(self, one_commit_repo):
        output = await run_git(["rev-parse", "--is-inside-work-tree"], cwd=str(one_commit_repo))
        assert output.strip() == "true"

    @pytest.mark.asyncio
    async def test_failure_raises(self, one_commit_repo):
        with pytest.raises(GitCommandError) as exc_info:
            await run_git(["diff", "no-such-ref"], cwd=str(one_commit_repo))
        assert "no-such-ref" in str(exc_info.value)


class TestGitBackend:
    @pytest.mark.asyncio
    async def test_recent_commits_newest_first(self, two_commit_repo):
        backend = GitBackend(cwd=str(two_commit_repo))
        commits = await backend.recent_commits(2)
        assert len(commits) == 2
        head = await run_git(["rev-parse", "HEAD"], cwd=str(two_commit_repo))
        assert commits[0] == head.strip()

    @pytest.mark.asyncio
    async def test_recent_commits_empty_repo_fails(self, empty_repo):
        with pytest.raises(GitCommandError):
            await GitBackend(cwd=str(empty_repo)).recent_commits(2)

    @pytest.mark.asyncio
    async def test_show(self, one_commit_repo):
        output = await GitBackend(cwd=str(one_commit_repo)).show("HEAD")
        assert "diff --git a/app.py b/app.py" in output

    @pytest.mark.asyncio
    async def test_unshallow_on_complete_repo_fails(self, one_commit_repo):
        with pytest.raises(GitCommandError):
            await GitBackend(cwd=str(one_commit_repo)).unshallow()


class TestAcquireEndToEnd:
    @pytest.mark.asyncio
    async def test_no_history(self, empty_repo):
        result = await acquire(location(empty_repo), ExecutionContext())
        assert result.succeeded is False
        assert result.text == ""

    @pytest.mark.asyncio
    async def test_single_commit(self, one_commit_repo):
        result = await acquire(location(one_commit_repo), ExecutionContext())
        assert result.succeeded
        assert result.source_strategy == StrategyName.SINGLE_COMMIT
        expected = await GitBackend(cwd=str(one_commit_repo)).show("HEAD")
        assert result.text == expected

    @pytest.mark.asyncio
    async def test_last_two_commits(self, two_commit_repo):
        result = await acquire(location(two_commit_repo), ExecutionContext())
        assert result.source_strategy == StrategyName.LAST_TWO_COMMITS
        assert "diff --git a/secrets.env b/secrets.env" in result.text
        assert "app.py" not in result.text

    @pytest.mark.asyncio
    async def test_ignored_file_only_change_filters_to_empty(self, two_commit_repo):
        result = await acquire(location(two_commit_repo), ExecutionContext())
        filtered = filter_diff(result.text, IgnoreRuleSet.from_patterns(["secrets.env"]))
        assert filtered.text == ""


@pytest.fixture
def hostile_config_repo(empty_repo):
    """Repository whose local config changes the default patch format."""
    git(empty_repo, "config", "diff.noprefix", "true")
    git(empty_repo, "config", "diff.mnemonicPrefix", "true")
    git(empty_repo, "config", "color.ui", "always")
    commit_file(empty_repo, "package.json", '{"version": "1.0.0"}\n', "first")
    commit_file(empty_repo, "package.json", '{"version": "1.0.1"}\n', "bump")
    return empty_repo


class TestPatchFormatIgnoresUserConfig:
    @pytest.mark.asyncio
    async def test_diff_keeps_standard_prefixes(self, hostile_config_repo):
        output = await GitBackend(cwd=str(hostile_config_repo)).diff("HEAD~1", "HEAD")
        assert "diff --git a/package.json b/package.json" in output
        assert "\x1b[" not in output

    @pytest.mark.asyncio
    async def test_show_keeps_standard_prefixes(self, hostile_config_repo):
        output = await GitBackend(cwd=str(hostile_config_repo)).show("HEAD")
        assert "diff --git a/package.json b/package.json" in output
        assert "\x1b[" not in output

    @pytest.mark.asyncio
    async def test_ignored_file_filters_to_empty(self, hostile_config_repo):
        result = await acquire(location(hostile_config_repo), ExecutionContext())
        assert result.succeeded
        filtered = filter_diff(result.text, IgnoreRuleSet.from_patterns(["package.json"]))
        assert filtered.text == ""
        assert filtered.ignored_paths == ["package.json"]
