"""Git utilities for extracting diffs."""

import asyncio

# Default timeout for a single git invocation (seconds)
DEFAULT_TIMEOUT = 60

# Patch output must not depend on user config (color.ui, diff.noprefix,
# diff.external, diff.mnemonicPrefix) or the ignore filter cannot parse it
PATCH_OPTIONS = ("--no-color", "--no-ext-diff", "--src-prefix=a/", "--dst-prefix=b/")


class GitCommandError(RuntimeError):
    """A git invocation failed, timed out, or git is not installed."""

    def __init__(self, args: list[str], message: str) -> None:
        super().__init__(f"git {' '.join(args)} failed: {message}")
        self.args_list = args
        self.message = message


async def run_git(args: list[str], cwd: str | None = None, timeout: float = DEFAULT_TIMEOUT) -> str:
    """
    Run a git command and return its stdout.

    Args:
        args: Arguments after "git"
        cwd: Repository directory (default: current directory)
        timeout: Timeout in seconds

    Returns:
        Command output as string

    Raises:
        GitCommandError: If git exits non-zero, times out or is missing
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            "git",
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
        )
    except OSError as e:
        # missing git executable or missing cwd
        raise GitCommandError(args, str(e)) from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        proc.kill()
        await proc.wait()
        raise GitCommandError(args, f"timed out after {timeout}s") from None

    if proc.returncode != 0:
        raise GitCommandError(args, stderr.decode(errors="replace").strip())

    return stdout.decode(errors="replace")


class GitBackend:
    """The handful of git operations the acquisition engine needs."""

    def __init__(self, cwd: str | None = None, timeout: float = DEFAULT_TIMEOUT):
        self.cwd = cwd
        self.timeout = timeout

    async def _run(self, *args: str) -> str:
        return await run_git(list(args), cwd=self.cwd, timeout=self.timeout)

    async def recent_commits(self, max_count: int) -> list[str]:
        """Hashes of up to max_count most recent commits, newest first."""
        output = await self._run("log", f"--max-count={max_count}", "--format=%H")
        return [line for line in output.splitlines() if line.strip()]

    async def diff(self, *refs: str) -> str:
        """git diff between refs, or of the working tree when none given."""
        return await self._run("diff", *PATCH_OPTIONS, *refs)

    async def show(self, rev: str) -> str:
        """Patch introduced by a single revision."""
        return await self._run("show", *PATCH_OPTIONS, rev)

    async def unshallow(self) -> None:
        """Fetch the full history of a shallow checkout."""
        await self._run("fetch", "--unshallow")
