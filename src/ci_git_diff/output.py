"""Write results to files and GitHub Actions step outputs."""

import json
import os

from . import CommitDetails

DIFF_OUTPUT_FILE = "git-diff-output.txt"
COMMIT_DETAILS_FILE = "commit-details.json"


def output_dir(workspace: str | None = None) -> str:
    """GITHUB_WORKSPACE when known, else the current directory."""
    return workspace or os.getcwd()


def write_github_output(key: str, value: str, output_file: str | None = None) -> bool:
    """
    Append a key-value pair to the GITHUB_OUTPUT file.

    Multiline values use heredoc syntax.

    Args:
        key: Output variable name
        value: Output value
        output_file: Path of the output file (default: $GITHUB_OUTPUT)

    Returns:
        True if written, False when no output file is configured
    """
    output_file = output_file or os.environ.get("GITHUB_OUTPUT")
    if not output_file:
        return False
    with open(output_file, "a", encoding="utf-8") as f:
        if "\n" in value:
            f.write(f"{key}<<EOF\n{value}\nEOF\n")
        else:
            f.write(f"{key}={value}\n")
    return True


def write_diff(diff_text: str, path: str) -> str:
    with open(path, "w", encoding="utf-8") as f:
        f.write(diff_text)
    return path


def write_commit_details(details: CommitDetails, path: str) -> str:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(details.data, f, indent=2)
    return path


def publish_diff(diff_text: str, workspace: str | None = None, github_output: str | None = None) -> tuple[str, bool]:
    """
    Write the diff file and set diff_found / diff_output_path outputs.

    Returns:
        (path written, whether step outputs were set)
    """
    path = write_diff(diff_text, os.path.join(output_dir(workspace), DIFF_OUTPUT_FILE))
    wrote = write_github_output("diff_found", "true" if diff_text else "false", github_output)
    if wrote:
        write_github_output("diff_output_path", path, github_output)
    return path, wrote


def publish_commit_details(
    details: CommitDetails, workspace: str | None = None, github_output: str | None = None
) -> tuple[str, bool]:
    """
    Write the commit details file and set commit_sha / commit_details_path outputs.

    Returns:
        (path written, whether step outputs were set)
    """
    path = write_commit_details(details, os.path.join(output_dir(workspace), COMMIT_DETAILS_FILE))
    wrote = write_github_output("commit_sha", details.sha, github_output)
    if wrote:
        write_github_output("commit_details_path", path, github_output)
    return path, wrote
