"""
Configuration loaded from environment variables.

A .env file in the working directory is loaded first when present;
variables already set in the environment win over it.

Recognized variables:
    GITHUB_TOKEN / MY_GITHUB_TOKEN      API token for commit details
    REPO_OWNER / GITHUB_REPOSITORY_OWNER
    REPO_NAME / GITHUB_REPOSITORY       ("owner/name", name part used)
    BRANCH / GITHUB_REF_NAME            (default: main)
    GITHUB_API_URL                      (default: https://api.github.com)
    GIT_DIFF_IGNORE                     comma-separated ignore rules
    GIT_DIFF_TIMEOUT                    seconds per git call
    GIT_DIFF_HTTP_TIMEOUT               seconds for the API call
    GIT_DIFF_UNPARSABLE                 "keep" or "reject"
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

from . import UnparsablePolicy
from .diff_filter import DEFAULT_IGNORED_FILES
from .git_utils import DEFAULT_TIMEOUT as DEFAULT_GIT_TIMEOUT

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_BRANCH = "main"
DEFAULT_HTTP_TIMEOUT = 30.0


@dataclass(frozen=True)
class Settings:
    """Process-wide settings."""

    ignore_rules: tuple[str, ...] = DEFAULT_IGNORED_FILES
    github_token: str | None = None
    repo_owner: str | None = None
    repo_name: str | None = None
    branch: str = DEFAULT_BRANCH
    api_url: str = DEFAULT_API_URL
    git_timeout: float = DEFAULT_GIT_TIMEOUT
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    unparsable_policy: UnparsablePolicy = UnparsablePolicy.KEEP


def _first(env: Mapping[str, str], *keys: str) -> str | None:
    for key in keys:
        value = env.get(key)
        if value:
            return value
    return None


def _float(value: str | None, default: float) -> float:
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Expected a number, got {value!r}") from None


def parse_ignore_list(value: str | None) -> tuple[str, ...]:
    """Split a comma-separated ignore list, falling back to the defaults."""
    if value is None:
        return DEFAULT_IGNORED_FILES
    return tuple(item.strip() for item in value.split(",") if item.strip())


def load_settings(env: Mapping[str, str] | None = None, dotenv: bool = True) -> Settings:
    """
    Build Settings from an environment mapping.

    Args:
        env: Environment to read (default: os.environ)
        dotenv: Load a .env file into os.environ first (only when env is None)

    Returns:
        Settings

    Raises:
        ValueError: If a numeric or policy variable is malformed
    """
    if env is None:
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))
        env = os.environ

    repo_name = env.get("REPO_NAME") or None
    if repo_name is None and env.get("GITHUB_REPOSITORY"):
        _, _, repo_name = env["GITHUB_REPOSITORY"].partition("/")
        repo_name = repo_name or None

    policy_value = (env.get("GIT_DIFF_UNPARSABLE") or UnparsablePolicy.KEEP.value).strip().lower()
    try:
        policy = UnparsablePolicy(policy_value)
    except ValueError:
        raise ValueError(f"GIT_DIFF_UNPARSABLE must be 'keep' or 'reject', got {policy_value!r}") from None

    return Settings(
        ignore_rules=parse_ignore_list(env.get("GIT_DIFF_IGNORE")),
        github_token=_first(env, "GITHUB_TOKEN", "MY_GITHUB_TOKEN"),
        repo_owner=_first(env, "REPO_OWNER", "GITHUB_REPOSITORY_OWNER"),
        repo_name=repo_name,
        branch=_first(env, "BRANCH", "GITHUB_REF_NAME") or DEFAULT_BRANCH,
        api_url=(_first(env, "GITHUB_API_URL") or DEFAULT_API_URL).rstrip("/"),
        git_timeout=_float(env.get("GIT_DIFF_TIMEOUT"), DEFAULT_GIT_TIMEOUT),
        http_timeout=_float(env.get("GIT_DIFF_HTTP_TIMEOUT"), DEFAULT_HTTP_TIMEOUT),
        unparsable_policy=policy,
    )
