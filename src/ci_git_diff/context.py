"""Classify the execution environment from environment variables."""

from collections.abc import Mapping

from . import EventKind, ExecutionContext, Provider

TRUTHY = "true"

# Any of these set to "true" means we are running under CI
CI_INDICATORS = ("CI", "GITHUB_ACTIONS", "GITLAB_CI", "TRAVIS", "CIRCLECI")

# Checked in order; GitHub Actions first since it gives the richest context
PROVIDER_INDICATORS: list[tuple[str, Provider]] = [
    ("GITHUB_ACTIONS", Provider.GITHUB_ACTIONS),
    ("GITLAB_CI", Provider.GITLAB_CI),
    ("TRAVIS", Provider.TRAVIS),
    ("CIRCLECI", Provider.CIRCLECI),
]

PULL_REQUEST_EVENT = "pull_request"


def _optional(env: Mapping[str, str], key: str) -> str | None:
    value = env.get(key)
    return value if value else None


def detect_provider(env: Mapping[str, str], is_ci: bool) -> Provider:
    """Return the first provider whose indicator variable is set."""
    for key, provider in PROVIDER_INDICATORS:
        if env.get(key) == TRUTHY:
            return provider
    return Provider.GENERIC_CI if is_ci else Provider.NONE


def classify_context(env: Mapping[str, str]) -> ExecutionContext:
    """
    Build an ExecutionContext from a flat environment mapping.

    Pure function: pass os.environ or any dict. Missing variables yield
    defaults, never errors.

    Args:
        env: Environment key/value pairs

    Returns:
        ExecutionContext snapshot
    """
    is_ci = any(env.get(key) == TRUTHY for key in CI_INDICATORS)
    provider = detect_provider(env, is_ci)

    if provider == Provider.GITHUB_ACTIONS:
        if env.get("GITHUB_EVENT_NAME") == PULL_REQUEST_EVENT:
            event_kind = EventKind.PULL_REQUEST
        else:
            event_kind = EventKind.PUSH
    else:
        event_kind = EventKind.UNKNOWN

    return ExecutionContext(
        is_ci=is_ci,
        provider=provider,
        event_kind=event_kind,
        base_ref=_optional(env, "GITHUB_BASE_REF"),
        head_ref=_optional(env, "GITHUB_HEAD_REF"),
        workspace=_optional(env, "GITHUB_WORKSPACE"),
    )
