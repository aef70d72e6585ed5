"""Fetch commit details from the GitHub REST API."""

import httpx

from . import CommitDetails, CredentialMissing, RemoteCallFailure
from .config import DEFAULT_API_URL, DEFAULT_HTTP_TIMEOUT


def commit_url(owner: str, repo: str, branch: str, api_url: str = DEFAULT_API_URL) -> str:
    return f"{api_url}/repos/{owner}/{repo}/commits/{branch}"


async def fetch_commit_details(
    owner: str | None,
    repo: str | None,
    branch: str,
    token: str | None,
    api_url: str = DEFAULT_API_URL,
    timeout: float = DEFAULT_HTTP_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> CommitDetails:
    """
    Get the latest commit on a branch.

    Args:
        owner: Repository owner
        repo: Repository name
        branch: Branch name
        token: Bearer token
        api_url: API base URL
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests)

    Returns:
        CommitDetails with the sha and the decoded response body

    Raises:
        CredentialMissing: If no token is given
        RemoteCallFailure: On transport errors, non-2xx status or a bad body
    """
    if not token:
        raise CredentialMissing("GitHub token not provided. Set the GITHUB_TOKEN environment variable.")
    if not owner or not repo:
        raise RemoteCallFailure("Repository owner and name are required (REPO_OWNER, REPO_NAME)")

    url = commit_url(owner, repo, branch, api_url)
    headers = {
        "Authorization": f"Bearer {token}",
        "Accept": "application/vnd.github+json",
    }

    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(url, headers=headers)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise RemoteCallFailure(f"Request to {url} failed: {e}", url=url) from e

    if response.is_error:
        raise RemoteCallFailure(
            f"GitHub API returned {response.status_code} for {url}",
            status_code=response.status_code,
            url=url,
        )

    try:
        data = response.json()
    except ValueError as e:
        raise RemoteCallFailure(f"Invalid JSON from {url}", status_code=response.status_code, url=url) from e

    if not isinstance(data, dict):
        raise RemoteCallFailure(f"Unexpected response body from {url}", status_code=response.status_code, url=url)

    return CommitDetails(sha=str(data.get("sha", "")), data=data)
