from __future__ import annotations

import os
import sys
from functools import lru_cache
from typing import Any, Iterator

from ..retry import SINGLE_ATTEMPT, RetryPolicy
from ..runtime import get_api_timeout

API_BASE = "https://api.github.com"
GRAPHQL_ENDPOINT = f"{API_BASE}/graphql"
USER_AGENT = "tfprovider-manifest"


class GitHubAPIError(RuntimeError):
    pass


class GitHubNotFound(GitHubAPIError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"GitHub resource not found: {path}")


def _log(message: str) -> None:
    from ..runtime import get_verbose_logging

    if get_verbose_logging():
        print(f"[github] {message}", file=sys.stderr, flush=True)


@lru_cache(maxsize=1)
def _load_dotenv() -> None:
    from dotenv import find_dotenv, load_dotenv

    env_path = find_dotenv(usecwd=True)
    if env_path:
        load_dotenv(env_path, override=False)


def _get_auth_headers() -> dict[str, str]:
    _load_dotenv()
    token = (os.environ.get("GITHUB_TOKEN") or os.environ.get("GH_TOKEN") or "").strip()
    if not token:
        return {}
    return {"Authorization": f"Bearer {token}"}


def _headers() -> dict[str, str]:
    return {
        **_get_auth_headers(),
        "Accept": "application/vnd.github+json",
        "User-Agent": USER_AGENT,
    }


def _request(method: str, url: str, *, path: str, timeout: float | None, **kwargs):
    import requests

    resp = requests.request(
        method,
        url,
        headers=_headers(),
        timeout=timeout if timeout is not None else get_api_timeout(),
        **kwargs,
    )
    if resp.status_code == 404:
        raise GitHubNotFound(path)
    resp.raise_for_status()
    return resp


def graphql(
    query: str,
    variables: dict[str, Any] | None = None,
    *,
    policy: RetryPolicy = SINGLE_ATTEMPT,
    timeout: float | None = None,
) -> dict[str, Any]:
    """Run a GraphQL query and return its ``data`` member."""
    import requests

    def run() -> dict[str, Any]:
        resp = _request(
            "POST",
            GRAPHQL_ENDPOINT,
            path="/graphql",
            timeout=timeout,
            json={"query": query, "variables": variables or {}},
        )
        return resp.json()

    if policy.max_attempts > 1:
        payload = policy.call(
            run,
            description="GitHub GraphQL query",
            retry_on=(requests.RequestException,),
        )
    else:
        payload = run()

    if not isinstance(payload, dict):
        raise GitHubAPIError("GraphQL response was not an object")
    errors = payload.get("errors")
    if errors:
        messages = "; ".join(
            str(err.get("message", err)) if isinstance(err, dict) else str(err)
            for err in errors
        )
        raise GitHubAPIError(f"GraphQL query failed: {messages}")
    data = payload.get("data")
    if not isinstance(data, dict):
        raise GitHubAPIError("GraphQL response did not include data")
    return data


def iter_rest_pages(
    path: str,
    *,
    params: dict[str, Any] | None = None,
    policy: RetryPolicy = SINGLE_ATTEMPT,
    timeout: float | None = None,
) -> Iterator[Any]:
    """Yield each page of a REST listing, following ``Link: rel="next"``."""
    import requests

    url: str | None = f"{API_BASE}{path}"
    page_params = params
    page = 1
    while url:
        _log(f"GET {path} (page {page})")

        def run(url: str = url, page_params: dict[str, Any] | None = page_params):
            return _request("GET", url, path=path, timeout=timeout, params=page_params)

        if policy.max_attempts > 1:
            resp = policy.call(
                run,
                description=f"GitHub GET {path}",
                retry_on=(requests.RequestException,),
            )
        else:
            resp = run()

        yield resp.json()

        next_link = (getattr(resp, "links", None) or {}).get("next") or {}
        url = next_link.get("url")
        # the next link already carries the query string
        page_params = None
        page += 1
