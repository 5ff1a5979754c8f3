from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any, Iterator

from ..retry import SINGLE_ATTEMPT, RetryPolicy
from ..versions import max_version
from .client import GitHubAPIError, GitHubNotFound, graphql, iter_rest_pages

PROVIDER_PREFIX = "terraform-provider-"
TAG_REF_PREFIX = "refs/tags/"
# tags like "v.0.1" sort above real releases
MALFORMED_TAG_PATTERN = "v."

ORG_PROVIDERS_QUERY = """
query($org: String!, $endCursor: String) {
  organization(login: $org) {
    repositories(first: 100, after: $endCursor) {
      nodes {
        name
        nameWithOwner
        refs(
          first: 1
          refPrefix: "refs/tags/"
          orderBy: {field: TAG_COMMIT_DATE, direction: DESC}
        ) {
          nodes {
            name
          }
        }
      }
      pageInfo {
        hasNextPage
        endCursor
      }
    }
  }
}
"""


def _log(message: str) -> None:
    from ..runtime import get_verbose_logging

    if get_verbose_logging():
        print(f"[tags] {message}", file=sys.stderr, flush=True)


@dataclass(frozen=True)
class TagLookup:
    owner: str
    repo: str
    tag: str | None = None
    reason: str | None = None

    @property
    def found(self) -> bool:
        return self.tag is not None

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"


def _org_repositories(data: dict[str, Any], org: str) -> dict[str, Any]:
    organization = data.get("organization")
    if not isinstance(organization, dict):
        raise GitHubAPIError(f"GitHub organization not found: {org}")
    repositories = organization.get("repositories")
    if not isinstance(repositories, dict):
        raise GitHubAPIError(f"Unexpected repositories payload for {org}")
    return repositories


def _latest_tag_name(node: dict[str, Any]) -> str | None:
    refs = (node.get("refs") or {}).get("nodes") or []
    if not refs:
        return None
    name = refs[0].get("name")
    return name or None


def list_org_providers(
    org: str,
    *,
    prefix: str = PROVIDER_PREFIX,
    policy: RetryPolicy = SINGLE_ATTEMPT,
    timeout: float | None = None,
) -> Iterator[tuple[str, str]]:
    """
    Yield ``(nameWithOwner, latestTag)`` for every provider repository owned
    by ``org`` that has at least one tag.

    Tags are ordered by commit date, newest first, so the first tag ref is the
    latest release. Pages are fetched lazily while GitHub reports more.
    """
    cursor: str | None = None
    page = 1
    while True:
        _log(f"scanning {org} (page {page})")
        data = graphql(
            ORG_PROVIDERS_QUERY,
            {"org": org, "endCursor": cursor},
            policy=policy,
            timeout=timeout,
        )
        repositories = _org_repositories(data, org)
        for node in repositories.get("nodes") or []:
            if not node:
                continue
            name = node.get("name") or ""
            if not name.startswith(prefix):
                continue
            tag = _latest_tag_name(node)
            if tag is None:
                _log(f"skipping {node.get('nameWithOwner')}: no tags")
                continue
            yield node["nameWithOwner"], tag

        page_info = repositories.get("pageInfo") or {}
        if not page_info.get("hasNextPage"):
            return
        cursor = page_info.get("endCursor")
        page += 1


def list_tags(
    owner: str,
    repo: str,
    *,
    policy: RetryPolicy = SINGLE_ATTEMPT,
    timeout: float | None = None,
) -> list[str]:
    """Return every tag name of ``owner/repo``; empty when it has none."""
    tags: list[str] = []
    try:
        for page in iter_rest_pages(
            f"/repos/{owner}/{repo}/git/refs/tags",
            params={"per_page": 100},
            policy=policy,
            timeout=timeout,
        ):
            if isinstance(page, dict):
                # a single ref is returned as an object
                page = [page]
            for ref in page:
                name = ref.get("ref") or ""
                if name.startswith(TAG_REF_PREFIX):
                    name = name[len(TAG_REF_PREFIX) :]
                if name:
                    tags.append(name)
    except GitHubNotFound:
        # GitHub answers 404 for the refs listing of a repository without tags
        return []
    return tags


def qualifying_tags(tags: list[str]) -> list[str]:
    return [tag for tag in tags if MALFORMED_TAG_PATTERN not in tag]


def latest_tag_of(
    owner: str,
    repo: str,
    *,
    policy: RetryPolicy = SINGLE_ATTEMPT,
    timeout: float | None = None,
) -> TagLookup:
    tags = list_tags(owner, repo, policy=policy, timeout=timeout)
    if not tags:
        return TagLookup(owner, repo, reason="no tags")
    latest = max_version(qualifying_tags(tags))
    if latest is None:
        return TagLookup(owner, repo, reason="no qualifying tags")
    return TagLookup(owner, repo, tag=latest)
