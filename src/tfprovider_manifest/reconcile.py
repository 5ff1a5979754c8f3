from __future__ import annotations

import sys
from dataclasses import dataclass
from functools import partial
from typing import Callable, Iterable, Iterator

from .config import parse_slug
from .github.tags import PROVIDER_PREFIX, TagLookup, latest_tag_of, list_org_providers
from .retry import SINGLE_ATTEMPT, RetryPolicy

OrgLister = Callable[[str], Iterable[tuple[str, str]]]
TagLookupFn = Callable[[str, str], TagLookup]


@dataclass(frozen=True)
class ProviderRef:
    org: str
    repo: str
    revision: str

    @property
    def slug(self) -> str:
        return f"{self.org}/{self.repo}"


def _ref_from_pair(name_with_owner: str, tag: str) -> ProviderRef:
    org, repo = parse_slug(name_with_owner)
    return ProviderRef(org, repo, tag)


def filter_blacklisted(
    refs: Iterable[ProviderRef], blacklist: Iterable[str]
) -> list[ProviderRef]:
    excluded = frozenset(blacklist)
    return [ref for ref in refs if ref.slug not in excluded]


def sort_by_repo(refs: Iterable[ProviderRef]) -> list[ProviderRef]:
    return sorted(refs, key=lambda ref: ref.repo)


def _scan_orgs(orgs: Iterable[str], list_org: OrgLister) -> Iterator[ProviderRef]:
    for org in orgs:
        for name_with_owner, tag in list_org(org):
            yield _ref_from_pair(name_with_owner, tag)


def _lookup_slugs(slugs: Iterable[str], latest_tag: TagLookupFn) -> Iterator[ProviderRef]:
    for slug in slugs:
        owner, repo = parse_slug(slug)
        lookup = latest_tag(owner, repo)
        if not lookup.found:
            print(f"skipping {slug}: {lookup.reason}", file=sys.stderr, flush=True)
            continue
        yield ProviderRef(owner, repo, lookup.tag)


def resolve_all(
    orgs: Iterable[str],
    explicit_slugs: Iterable[str],
    blacklist: Iterable[str],
    *,
    prefix: str = PROVIDER_PREFIX,
    api_policy: RetryPolicy = SINGLE_ATTEMPT,
    api_timeout: float | None = None,
    list_org: OrgLister | None = None,
    latest_tag: TagLookupFn | None = None,
) -> list[ProviderRef]:
    """
    Collect the latest tag of every provider repository and return them
    without blacklisted entries, ordered by repository name.

    Repositories found both through an organization scan and the explicit
    slug list are kept twice; the explicit list is not expected to overlap
    the scanned organizations.
    """
    if list_org is None:
        list_org = partial(
            list_org_providers, prefix=prefix, policy=api_policy, timeout=api_timeout
        )
    if latest_tag is None:
        latest_tag = partial(latest_tag_of, policy=api_policy, timeout=api_timeout)

    refs = [*_scan_orgs(orgs, list_org), *_lookup_slugs(explicit_slugs, latest_tag)]
    return sort_by_repo(filter_blacklisted(refs, blacklist))
