from __future__ import annotations

import pytest

from tfprovider_manifest.config import ConfigError
from tfprovider_manifest.github.tags import TagLookup
from tfprovider_manifest.reconcile import (
    ProviderRef,
    filter_blacklisted,
    resolve_all,
    sort_by_repo,
)

ORG_REPOS = {
    "terraform-providers": [
        ("terraform-providers/terraform-provider-null", "v2.1.2"),
        ("terraform-providers/terraform-provider-aws", "v2.30.0"),
        ("terraform-providers/terraform-provider-azure-classic", "v0.1.1"),
    ],
    "hashicorp": [("hashicorp/terraform-provider-helm", "v0.10.2")],
}

TAGS = {
    ("tweag", "terraform-provider-nixos"): "v0.0.1",
    ("poseidon", "terraform-provider-ct"): "v0.4.0",
}


def _list_org(org: str):
    return iter(ORG_REPOS[org])


def _latest_tag(owner: str, repo: str) -> TagLookup:
    tag = TAGS.get((owner, repo))
    if tag is None:
        return TagLookup(owner, repo, reason="no tags")
    return TagLookup(owner, repo, tag=tag)


def test_resolve_all_merges_filters_and_sorts() -> None:
    refs = resolve_all(
        ["terraform-providers", "hashicorp"],
        ["tweag/terraform-provider-nixos", "poseidon/terraform-provider-ct"],
        {"terraform-providers/terraform-provider-azure-classic"},
        list_org=_list_org,
        latest_tag=_latest_tag,
    )

    assert [ref.repo for ref in refs] == [
        "terraform-provider-aws",
        "terraform-provider-ct",
        "terraform-provider-helm",
        "terraform-provider-nixos",
        "terraform-provider-null",
    ]
    assert ProviderRef("poseidon", "terraform-provider-ct", "v0.4.0") in refs


def test_blacklisted_slugs_never_survive() -> None:
    blacklist = {
        "terraform-providers/terraform-provider-aws",
        "tweag/terraform-provider-nixos",
    }
    refs = resolve_all(
        ["terraform-providers"],
        ["tweag/terraform-provider-nixos"],
        blacklist,
        list_org=_list_org,
        latest_tag=_latest_tag,
    )
    assert refs
    assert not {ref.slug for ref in refs} & blacklist


def test_repos_without_tags_are_skipped_and_reported(capsys) -> None:
    refs = resolve_all(
        [],
        ["acme/terraform-provider-bare", "tweag/terraform-provider-nixos"],
        set(),
        list_org=_list_org,
        latest_tag=_latest_tag,
    )

    assert refs == [ProviderRef("tweag", "terraform-provider-nixos", "v0.0.1")]
    assert "skipping acme/terraform-provider-bare: no tags" in capsys.readouterr().err


def test_overlapping_sources_are_not_deduplicated() -> None:
    refs = resolve_all(
        ["hashicorp"],
        ["hashicorp/terraform-provider-helm"],
        set(),
        list_org=_list_org,
        latest_tag=lambda owner, repo: TagLookup(owner, repo, tag="v0.10.2"),
    )
    assert refs == [ProviderRef("hashicorp", "terraform-provider-helm", "v0.10.2")] * 2


def test_sort_is_by_repo_name_only_and_stable() -> None:
    refs = [
        ProviderRef("zeta", "terraform-provider-b", "v1"),
        ProviderRef("alpha", "terraform-provider-c", "v1"),
        ProviderRef("beta", "terraform-provider-b", "v2"),
        ProviderRef("acme", "terraform-provider-a", "v1"),
    ]
    ordered = sort_by_repo(refs)
    assert [ref.repo for ref in ordered] == sorted(ref.repo for ref in refs)
    # equal repo names keep their input order
    assert [ref.org for ref in ordered] == ["acme", "zeta", "beta", "alpha"]
    assert sort_by_repo(reversed(refs))[0].repo == "terraform-provider-a"


def test_filter_blacklisted_is_exact_match() -> None:
    refs = [
        ProviderRef("acme", "terraform-provider-a", "v1"),
        ProviderRef("acme", "terraform-provider-ab", "v1"),
    ]
    assert filter_blacklisted(refs, ["acme/terraform-provider-a"]) == [refs[1]]


def test_malformed_slug_is_a_configuration_error() -> None:
    with pytest.raises(ConfigError):
        resolve_all([], ["not-a-slug"], set(), latest_tag=_latest_tag)
