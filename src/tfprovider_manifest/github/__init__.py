from .client import GitHubAPIError, GitHubNotFound, graphql, iter_rest_pages
from .tags import (
    PROVIDER_PREFIX,
    TagLookup,
    latest_tag_of,
    list_org_providers,
    list_tags,
)

__all__ = [
    "GitHubAPIError",
    "GitHubNotFound",
    "PROVIDER_PREFIX",
    "TagLookup",
    "graphql",
    "iter_rest_pages",
    "latest_tag_of",
    "list_org_providers",
    "list_tags",
]
