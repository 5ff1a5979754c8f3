from __future__ import annotations


def resolve(config=None) -> list:
    from .config import Config
    from .reconcile import resolve_all

    config = config or Config()
    return resolve_all(
        config.orgs,
        config.slugs,
        config.blacklist,
        prefix=config.prefix,
        api_policy=config.api_policy,
        api_timeout=config.api_timeout,
    )


def update(
    config=None,
    *,
    output: str | None = None,
    format: str | None = None,
    fetcher=None,
) -> list:
    """Regenerate the provider manifest and return the written entries."""
    from functools import partial

    from .config import Config
    from .fetch import fetch, make_prefetcher
    from .render import write_manifest

    config = (config or Config()).with_overrides(output=output, format=format)
    if fetcher is None:
        fetcher = partial(
            fetch,
            policy=config.fetch_policy,
            prefetch=make_prefetcher(config.prefetch_command),
        )
    refs = resolve(config)
    return write_manifest(
        config.output,
        refs,
        fetcher=fetcher,
        prefix=config.prefix,
        fmt=config.format,
    )


__all__ = ["resolve", "update"]
