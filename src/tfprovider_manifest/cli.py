import click
import requests

from .config import OUTPUT_FORMATS, ConfigError, load_config, parse_slug
from .fetch import FetchError
from .github.client import GitHubAPIError
from .retry import RetryExhausted
from .runtime import reset_verbose_logging, set_verbose_logging

_HANDLED_ERRORS = (
    ConfigError,
    GitHubAPIError,
    FetchError,
    RetryExhausted,
    requests.RequestException,
)


def _fail(exc: Exception) -> click.ClickException:
    return click.ClickException(str(exc))


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Print API and prefetch details to stderr.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML file overriding organizations, slugs, blacklist and retry settings.",
)
@click.pass_context
def cli(ctx, verbose, config_path):
    """
    tfprovider-manifest - regenerate the Terraform provider manifest
    """
    ctx.ensure_object(dict)
    token = set_verbose_logging(verbose)
    ctx.call_on_close(lambda: reset_verbose_logging(token))
    try:
        ctx.obj["config"] = load_config(config_path)
    except ConfigError as exc:
        raise _fail(exc) from exc


@cli.command("update")
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, allow_dash=True),
    help="Manifest path, '-' for stdout (default: data.nix).",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(OUTPUT_FORMATS, case_sensitive=False),
    help="Manifest format (default: nix).",
)
@click.pass_context
def update_cmd(ctx, output, fmt):
    """
    Resolve the latest tag of every provider and rewrite the manifest.
    """
    from . import update

    config = ctx.obj["config"]
    try:
        entries = update(config, output=output, format=fmt.lower() if fmt else None)
    except _HANDLED_ERRORS as exc:
        raise _fail(exc) from exc
    click.echo(f"Done. Wrote {len(entries)} providers.", err=True)


@cli.command("resolve")
@click.pass_context
def resolve_cmd(ctx):
    """
    Print the reconciled provider list without prefetching anything.
    """
    from . import resolve

    try:
        refs = resolve(ctx.obj["config"])
    except _HANDLED_ERRORS as exc:
        raise _fail(exc) from exc
    for ref in refs:
        click.echo(f"{ref.slug} {ref.revision}")


@cli.command("tag")
@click.argument("slug")
@click.pass_context
def tag_cmd(ctx, slug):
    """
    Print the latest release tag of OWNER/REPO.
    """
    from .github.tags import latest_tag_of

    config = ctx.obj["config"]
    try:
        owner, repo = parse_slug(slug)
        lookup = latest_tag_of(
            owner, repo, policy=config.api_policy, timeout=config.api_timeout
        )
    except _HANDLED_ERRORS as exc:
        raise _fail(exc) from exc
    if not lookup.found:
        raise click.ClickException(f"{slug}: {lookup.reason}")
    click.echo(lookup.tag)


@cli.command("prefetch")
@click.argument("slug")
@click.argument("rev")
@click.pass_context
def prefetch_cmd(ctx, slug, rev):
    """
    Print the unpacked-archive hash of OWNER/REPO at REV.
    """
    from .fetch import fetch, make_prefetcher

    config = ctx.obj["config"]
    try:
        owner, repo = parse_slug(slug)
        sha256 = fetch(
            owner,
            repo,
            rev,
            policy=config.fetch_policy,
            prefetch=make_prefetcher(config.prefetch_command),
        )
    except _HANDLED_ERRORS as exc:
        raise _fail(exc) from exc
    click.echo(sha256)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
