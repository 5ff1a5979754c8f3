from __future__ import annotations

import io
import json
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from typing import IO, Callable, Iterable, Iterator

from .github.tags import PROVIDER_PREFIX
from .reconcile import ProviderRef

HEADER = "# Generated by tfprovider-manifest"
ENTRY_FIELDS = ("owner", "repo", "rev", "version", "sha256")

Fetcher = Callable[[str, str, str], str]


@dataclass(frozen=True)
class ManifestEntry:
    name: str
    owner: str
    repo: str
    rev: str
    version: str
    sha256: str

    def fields(self) -> dict[str, str]:
        return {key: getattr(self, key) for key in ENTRY_FIELDS}


def _log(message: str) -> None:
    from .runtime import get_verbose_logging

    if get_verbose_logging():
        print(f"[render] {message}", file=sys.stderr, flush=True)


def provider_name(repo: str, prefix: str = PROVIDER_PREFIX) -> str:
    if prefix and repo.startswith(prefix):
        return repo[len(prefix) :]
    return repo


def strip_version_prefix(rev: str) -> str:
    return rev[1:] if rev.startswith("v") else rev


def make_entry(
    ref: ProviderRef, sha256: str, prefix: str = PROVIDER_PREFIX
) -> ManifestEntry:
    return ManifestEntry(
        name=provider_name(ref.repo, prefix),
        owner=ref.org,
        repo=ref.repo,
        rev=ref.revision,
        version=strip_version_prefix(ref.revision),
        sha256=sha256,
    )


def _nix_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("${", "\\${")
    return f'"{escaped}"'


def _nix_attr_name(name: str) -> str:
    if name and (name[0].isalpha() or name[0] == "_") and all(
        ch.isalnum() or ch in "_-'" for ch in name
    ):
        return name
    return _nix_string(name)


def render_nix_entry(entry: ManifestEntry) -> str:
    width = max(len(key) for key in ENTRY_FIELDS)
    lines = [f"  {_nix_attr_name(entry.name)} =", "    {"]
    for key, value in entry.fields().items():
        lines.append(f"      {key.ljust(width)} = {_nix_string(value)};")
    lines.append("    };")
    return "\n".join(lines) + "\n"


def render_json(entries: Iterable[ManifestEntry]) -> str:
    document: dict[str, dict[str, str]] = {}
    for entry in entries:
        document[entry.name] = entry.fields()
    return json.dumps(document, indent=2) + "\n"


def render_all(
    refs: Iterable[ProviderRef],
    sink: IO[str],
    *,
    fetcher: Fetcher,
    prefix: str = PROVIDER_PREFIX,
    fmt: str = "nix",
) -> list[ManifestEntry]:
    """
    Fetch every reference in order and write the manifest to ``sink``.

    The Nix format is streamed entry by entry, so a fetch failure leaves the
    closing brace unwritten. JSON is written once every fetch has succeeded.
    """
    if fmt not in ("nix", "json"):
        raise ValueError(f"Unknown manifest format: {fmt!r}")

    entries: list[ManifestEntry] = []
    seen: set[str] = set()
    if fmt == "nix":
        sink.write(f"{HEADER}\n{{\n")

    for ref in refs:
        print(f"*** {ref.slug} {ref.revision} ***", file=sys.stderr, flush=True)
        sha256 = fetcher(ref.org, ref.repo, ref.revision)
        entry = make_entry(ref, sha256, prefix)
        if entry.name in seen:
            _log(f"duplicate provider name {entry.name!r} from {ref.slug}")
        seen.add(entry.name)
        entries.append(entry)
        if fmt == "nix":
            sink.write(render_nix_entry(entry))
            sink.flush()

    if fmt == "nix":
        sink.write("}\n")
    else:
        sink.write(render_json(entries))
    sink.flush()
    return entries


@contextmanager
def open_output(path: str) -> Iterator[IO[str]]:
    if path == "-":
        yield sys.stdout
        return
    with open(path, "w", encoding="utf-8") as f:
        yield f


def write_manifest(
    path: str,
    refs: Iterable[ProviderRef],
    *,
    fetcher: Fetcher,
    prefix: str = PROVIDER_PREFIX,
    fmt: str = "nix",
) -> list[ManifestEntry]:
    if fmt == "json":
        # keep the previous manifest in place until every fetch succeeded
        buffer = io.StringIO()
        entries = render_all(refs, buffer, fetcher=fetcher, prefix=prefix, fmt=fmt)
        with open_output(path) as sink:
            sink.write(buffer.getvalue())
            sink.flush()
        return entries
    with open_output(path) as sink:
        return render_all(refs, sink, fetcher=fetcher, prefix=prefix, fmt=fmt)
