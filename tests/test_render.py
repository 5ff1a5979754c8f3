from __future__ import annotations

import io
import json

import pytest

import tfprovider_manifest
from tfprovider_manifest import reconcile
from tfprovider_manifest.config import Config
from tfprovider_manifest.fetch import FetchError
from tfprovider_manifest.github.tags import TagLookup
from tfprovider_manifest.reconcile import ProviderRef
from tfprovider_manifest.render import (
    make_entry,
    provider_name,
    render_all,
    strip_version_prefix,
    write_manifest,
)
from tfprovider_manifest.retry import RetryExhausted, RetryPolicy

REFS = [
    ProviderRef("acme", "terraform-provider-bar", "v0.2.0"),
    ProviderRef("acme", "terraform-provider-foo", "3.1.0"),
]


def _hashes(owner: str, repo: str, rev: str) -> str:
    return f"sha-{repo}-{rev}"


def _render(refs, fmt: str = "nix") -> str:
    sink = io.StringIO()
    render_all(refs, sink, fetcher=_hashes, fmt=fmt)
    return sink.getvalue()


@pytest.mark.parametrize(
    ("rev", "version"),
    [("v1.2.3", "1.2.3"), ("1.2.3", "1.2.3"), ("vv1", "v1"), ("", "")],
)
def test_strip_version_prefix(rev: str, version: str) -> None:
    assert strip_version_prefix(rev) == version


def test_provider_name_strips_prefix_once() -> None:
    assert provider_name("terraform-provider-aws") == "aws"
    assert provider_name("provider-aws") == "provider-aws"


def test_make_entry_derives_fields() -> None:
    entry = make_entry(REFS[0], "abc")
    assert entry.name == "bar"
    assert entry.fields() == {
        "owner": "acme",
        "repo": "terraform-provider-bar",
        "rev": "v0.2.0",
        "version": "0.2.0",
        "sha256": "abc",
    }


def test_nix_manifest_layout(capsys) -> None:
    assert _render(REFS) == (
        "# Generated by tfprovider-manifest\n"
        "{\n"
        "  bar =\n"
        "    {\n"
        '      owner   = "acme";\n'
        '      repo    = "terraform-provider-bar";\n'
        '      rev     = "v0.2.0";\n'
        '      version = "0.2.0";\n'
        '      sha256  = "sha-terraform-provider-bar-v0.2.0";\n'
        "    };\n"
        "  foo =\n"
        "    {\n"
        '      owner   = "acme";\n'
        '      repo    = "terraform-provider-foo";\n'
        '      rev     = "3.1.0";\n'
        '      version = "3.1.0";\n'
        '      sha256  = "sha-terraform-provider-foo-3.1.0";\n'
        "    };\n"
        "}\n"
    )
    err = capsys.readouterr().err
    assert "*** acme/terraform-provider-bar v0.2.0 ***" in err
    assert "*** acme/terraform-provider-foo 3.1.0 ***" in err


def test_rendering_is_idempotent() -> None:
    assert _render(REFS) == _render(REFS)
    assert _render(REFS, "json") == _render(REFS, "json")


def test_json_manifest() -> None:
    document = json.loads(_render(REFS, "json"))
    assert list(document) == ["bar", "foo"]
    assert document["foo"]["version"] == "3.1.0"


def test_fetch_failure_leaves_manifest_unterminated() -> None:
    def _fail_second(owner: str, repo: str, rev: str) -> str:
        if repo.endswith("foo"):
            raise RetryExhausted(f"{owner}/{repo}@{rev}", 30, FetchError("gone"))
        return "abc"

    sink = io.StringIO()
    with pytest.raises(RetryExhausted):
        render_all(REFS, sink, fetcher=_fail_second)

    text = sink.getvalue()
    assert "  bar =" in text
    assert "foo" not in text
    assert not text.endswith("}\n")


def test_update_end_to_end(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(
        reconcile,
        "latest_tag_of",
        lambda owner, repo, **kwargs: TagLookup(owner, repo, tag="v3.1.0"),
    )
    output = tmp_path / "data.nix"
    config = Config(orgs=(), slugs=("acme/terraform-provider-foo",), blacklist=frozenset())

    entries = tfprovider_manifest.update(
        config,
        output=str(output),
        fetcher=lambda owner, repo, rev: "abc123",
    )

    assert [entry.name for entry in entries] == ["foo"]
    assert output.read_text(encoding="utf-8") == (
        "# Generated by tfprovider-manifest\n"
        "{\n"
        "  foo =\n"
        "    {\n"
        '      owner   = "acme";\n'
        '      repo    = "terraform-provider-foo";\n'
        '      rev     = "v3.1.0";\n'
        '      version = "3.1.0";\n'
        '      sha256  = "abc123";\n'
        "    };\n"
        "}\n"
    )


def test_update_uses_configured_prefetcher(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(
        reconcile,
        "latest_tag_of",
        lambda owner, repo, **kwargs: TagLookup(owner, repo, tag="v1.0.0"),
    )
    seen: list[list[str]] = []

    def _run(args, **kwargs):  # type: ignore[no-untyped-def]
        import subprocess

        seen.append(args)
        return subprocess.CompletedProcess(args, 0, stdout="0xyz\n", stderr="")

    monkeypatch.setattr("tfprovider_manifest.fetch.subprocess.run", _run)
    config = Config(
        orgs=(),
        slugs=("acme/terraform-provider-foo",),
        blacklist=frozenset(),
        prefetch_command="my-prefetch",
        fetch_policy=RetryPolicy(max_attempts=1, delay=0.0),
    )

    entries = tfprovider_manifest.update(
        config, output=str(tmp_path / "providers.json"), format="json"
    )

    assert entries[0].sha256 == "0xyz"
    assert seen[0][0] == "my-prefetch"
    document = json.loads((tmp_path / "providers.json").read_text(encoding="utf-8"))
    assert document == {
        "foo": {
            "owner": "acme",
            "repo": "terraform-provider-foo",
            "rev": "v1.0.0",
            "version": "1.0.0",
            "sha256": "0xyz",
        }
    }


def test_failed_json_run_keeps_previous_manifest(tmp_path) -> None:
    output = tmp_path / "providers.json"
    output.write_text('{"old": {}}\n', encoding="utf-8")

    def _fail(owner: str, repo: str, rev: str) -> str:
        raise RetryExhausted(f"{owner}/{repo}@{rev}", 30, FetchError("gone"))

    with pytest.raises(RetryExhausted):
        write_manifest(str(output), REFS, fetcher=_fail, fmt="json")

    assert output.read_text(encoding="utf-8") == '{"old": {}}\n'


def test_json_write_manifest_replaces_file(tmp_path) -> None:
    output = tmp_path / "providers.json"
    output.write_text('{"old": {}}\n', encoding="utf-8")

    write_manifest(str(output), REFS, fetcher=_hashes, fmt="json")

    assert list(json.loads(output.read_text(encoding="utf-8"))) == ["bar", "foo"]
