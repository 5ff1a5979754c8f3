from __future__ import annotations

import subprocess
import sys
from typing import Callable

from .retry import RetryPolicy

DEFAULT_PREFETCH_COMMAND = "nix-prefetch-url"

Prefetcher = Callable[[str, str, str], str]


class FetchError(RuntimeError):
    pass


def _log(message: str) -> None:
    from .runtime import get_verbose_logging

    if get_verbose_logging():
        print(f"[fetch] {message}", file=sys.stderr, flush=True)


def archive_url(owner: str, repo: str, rev: str) -> str:
    return f"https://github.com/{owner}/{repo}/archive/{rev}.tar.gz"


def prefetch_archive(
    owner: str, repo: str, rev: str, *, command: str = DEFAULT_PREFETCH_COMMAND
) -> str:
    """
    Download and unpack the tarball of ``owner/repo`` at ``rev`` into the Nix
    store and return the hash of its unpacked contents.
    """
    url = archive_url(owner, repo, rev)
    _log(f"{command} --unpack {url}")
    try:
        result = subprocess.run(
            [command, "--unpack", url],
            check=True,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as exc:
        raise FetchError(f"{command} not found on PATH") from exc
    except subprocess.CalledProcessError as exc:
        detail = (exc.stderr or "").strip().splitlines()
        reason = detail[-1] if detail else f"exit status {exc.returncode}"
        raise FetchError(f"{command} failed for {url}: {reason}") from exc

    lines = [line.strip() for line in result.stdout.splitlines() if line.strip()]
    if not lines:
        raise FetchError(f"{command} printed no hash for {url}")
    return lines[-1]


def make_prefetcher(command: str = DEFAULT_PREFETCH_COMMAND) -> Prefetcher:
    def prefetch(owner: str, repo: str, rev: str) -> str:
        return prefetch_archive(owner, repo, rev, command=command)

    return prefetch


def fetch(
    owner: str,
    repo: str,
    rev: str,
    *,
    policy: RetryPolicy | None = None,
    prefetch: Prefetcher = prefetch_archive,
    sleep: Callable[[float], None] | None = None,
) -> str:
    """
    Return the content hash of ``owner/repo`` at ``rev``, retrying every
    failure alike until the policy gives up with ``RetryExhausted``.
    """
    if policy is None:
        from .runtime import get_fetch_delay, get_fetch_max_attempts

        policy = RetryPolicy(
            max_attempts=get_fetch_max_attempts(), delay=get_fetch_delay()
        )
    kwargs = {} if sleep is None else {"sleep": sleep}
    return policy.call(
        lambda: prefetch(owner, repo, rev),
        description=f"{owner}/{repo}@{rev}",
        **kwargs,
    )
