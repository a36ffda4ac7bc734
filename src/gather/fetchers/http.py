"""Gather single HTTP(S) resources with httpx."""

from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path
from urllib.parse import unquote, urlsplit

import httpx

from gather.core.context import Context
from gather.core.errors import Cancelled, HTTPError
from gather.core.models import HTTPMetadata, ProtocolCategory
from gather.core.paths import expand_tilde
from gather.repo.config import HTTPSettings

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "index.html"


def request_url(source: str) -> str:
    """Strip an ``http::`` prefix, defaulting to https when no scheme is left."""
    url = source[len("http::"):] if source.startswith("http::") else source
    if "://" not in url:
        url = f"https://{url}"
    return url


def target_path(url: str, destination: str) -> Path:
    """Resolve where the body of *url* is written.

    A destination that is an existing directory, or ends with a path
    separator, receives the last URL path segment as file name.
    """
    dest = Path(expand_tilde(destination))
    if dest.is_dir() or destination.endswith(("/", os.sep)):
        name = unquote(urlsplit(url).path.rstrip("/").rsplit("/", 1)[-1]) or DEFAULT_FILENAME
        return dest / name
    return dest


class HTTPGatherer:
    """Download one URL to a file.

    *transport* is handed to ``httpx.Client``; tests pass an
    ``httpx.MockTransport``.
    """

    category = ProtocolCategory.HTTP

    def __init__(
        self,
        settings: HTTPSettings | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.settings = settings or HTTPSettings()
        self.transport = transport

    def _client(self, ctx: Context) -> httpx.Client:
        timeout = self.settings.timeout
        remaining = ctx.remaining()
        if remaining is not None:
            timeout = min(timeout, remaining)
        return httpx.Client(
            follow_redirects=self.settings.follow_redirects,
            timeout=timeout,
            headers={"User-Agent": self.settings.user_agent},
            transport=self.transport,
        )

    def gather(self, ctx: Context, source: str, destination: str) -> HTTPMetadata:
        ctx.check()
        url = request_url(source)
        dest = target_path(url, destination)

        written = False
        try:
            with self._client(ctx) as client, client.stream("GET", url) as resp:
                if not resp.is_success:
                    raise HTTPError(
                        f"GET {url} returned {resp.status_code} {resp.reason_phrase}",
                        status_code=resp.status_code,
                    )
                dest.parent.mkdir(parents=True, exist_ok=True)
                hasher = hashlib.sha256()
                size = 0
                written = True
                with dest.open("wb") as fh:
                    for chunk in resp.iter_bytes(self.settings.chunk_size):
                        ctx.check()
                        fh.write(chunk)
                        hasher.update(chunk)
                        size += len(chunk)
                ctx.check()
                meta = HTTPMetadata(
                    url=url,
                    final_url=str(resp.url),
                    status_code=resp.status_code,
                    content_length=size,
                    content_type=resp.headers.get("content-type", ""),
                    sha256=hasher.hexdigest(),
                    destination=str(dest),
                )
        except (Cancelled, HTTPError):
            self._discard(dest, written)
            raise
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            self._discard(dest, written)
            raise HTTPError(f"GET {url} failed: {exc}") from exc
        except OSError as exc:
            self._discard(dest, written)
            raise HTTPError(f"cannot write {dest}: {exc}") from exc

        logger.info("Downloaded %s (%d bytes) -> %s", meta.final_url, meta.content_length, dest)
        return meta

    @staticmethod
    def _discard(dest: Path, written: bool) -> None:
        if not written:
            return
        try:
            dest.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove partial download %s: %s", dest, exc)
