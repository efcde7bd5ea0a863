"""Streaming archive downloads."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Optional, Protocol
from urllib.parse import urlparse

import httpx

from jpre.core.errors import TransportError
from jpre.index.foojay import new_http_client

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 64

ProgressCallback = Callable[[int, Optional[int]], None]


class ByteSink(Protocol):
    def write(self, chunk: bytes) -> int: ...


class Downloader(Protocol):
    def download(self, url: str, sink: ByteSink, *, on_progress: ProgressCallback | None = None) -> int: ...


def _content_length(response: httpx.Response) -> int | None:
    raw = response.headers.get("Content-Length")
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def download_source(url: str) -> str:
    parsed = urlparse(url)
    return parsed.netloc or url


class HttpDownloader:
    """Streams a URL into a byte sink, reporting ``(downloaded, total)`` as it goes."""

    def __init__(self, *, client: httpx.Client | None = None, timeout_seconds: float = 60.0) -> None:
        self._client = client if client is not None else new_http_client(timeout_seconds=timeout_seconds)

    def close(self) -> None:
        self._client.close()

    def download(self, url: str, sink: ByteSink, *, on_progress: ProgressCallback | None = None) -> int:
        downloaded = 0
        logger.debug("Downloading %s", url)
        try:
            with self._client.stream("GET", url) as response:
                response.raise_for_status()
                total = _content_length(response)
                if on_progress is not None:
                    on_progress(0, total)
                for chunk in response.iter_bytes(chunk_size=CHUNK_SIZE):
                    if not chunk:
                        continue
                    sink.write(chunk)
                    downloaded += len(chunk)
                    if on_progress is not None:
                        on_progress(downloaded, total)
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise TransportError(
                f"Download failed from {download_source(url)} ({status}): {url}",
                status_code=status,
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Download failed from {download_source(url)}: {exc}") from exc
        return downloaded
