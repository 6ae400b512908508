from __future__ import annotations

import logging
from pathlib import Path

import httpx

from .config import DEFAULT_TIMEOUT_S
from .errors import FilesystemError, TransferError, TransferHTTPError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


class GoblinClient:
    """
    Thin synchronous HTTP client used for manifest and artifact downloads.
    """

    def __init__(
        self,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        default_headers: dict[str, str] | None = None,
    ) -> None:
        self.timeout_s = timeout_s
        self._default_headers = dict(default_headers or {})
        self._http = httpx.Client(timeout=timeout_s, follow_redirects=True)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "GoblinClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def get_bytes(self, url: str) -> bytes:
        logger.debug("GET %s", url)
        try:
            resp = self._http.get(url, headers=self._default_headers)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransferError(f"Request failed: {e}") from e
        if resp.status_code >= 400:
            raise TransferHTTPError(resp.status_code, url)
        return resp.content

    def download(self, url: str, destination: Path) -> httpx.Headers:
        """
        Stream ``url`` into ``destination`` and return the response headers.

        The destination is only written once the server answered with a
        success status, so an HTTP error never leaves an empty file behind.
        """
        logger.debug("Downloading %s -> %s", url, destination)
        try:
            with self._http.stream("GET", url, headers=self._default_headers) as resp:
                if resp.status_code >= 400:
                    raise TransferHTTPError(resp.status_code, url)
                try:
                    with destination.open("wb") as out:
                        for chunk in resp.iter_bytes(_CHUNK_SIZE):
                            out.write(chunk)
                except OSError as e:
                    raise FilesystemError(f"Could not write {destination}: {e}") from e
                return resp.headers
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransferError(f"Download of {url} failed: {e}") from e
