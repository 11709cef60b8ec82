"""HTTP source for published CA bundles.

The source is a plain directory listing: an HTML page whose anchors point
at ``.pem``/``.crt`` files. Every matching file is downloaded on each fetch;
nothing is cached between cycles.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Protocol
from urllib.parse import unquote, urljoin, urlsplit

import aiohttp
from bs4 import BeautifulSoup

from cabundle._constants import USER_AGENT
from cabundle.exceptions import FetchError
from cabundle.models.bundle import BundleRecord
from cabundle.naming import has_bundle_suffix

_logger = logging.getLogger(__name__)


class BundleSource(Protocol):
    """Structural fetch interface used by the reconciler.

    Having a protocol here keeps the reconciler independent of HTTP and
    lets tests pass in-memory sources.
    """

    async def fetch(self, base_url: str) -> list[BundleRecord]:
        ...


def _directory_url(base_url: str) -> str:
    """Treat *base_url* as a directory so relative hrefs resolve under it."""
    return base_url if base_url.endswith("/") else f"{base_url}/"


def _logical_name(href: str) -> str:
    return unquote(posixpath.basename(urlsplit(href).path))


def parse_listing(document: str) -> list[str]:
    """Return the bundle hrefs found in an HTML listing, in document order.

    Anchors whose path does not end in a recognized suffix are ignored.
    Repeated hrefs are returned once. Raises ``ValueError`` for an href
    that is not a valid URL.
    """
    soup = BeautifulSoup(document, "html.parser")
    hrefs: list[str] = []
    seen: set[str] = set()
    for anchor in soup.find_all("a", href=True):
        href = str(anchor["href"]).strip()
        if href in seen or not has_bundle_suffix(urlsplit(href).path):
            continue
        if not _logical_name(href):
            continue
        seen.add(href)
        hrefs.append(href)
    return hrefs


class HttpBundleFetcher:
    """Download every bundle linked from a listing page."""

    def __init__(self, http_session: aiohttp.ClientSession) -> None:
        self._http = http_session

    async def _get(self, url: str) -> bytes:
        headers = {"user-agent": USER_AGENT}
        _logger.debug("GET %s", url)
        try:
            async with self._http.get(url, headers=headers) as resp:
                body = await resp.read()
                if not 200 <= resp.status < 300:
                    raise FetchError(
                        f"HTTP {resp.status} from {url}",
                        url=url,
                        status_code=resp.status,
                    )
        except FetchError:
            raise
        except aiohttp.ClientError as exc:
            raise FetchError(f"Request to {url} failed: {exc}", url=url) from exc
        return body

    async def fetch(self, base_url: str) -> list[BundleRecord]:
        """Fetch the listing at *base_url* and download every bundle.

        Raises :class:`FetchError` if the listing or any single bundle
        cannot be retrieved; partial results are never returned.
        """
        raw_listing = await self._get(base_url)
        try:
            listing = raw_listing.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise FetchError(f"Listing at {base_url} is not UTF-8 text", url=base_url) from exc

        try:
            hrefs = parse_listing(listing)
        except ValueError as exc:
            raise FetchError(f"Listing at {base_url} has a malformed link: {exc}", url=base_url) from exc
        _logger.debug("Listing %s has %d bundle entries", base_url, len(hrefs))

        directory = _directory_url(base_url)
        records: list[BundleRecord] = []
        for href in hrefs:
            try:
                url = urljoin(directory, href)
            except ValueError as exc:
                raise FetchError(f"Cannot resolve {href!r} against {base_url}: {exc}", url=base_url) from exc
            content = await self._get(url)
            try:
                content.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise FetchError(f"Bundle at {url} is not UTF-8 text", url=url) from exc
            records.append(BundleRecord(logical_name=_logical_name(href), content=content))

        return records
