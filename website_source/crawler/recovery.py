"""
Second-pass recovery of resources that failed during a crawl.

Each failed URL is re-fetched through the proxy chain with the cache
bypassed; scripts and stylesheets that still fail are looked up on a public
CDN. The inlining variant embeds recovered content as data URIs into the
documents that referenced it.
"""

import base64
import mimetypes
import re
from collections import OrderedDict
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse

from .archive import Archive
from .cache import FetchCache
from .cdn import CdnResolver
from .errors import PatchFailure, RecoveryExhausted, TransportError
from .models import (
    NetworkLog,
    ProgressCallback,
    ProgressUpdate,
    RequestOptions,
    RetryResult,
)
from .transport import FetchResponse, ProxyTransport
from ..utils.constants import ROOT_INITIATOR
from ..utils.log import get_logger
from ..utils.paths import archive_path, get_filename


UNKNOWN_INITIATOR = "Unknown"


def is_library_asset(url: str) -> bool:
    """Check whether a URL names a script or stylesheet worth a CDN lookup."""
    if url.startswith('data:'):
        return False
    return urlparse(url).path.lower().endswith(('.js', '.css'))


def base_name(file_name: str) -> str:
    """
    Cut a file name at its ``.min`` marker.

    ``jquery-3.6.0.min.js`` becomes ``jquery-3.6.0``; names without the
    marker, such as ``site.css``, keep their extension.
    """
    return file_name.split('.min')[0]


def is_plausible_cdn_url(candidate: Optional[str], failed_url: str) -> bool:
    """
    Check a CDN suggestion before trusting it.

    The suggestion must be an http(s) URL that mentions the failed file's
    base name. This is a substring check and can accept a similarly named
    but different library.
    """
    if not candidate or not isinstance(candidate, str):
        return False
    if not candidate.startswith(('http://', 'https://')):
        return False

    name = base_name(get_filename(failed_url))
    return bool(name) and name in candidate


def to_data_uri(content: bytes, content_type: str, url: str = "") -> str:
    """
    Encode content as a base64 data URI.

    Args:
        content: Raw bytes
        content_type: Reported content type (parameters are dropped)
        url: Original URL, used to guess the type when none was reported

    Returns:
        ``data:<mime>;base64,<payload>``
    """
    mime = (content_type or '').split(';')[0].strip()
    if not mime or mime == 'unknown':
        mime = mimetypes.guess_type(url)[0] or 'application/octet-stream'
    payload = base64.b64encode(content).decode('ascii')
    return f"data:{mime};base64,{payload}"


def url_variants(url: str) -> List[str]:
    """
    Textual forms under which a document may reference a URL.

    Returns:
        The absolute URL, its path, the path without leading slash and the
        trailing file name, longest first
    """
    path = urlparse(url).path
    variants = [url, path, path[1:], get_filename(url)]
    unique = {variant for variant in variants if variant}
    return sorted(unique, key=len, reverse=True)


def inline_references(text: str, url: str, data_uri: str) -> Tuple[str, int]:
    """
    Replace every reference to a URL in a document with a data URI.

    Args:
        text: Document content
        url: URL whose references are replaced
        data_uri: Replacement

    Returns:
        (patched text, number of replacements)
    """
    variants = url_variants(url)
    if not variants:
        return text, 0

    pattern = re.compile('|'.join(re.escape(variant) for variant in variants))
    return pattern.subn(lambda _match: data_uri, text)


class RecoveryEngine:
    """
    Retries failed downloads from a previous crawl pass.

    Order of attempts per URL: forced re-fetch through the proxy chain, then
    (for .js/.css files) a CDN lookup fetched directly.
    """

    def __init__(
        self,
        cache: FetchCache,
        resolver: Optional[CdnResolver] = None,
        transport: Optional[ProxyTransport] = None,
        options: Optional[RequestOptions] = None
    ):
        """
        Initialize the recovery engine.

        Args:
            cache: Fetch cache used for forced re-fetches
            resolver: CDN resolver (CDN fallback is skipped when None)
            transport: Transport for direct CDN fetches (default: the cache's)
            options: Request options forwarded on re-fetches
        """
        self.cache = cache
        self.resolver = resolver
        self.transport = transport or cache.transport
        self.options = options
        self.logger = get_logger("recovery")

    async def retry(
        self,
        failed_urls: List[str],
        archive: Archive,
        network_log: NetworkLog,
        on_progress: Optional[ProgressCallback] = None
    ) -> RetryResult:
        """
        Retry failed URLs and store recovered content in the archive.

        Args:
            failed_urls: URLs that failed in the crawl pass
            archive: Archive of the crawl pass (updated in place)
            network_log: Network log of the crawl pass (updated in place)
            on_progress: Progress callback

        Returns:
            RetryResult with the URLs that are still missing
        """
        still_failed: List[str] = []
        downloaded = 0
        total = len(failed_urls)

        for url in failed_urls:
            self._report(on_progress, f"Force retrying: {url}", downloaded, total)

            try:
                response, via_cdn = await self._recover(url, on_progress, downloaded, total)
            except RecoveryExhausted as e:
                self._mark_still_failed(network_log, url, e)
                still_failed.append(url)
                continue

            tag = "(via CDN)" if via_cdn else "(Retried)"
            network_log.update(
                url,
                UNKNOWN_INITIATOR,
                status=response.status,
                status_text=f"{response.status_text} {tag}".strip(),
                content_type=response.content_type,
                size=response.size,
                is_error=False
            )
            archive.put(archive_path(url), response.body)
            downloaded += 1
            self.logger.info(f"Recovered {url} {tag}")

        self._report(on_progress, "Retry complete.", downloaded, total)
        return RetryResult(archive=archive, network_log=network_log, still_failed_urls=still_failed)

    async def retry_as_data_uri(
        self,
        failed_urls: List[str],
        archive: Archive,
        network_log: NetworkLog,
        on_progress: Optional[ProgressCallback] = None
    ) -> RetryResult:
        """
        Retry failed URLs and inline recovered content into its referrers.

        Recovered content is converted to a data URI and written over every
        reference in the documents that initiated the failed request.
        Documents that cannot be patched are logged and skipped.

        Args:
            failed_urls: URLs that failed in the crawl pass
            archive: Archive of the crawl pass (updated in place)
            network_log: Network log of the crawl pass (updated in place)
            on_progress: Progress callback

        Returns:
            RetryResult with the URLs that are still missing
        """
        still_failed: List[str] = []
        downloaded = 0
        total = len(failed_urls)
        patches: Dict[str, List[Tuple[str, str]]] = OrderedDict()

        for url in failed_urls:
            self._report(on_progress, f"Resolving: {url}", downloaded, total)

            try:
                response, _ = await self._recover(url, on_progress, downloaded, total)
            except RecoveryExhausted as e:
                self._mark_still_failed(network_log, url, e)
                still_failed.append(url)
                continue

            data_uri = to_data_uri(response.body, response.content_type, url)

            for entry in network_log.find_all(url):
                if entry.initiator in (ROOT_INITIATOR, UNKNOWN_INITIATOR):
                    continue
                replacements = patches.setdefault(entry.initiator, [])
                if (url, data_uri) not in replacements:
                    replacements.append((url, data_uri))

            network_log.update(
                url,
                UNKNOWN_INITIATOR,
                status=200,
                status_text="OK (Resolved as Data URI)",
                content_type=response.content_type,
                size=response.size,
                is_error=False
            )
            downloaded += 1

        for initiator, replacements in patches.items():
            self._report(
                on_progress,
                f"Patching source: {get_filename(initiator) or initiator}",
                downloaded,
                total
            )
            try:
                self._patch(archive, initiator, replacements)
            except PatchFailure as e:
                self.logger.warning(str(e))

        self._report(on_progress, "Data URI resolution complete.", downloaded, total)
        return RetryResult(archive=archive, network_log=network_log, still_failed_urls=still_failed)

    async def _recover(
        self,
        url: str,
        on_progress: Optional[ProgressCallback],
        downloaded: int,
        total: int
    ) -> Tuple[FetchResponse, bool]:
        """
        Try every recovery step for one URL.

        Returns:
            (response, True if it came from a CDN)

        Raises:
            RecoveryExhausted: If no step succeeded
        """
        try:
            response = await self.cache.fetch(url, self.options, force_fresh=True)
            return response, False
        except TransportError as e:
            reason = str(e)
            self.logger.warning(f"Proxy retry failed for {url}: {e}")

        if self.resolver is None or not is_library_asset(url):
            raise RecoveryExhausted(url, reason)

        name = get_filename(url)
        self._report(on_progress, f"CDN lookup for: {name}", downloaded, total)

        try:
            cdn_url = await self.resolver.find_alternate_source(url)
        except Exception as e:
            self.logger.error(f"CDN lookup failed for {url}: {e}")
            raise RecoveryExhausted(url, f"CDN lookup failed: {e}") from e

        if not is_plausible_cdn_url(cdn_url, url):
            if cdn_url:
                self.logger.warning(f"Ignoring CDN suggestion for {name}: {cdn_url}")
            raise RecoveryExhausted(url, f"{reason}; no CDN alternative found")

        self._report(on_progress, f"Found CDN: {cdn_url}", downloaded, total)

        try:
            response = await self.transport.fetch_direct(cdn_url)
        except TransportError as e:
            self.logger.error(f"CDN fetch failed for {url}: {e}")
            raise RecoveryExhausted(url, f"CDN fetch failed: {e}") from e

        return response, True

    def _patch(
        self,
        archive: Archive,
        initiator: str,
        replacements: List[Tuple[str, str]]
    ) -> None:
        path = archive_path(initiator)
        content = archive.get_text(path)
        if content is None:
            raise PatchFailure(initiator, f"{path} is not in the archive")

        total_replaced = 0
        for url, data_uri in replacements:
            content, count = inline_references(content, url, data_uri)
            total_replaced += count

        archive.put(path, content)
        self.logger.info(f"Inlined {total_replaced} reference(s) into {path}")

    def _mark_still_failed(self, network_log: NetworkLog, url: str, error: RecoveryExhausted) -> None:
        entry = network_log.find(url)
        if entry is not None:
            entry.status_text += f" | Retry failed: {error.reason}"
        self.logger.warning(str(error))

    @staticmethod
    def _report(
        on_progress: Optional[ProgressCallback],
        message: str,
        downloaded: int,
        total: int
    ) -> None:
        if on_progress is not None:
            on_progress(ProgressUpdate(message=message, downloaded=downloaded, total=total))
