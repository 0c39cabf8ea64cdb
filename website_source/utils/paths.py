"""
Path and URL utilities for the website source fetcher.

Provides URL resolution, origin checks, and archive path derivation.
"""

import re
from typing import Optional
from urllib.parse import quote, urljoin, urlparse, urlunparse

from .constants import ASSET_EXTENSIONS, SKIPPED_SCHEMES


ASSET_EXTENSION_PATTERN = re.compile(
    r'\.(' + '|'.join(ASSET_EXTENSIONS) + r')$',
    re.IGNORECASE
)

DEFAULT_PORTS = {'http': 80, 'https': 443}


def normalize_url(url: str) -> str:
    """
    Canonicalize an absolute URL so equal resources compare equal.

    The scheme and host are lowercased, a default port is dropped, an empty
    path becomes ``/`` and the fragment is removed.

    Args:
        url: Absolute URL

    Returns:
        Normalized URL string

    Raises:
        ValueError: If the URL has an invalid port
    """
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()

    # hostname is already lowercased by urllib
    host = parsed.hostname or ''
    if ':' in host:
        host = f"[{host}]"

    port = parsed.port
    if port is not None and port != DEFAULT_PORTS.get(scheme):
        host = f"{host}:{port}"

    userinfo = parsed.netloc.rpartition('@')[0]
    netloc = f"{userinfo}@{host}" if userinfo else host

    return urlunparse((
        scheme,
        netloc,
        parsed.path or '/',
        parsed.params,
        parsed.query,
        ''  # Remove fragment
    ))


def prepare_root_url(url: str) -> str:
    """
    Validate and normalize a user supplied root URL.

    Args:
        url: URL string as typed by the user

    Returns:
        Absolute URL with a scheme and a non-empty path

    Raises:
        ValueError: If the URL has no host
    """
    url = url.strip()

    # Add protocol if missing
    if not url.lower().startswith(('http://', 'https://')):
        url = 'https://' + url

    parsed = urlparse(url)
    if not parsed.netloc or not parsed.hostname:
        raise ValueError(f"Invalid URL: {url}")

    return normalize_url(url)


def resolve_url(reference: Optional[str], base_url: str) -> Optional[str]:
    """
    Resolve a reference found in a document against the document URL.

    Args:
        reference: Raw reference (relative or absolute)
        base_url: URL of the document containing the reference

    Returns:
        Normalized absolute http(s) URL, or None when the reference
        cannot point at a fetchable resource
    """
    if not reference:
        return None

    reference = reference.strip()
    if not reference or reference.startswith('#'):
        return None
    if reference.lower().startswith(SKIPPED_SCHEMES):
        return None

    try:
        absolute = urljoin(base_url, reference)
        parsed = urlparse(absolute)
        if parsed.scheme not in ('http', 'https') or not parsed.hostname:
            return None
        return normalize_url(absolute)
    except ValueError:
        return None


def get_origin(url: str) -> str:
    """
    Get the origin (scheme and host) of a URL.

    Args:
        url: URL to inspect

    Returns:
        Origin string (e.g., 'https://example.com')
    """
    parsed = urlparse(url)
    return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}"


def is_same_origin(url: str, base_url: str) -> bool:
    """Check whether two URLs share scheme, host and port."""
    return get_origin(url) == get_origin(base_url)


def get_hostname(url: str) -> str:
    """Get the lowercase host name of a URL."""
    return (urlparse(url).hostname or '').lower()


def has_asset_extension(path: str) -> bool:
    """
    Check whether a path or URL ends in a known static asset extension.

    Args:
        path: URL path or full URL (query strings are not stripped)

    Returns:
        True if the extension marks a static asset
    """
    return bool(ASSET_EXTENSION_PATTERN.search(path))


def archive_path(url: str) -> str:
    """
    Derive the archive-relative path for a fetched URL.

    The origin and leading slash are stripped; the root document maps to
    ``index.html`` and directory-style URLs get ``index.html`` appended.

    Args:
        url: Absolute resource URL

    Returns:
        Relative path used as the archive key
    """
    path = urlparse(url).path[1:]

    if not path:
        return "index.html"
    if path.endswith('/'):
        return path + "index.html"

    return path


def get_filename(url: str) -> str:
    """
    Get the trailing file name of a URL path.

    Args:
        url: Absolute URL

    Returns:
        Last path segment (may be empty for directory URLs)
    """
    return urlparse(url).path.rsplit('/', 1)[-1]


def site_archive_name(url: str) -> str:
    """
    Build the download file name for a site archive.

    Args:
        url: Root URL of the crawl

    Returns:
        File name such as ``example_com_source.zip``
    """
    host = get_hostname(url) or "site"
    return f"{host.replace('.', '_')}_source.zip"


def build_proxied_url(proxy: str, url: str) -> str:
    """
    Route a target URL through a proxy prefix.

    Args:
        proxy: Proxy prefix (empty string for a direct request)
        url: Target URL

    Returns:
        URL to request
    """
    if not proxy:
        return url
    if proxy.endswith(('=', '?')):
        return proxy + quote(url, safe='')
    return proxy + url
