"""
Resource extractor for discovering the URLs a document references.

Uses BeautifulSoup for HTML, regular expressions for CSS, a tree-sitter
syntax tree for JavaScript and the JSON parser for web app manifests.
"""

import json
import re
from typing import Iterable, List, Optional, Set
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from .javascript import ScriptResourceFinder
from ..utils.log import get_logger
from ..utils.paths import has_asset_extension, is_same_origin, resolve_url


# url(...) and @import "..." references in stylesheets
CSS_URL_PATTERN = re.compile(
    r'url\(\s*([\'"]?)(.*?)\1\s*\)|@import\s*[\'"](.*?)[\'"]'
)

# Elements whose src attribute points at a resource
SRC_SELECTOR = (
    'script[src], img[src], audio[src], video[src], source[src], '
    'iframe[src], embed[src], track[src]'
)


def parse_html(html: str) -> BeautifulSoup:
    """
    Parse HTML into a document tree.

    Args:
        html: HTML content

    Returns:
        BeautifulSoup document
    """
    try:
        return BeautifulSoup(html, 'lxml')
    except Exception:
        # Fallback to html.parser if lxml fails
        return BeautifulSoup(html, 'html.parser')


def find_css_references(css: str) -> List[str]:
    """
    Find raw url() and @import references in CSS text.

    Args:
        css: Stylesheet or inline style content

    Returns:
        Unresolved references in source order
    """
    references = []
    for match in CSS_URL_PATTERN.finditer(css):
        reference = match.group(2) or match.group(3)
        if reference:
            references.append(reference)
    return references


def parse_srcset(srcset: str) -> List[str]:
    """
    Parse a srcset attribute and extract its URLs.

    Args:
        srcset: srcset attribute value

    Returns:
        List of URLs from srcset
    """
    urls = []
    for part in srcset.split(','):
        candidate = part.strip().split()
        if candidate:
            urls.append(candidate[0])
    return urls


class ResourceExtractor:
    """
    Extracts referenced resource URLs from fetched documents.

    The parser is chosen from the content type; unknown content types
    yield no resources.
    """

    def __init__(self):
        self.logger = get_logger("extractor")
        self.scripts = ScriptResourceFinder()

    def extract(self, content_type: str, body: str, base_url: str) -> Set[str]:
        """
        Extract all resources referenced by a document.

        Args:
            content_type: MIME type reported for the document
            body: Decoded document content
            base_url: URL of the document (for resolving relative URLs)

        Returns:
            Set of absolute resource URLs
        """
        content_type = (content_type or '').lower()

        if 'html' in content_type:
            return self.extract_html(body, base_url)
        if 'css' in content_type:
            return self.extract_css(body, base_url)
        if 'javascript' in content_type or 'ecmascript' in content_type:
            return self.extract_javascript(body, base_url)
        if 'json' in content_type or urlparse(base_url).path.endswith('.webmanifest'):
            return self.extract_manifest(body, base_url)

        return set()

    def extract_html(self, html: str, base_url: str) -> Set[str]:
        """
        Extract resources from HTML: linked files, media sources, srcsets,
        posters, object data and url() references in styles.
        """
        soup = parse_html(html)
        references: List[Optional[str]] = []

        for link in soup.select('link[href]'):
            references.append(link.get('href'))

        for element in soup.select(SRC_SELECTOR):
            references.append(element.get('src'))

        for obj in soup.select('object[data]'):
            references.append(obj.get('data'))

        for element in soup.select('img[srcset], source[srcset]'):
            references.extend(parse_srcset(element.get('srcset', '')))

        for video in soup.select('video[poster]'):
            references.append(video.get('poster'))

        # Lazy-loaded images
        for img in soup.select('img[data-src]'):
            references.append(img.get('data-src'))

        for element in soup.select('[style]'):
            references.extend(find_css_references(element.get('style', '')))

        for style in soup.find_all('style'):
            references.extend(find_css_references(style.get_text()))

        resources = self._resolve_all(references, base_url)
        self.logger.debug(f"Extracted {len(resources)} resources from {base_url}")
        return resources

    def extract_css(self, css: str, base_url: str) -> Set[str]:
        """Extract url() and @import references from a stylesheet."""
        return self._resolve_all(find_css_references(css), base_url)

    def extract_javascript(self, source: str, base_url: str) -> Set[str]:
        """Extract dynamic imports and asset-like string literals from a script."""
        return self._resolve_all(self.scripts.find(source), base_url)

    def extract_manifest(self, content: str, base_url: str) -> Set[str]:
        """
        Extract icons, screenshots and the start URL from a web app manifest.

        Malformed JSON yields no resources.
        """
        try:
            manifest = json.loads(content)
        except ValueError as e:
            self.logger.warning(f"Failed to parse manifest {base_url}: {e}")
            return set()

        if not isinstance(manifest, dict):
            return set()

        references: List[Optional[str]] = []
        for key in ('icons', 'screenshots'):
            entries = manifest.get(key) or []
            if not isinstance(entries, list):
                continue
            for entry in entries:
                if isinstance(entry, dict) and isinstance(entry.get('src'), str):
                    references.append(entry['src'])

        start_url = manifest.get('start_url')
        if isinstance(start_url, str):
            references.append(start_url)

        return self._resolve_all(references, base_url)

    def _resolve_all(self, references: Iterable[Optional[str]], base_url: str) -> Set[str]:
        resources = set()
        for reference in references:
            full_url = resolve_url(reference, base_url)
            if full_url:
                resources.add(full_url)
        return resources


def extract_internal_links(html: str, base_url: str) -> Set[str]:
    """
    Extract same-origin navigation links from an HTML page.

    Anchors pointing at fragments, mail or phone links, other origins or
    static asset files are skipped.

    Args:
        html: HTML content of the page
        base_url: URL of the page

    Returns:
        Set of absolute page URLs
    """
    soup = parse_html(html)
    links = set()

    for anchor in soup.find_all('a', href=True):
        href = anchor.get('href', '').strip()

        if not href or href.startswith(('#', 'mailto:', 'tel:')):
            continue

        full_url = resolve_url(href, base_url)
        if not full_url or not is_same_origin(full_url, base_url):
            continue

        if has_asset_extension(urlparse(full_url).path):
            continue

        links.add(full_url)

    return links
