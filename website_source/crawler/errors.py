"""
Exception types raised by the source acquisition pipeline.
"""

from typing import List, Optional, Tuple


class WebsiteSourceError(Exception):
    """Base class for all pipeline errors."""


class TransportError(WebsiteSourceError):
    """A single resource could not be retrieved."""

    def __init__(self, url: str, message: str, status: int = 0):
        super().__init__(message)
        self.url = url
        self.status = status


class AllProxiesExhausted(TransportError):
    """Every configured proxy failed for a URL."""

    def __init__(self, url: str, attempts: List[Tuple[str, str]]):
        """
        Args:
            url: Target URL
            attempts: (proxy, reason) pairs in the order they were tried
        """
        self.attempts = attempts
        last_reason = attempts[-1][1] if attempts else "no proxies configured"
        super().__init__(
            url,
            f"All proxies failed for {url} (last error: {last_reason})"
        )


class RootFetchError(WebsiteSourceError):
    """The seed document could not be retrieved; the crawl is aborted."""

    def __init__(self, url: str, cause: Optional[BaseException] = None):
        message = f"Failed to fetch main page {url}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.url = url
        self.cause = cause


class ParseError(WebsiteSourceError):
    """A document body could not be parsed."""


class ScriptParseError(ParseError):
    """A script could not be turned into a syntax tree."""


class RecoveryExhausted(WebsiteSourceError):
    """Neither a forced re-fetch nor a CDN lookup recovered a URL."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Could not recover {url}: {reason}")
        self.url = url
        self.reason = reason


class PatchFailure(WebsiteSourceError):
    """A referencing document could not be rewritten with inlined content."""

    def __init__(self, initiator: str, message: str):
        super().__init__(f"Cannot patch {initiator}: {message}")
        self.initiator = initiator
