"""
Crawler module for website source acquisition.

Contains components for fetching, extracting, scheduling, archiving and
recovering a site's static sources.
"""

from .archive import Archive, format_bytes
from .cache import FetchCache
from .cdn import CdnResolver, GeminiCdnResolver
from .crawler import SourceCrawler, fetch_website_source
from .errors import (
    AllProxiesExhausted,
    ParseError,
    PatchFailure,
    RecoveryExhausted,
    RootFetchError,
    ScriptParseError,
    TransportError,
    WebsiteSourceError,
)
from .extractor import ResourceExtractor, extract_internal_links
from .models import (
    ConcurrencyMode,
    CrawlResult,
    CrawlState,
    CrawlWarning,
    NetworkLog,
    NetworkLogEntry,
    ProgressUpdate,
    QueueItem,
    RequestOptions,
    RetryResult,
)
from .recovery import RecoveryEngine
from .transport import FetchResponse, ProxyTransport

__all__ = [
    "Archive",
    "format_bytes",
    "FetchCache",
    "CdnResolver",
    "GeminiCdnResolver",
    "SourceCrawler",
    "fetch_website_source",
    "ResourceExtractor",
    "extract_internal_links",
    "RecoveryEngine",
    "FetchResponse",
    "ProxyTransport",
    # Data model
    "ConcurrencyMode",
    "CrawlResult",
    "CrawlState",
    "CrawlWarning",
    "NetworkLog",
    "NetworkLogEntry",
    "ProgressUpdate",
    "QueueItem",
    "RequestOptions",
    "RetryResult",
    # Errors
    "WebsiteSourceError",
    "TransportError",
    "AllProxiesExhausted",
    "RootFetchError",
    "ParseError",
    "ScriptParseError",
    "RecoveryExhausted",
    "PatchFailure",
]
