"""
Shared constants for the website source fetcher.

Contains common configuration values used across multiple modules.
"""

import os

# Default user agent string for all HTTP requests
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

# Default request timeout in seconds (per proxy attempt)
DEFAULT_TIMEOUT = 30

# Worker pool size for the parallel crawl mode
DEFAULT_POOL_SIZE = os.cpu_count() or 4

# Proxy endpoints tried in order for every request.
# Prefixes ending in '=' or '?' take the percent-encoded target URL,
# anything else gets the raw target URL appended.
DEFAULT_PROXIES = (
    "https://api.allorigins.win/raw?url=",
    "https://corsproxy.io/?",
    "https://api.codetabs.com/v1/proxy?quest=",
    "https://corsproxy.org/?",
    "https://thingproxy.freeboard.io/fetch/",
    "https://cors.eu.org/",
    "https://cors-anywhere.herokuapp.com/",
)

# An empty proxy prefix sends the request straight to the target
DIRECT_PROXY = ""

# Initiator recorded for the seed document
ROOT_INITIATOR = "root"

# File extensions treated as static assets rather than navigable pages
ASSET_EXTENSIONS = (
    "js", "mjs", "css", "json", "xml",
    "png", "jpg", "jpeg", "gif", "webp", "svg", "ico", "avif",
    "woff", "woff2", "ttf", "otf", "eot",
    "mp4", "webm", "mp3", "ogg", "wav",
)

# Reference schemes that never point at a fetchable resource
SKIPPED_SCHEMES = ("data:", "blob:", "javascript:", "mailto:", "tel:")

# Model used for CDN lookups of failed library downloads
DEFAULT_CDN_MODEL = "gemini-2.5-flash"

# Sentinel the CDN lookup model answers with when it has no suggestion
CDN_NOT_FOUND = "NOT_FOUND"

# ETA smoothing for progress display
ETA_SMOOTHING_FACTOR = 0.1
ETA_WARMUP_ITEMS = 5
