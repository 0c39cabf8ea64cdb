"""
Utility modules for website source acquisition.

Contains logging, URL/path handling, progress helpers and constants.
"""

from .log import setup_logger, get_logger
from .paths import archive_path, normalize_url, prepare_root_url, resolve_url, site_archive_name
from .progress import EtaEstimator
from .constants import (
    DEFAULT_USER_AGENT,
    DEFAULT_TIMEOUT,
    DEFAULT_POOL_SIZE,
    DEFAULT_PROXIES,
)

__all__ = [
    "setup_logger",
    "get_logger",
    "archive_path",
    "normalize_url",
    "prepare_root_url",
    "resolve_url",
    "site_archive_name",
    "EtaEstimator",
    "DEFAULT_USER_AGENT",
    "DEFAULT_TIMEOUT",
    "DEFAULT_POOL_SIZE",
    "DEFAULT_PROXIES",
]
