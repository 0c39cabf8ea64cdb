"""
Data types shared by the crawler, transport and recovery components.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional

from .archive import Archive
from ..utils.constants import DEFAULT_USER_AGENT


class ConcurrencyMode(Enum):
    """How the crawler drains its queue."""

    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


class CrawlState(Enum):
    """Lifecycle of one discovery pass."""

    IDLE = "idle"
    CRAWLING = "crawling"
    SUCCESS = "success"
    PARTIAL_FAILURE = "partial-failure"
    DONE = "done"


@dataclass
class RequestOptions:
    """
    Caller supplied request settings forwarded on every proxied request.

    ``raw_headers`` accepts a pasted header block, one ``Name: value`` per
    line; those lines are applied after ``headers`` and before the dedicated
    fields, so the dedicated fields win.
    """

    headers: Dict[str, str] = field(default_factory=dict)
    user_agent: str = DEFAULT_USER_AGENT
    cookies: Optional[str] = None
    authorization: Optional[str] = None
    referer: Optional[str] = None
    raw_headers: Optional[str] = None

    def to_headers(self) -> Dict[str, str]:
        """Merge every header source into one mapping."""
        merged = dict(self.headers)

        if self.raw_headers:
            for line in self.raw_headers.splitlines():
                if ':' not in line:
                    continue
                name, value = line.split(':', 1)
                name = name.strip()
                if name:
                    merged[name] = value.strip()

        if self.user_agent:
            merged['User-Agent'] = self.user_agent
        if self.cookies:
            merged['Cookie'] = self.cookies
        if self.authorization:
            merged['Authorization'] = self.authorization
        if self.referer:
            merged['Referer'] = self.referer

        return merged


@dataclass(frozen=True)
class QueueItem:
    """A URL waiting to be fetched and the document that referenced it."""

    url: str
    initiator: str


@dataclass
class NetworkLogEntry:
    """Network outcome of one resource."""

    url: str
    initiator: str
    status: int = 0
    status_text: str = "Queued"
    content_type: str = "unknown"
    size: int = 0
    is_error: bool = False

    def to_dict(self) -> Dict:
        return asdict(self)


class NetworkLog:
    """
    Ordered list of network log entries with lookup by URL.

    Within one discovery pass each URL has exactly one entry, which is
    created as a ``Queued`` placeholder and updated in place.
    """

    def __init__(self, entries: Optional[List[NetworkLogEntry]] = None):
        self._entries: List[NetworkLogEntry] = []
        self._by_url: Dict[str, NetworkLogEntry] = {}
        for entry in entries or []:
            self.add(entry)

    def add(self, entry: NetworkLogEntry) -> NetworkLogEntry:
        self._entries.append(entry)
        self._by_url.setdefault(entry.url, entry)
        return entry

    def queued(self, url: str, initiator: str) -> NetworkLogEntry:
        """Create the placeholder entry for a newly discovered URL."""
        return self.add(NetworkLogEntry(url=url, initiator=initiator))

    def find(self, url: str) -> Optional[NetworkLogEntry]:
        return self._by_url.get(url)

    def find_all(self, url: str) -> List[NetworkLogEntry]:
        return [entry for entry in self._entries if entry.url == url]

    def update(self, url: str, initiator: str, **changes) -> NetworkLogEntry:
        """
        Update the entry for a URL, creating it if it does not exist yet.

        Args:
            url: Resource URL
            initiator: Initiator used when a new entry has to be created
            **changes: Field values to set

        Returns:
            The updated entry
        """
        entry = self.find(url)
        if entry is None:
            entry = self.queued(url, initiator)
        for name, value in changes.items():
            setattr(entry, name, value)
        return entry

    def errors(self) -> List[NetworkLogEntry]:
        return [entry for entry in self._entries if entry.is_error]

    def to_list(self) -> List[Dict]:
        return [entry.to_dict() for entry in self._entries]

    def __iter__(self) -> Iterator[NetworkLogEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, url: object) -> bool:
        return url in self._by_url


@dataclass(frozen=True)
class ProgressUpdate:
    """Payload of the progress channel."""

    message: str
    downloaded: int
    total: int


@dataclass(frozen=True)
class CrawlWarning:
    """Payload of the warning channel: one non-fatal resource failure."""

    url: str
    message: str


ProgressCallback = Callable[[ProgressUpdate], None]
WarningCallback = Callable[[CrawlWarning], None]


@dataclass
class CrawlResult:
    """Results of one discovery pass."""

    archive: Archive
    network_log: NetworkLog
    failed_urls: List[str] = field(default_factory=list)
    internal_links: List[str] = field(default_factory=list)
    state: CrawlState = CrawlState.SUCCESS
    duration_seconds: float = 0.0


@dataclass
class RetryResult:
    """Results of one retry pass."""

    archive: Archive
    network_log: NetworkLog
    still_failed_urls: List[str] = field(default_factory=list)
