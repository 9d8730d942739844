"""
Data models for Reddit Image Scraper.
"""
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Reddit caps a single listing page; larger limits are currently unreliable
MAX_ITEM_LIMIT = 50
UPPER_ITEM_LIMIT = 500
DEFAULT_ITEM_LIMIT = 50

# Start-of-feed paging cursor
START_CURSOR = "0"

REDDIT_USER_URL = "https://www.reddit.com/user/{name}"

CHANNEL_NAME_PATTERN = re.compile(r'^[a-zA-Z0-9_-]+$')

# Alternate sort mode names accepted from config and the command line
SORT_MODE_ALIASES = {"newest": "new"}


class LogLevel(Enum):
    """Valid log levels for scraper configuration."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class SortMode(Enum):
    """Supported Reddit listing sort modes."""
    DEFAULT = "default"
    NEW = "new"
    RISING = "rising"
    CONTROVERSIAL = "controversial"
    TOP = "top"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SortMode":
        """
        Parse a sort mode string.

        "newest" is an alias for NEW. "hot", empty values and anything
        unsupported collapse to DEFAULT.
        """
        if isinstance(value, SortMode):
            return value
        if not value:
            return cls.DEFAULT

        name = str(value).strip().lower()
        name = SORT_MODE_ALIASES.get(name, name)
        try:
            return cls(name)
        except ValueError:
            if name != "hot":
                logger.warning(f"Unsupported sort mode '{value}', using default feed")
            return cls.DEFAULT

    @property
    def path_segment(self) -> str:
        """URL path segment for this sort mode (empty for the default feed)."""
        return "" if self is SortMode.DEFAULT else self.value


def clamp_item_limit(limit: int) -> int:
    """
    Clamp a requested item limit.

    Anything over 50 is forced to 50, then anything outside (0, 500]
    is reset to 50.
    """
    if limit > MAX_ITEM_LIMIT:
        logger.warning(
            f"Option 'limit' is currently enforced to {MAX_ITEM_LIMIT} or less (got {limit})"
        )
        limit = MAX_ITEM_LIMIT

    if limit <= 0 or limit > UPPER_ITEM_LIMIT:
        limit = DEFAULT_ITEM_LIMIT

    return limit


@dataclass(frozen=True)
class FetchOptions:
    """Paging and sorting options for a single feed request."""

    sort_mode: SortMode = SortMode.DEFAULT
    item_limit: int = DEFAULT_ITEM_LIMIT
    page_cursor: str = START_CURSOR

    @classmethod
    def create(
        cls,
        sort_mode: Optional[Any] = None,
        item_limit: int = DEFAULT_ITEM_LIMIT,
        page_cursor: Optional[str] = None,
    ) -> "FetchOptions":
        """Build options, parsing the sort mode and clamping the item limit."""
        return cls(
            sort_mode=SortMode.parse(sort_mode),
            item_limit=clamp_item_limit(item_limit),
            page_cursor=page_cursor or START_CURSOR,
        )


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


@dataclass
class ListingEntry:
    """
    A single post from a Reddit JSON listing.

    Only the fields used for image extraction are kept; any of them
    may be missing in the feed.
    """

    domain: str = ""
    url: Optional[str] = None
    author: str = ""
    id: str = ""
    permalink: str = ""
    title: str = ""
    subreddit: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ListingEntry":
        """Build an entry; non-string values are treated as missing."""
        return cls(
            domain=_text(data.get("domain")),
            url=_text(data.get("url")) or None,
            author=_text(data.get("author")),
            id=_text(data.get("id")),
            permalink=_text(data.get("permalink")),
            title=_text(data.get("title")),
            subreddit=_text(data.get("subreddit")),
        )


@dataclass
class Listing:
    """Deserialized Reddit listing: ordered entries plus the next-page cursor."""

    entries: List[ListingEntry] = field(default_factory=list)
    after: Optional[str] = None


@dataclass(frozen=True)
class Author:
    """Reddit user that submitted a post."""

    name: str
    profile_link: str

    @classmethod
    def from_name(cls, name: str) -> "Author":
        return cls(name=name, profile_link=REDDIT_USER_URL.format(name=name))


@dataclass(frozen=True)
class ImageCandidate:
    """
    An image reference extracted from a listing entry.

    Immutable once built. An empty image_id means the candidate cannot be
    downloaded and is rejected at admission.
    """

    image_id: str  # Last URL path segment without extension (e.g., "abc123")
    source_link: str  # Absolute image URL (e.g., "https://i.imgur.com/abc123.png")
    post_id: str  # Reddit post ID
    post_link: str  # Permalink to the Reddit post
    title: str  # Post title
    author: Author
    channel: str  # Subreddit the post came from


class DownloadStatus(str, Enum):
    """Outcome of a single image download."""
    DOWNLOADED = "downloaded"
    RENAMED = "renamed"
    ALREADY_EXISTS = "already_exists"
    DUPLICATE_REMOVED = "duplicate_removed"
    FAILED = "failed"


@dataclass
class DownloadResult:
    """Result of a single image download."""

    status: DownloadStatus
    image_id: str
    path: Optional[Path] = None  # Final artifact path (unset on failure)
    error_kind: Optional[str] = None  # "NetworkError" or "FileSystemError"
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != DownloadStatus.FAILED


@dataclass
class ChannelReport:
    """Counts for one channel's run."""

    channel: str
    candidates: int = 0
    admitted: int = 0
    rejected: int = 0
    outcomes: Dict[str, int] = field(default_factory=dict)
    error: Optional[str] = None  # Set when the whole channel was skipped

    def record(self, result: DownloadResult):
        """Update counts from a download result."""
        key = result.status.value
        self.outcomes[key] = self.outcomes.get(key, 0) + 1

    @property
    def failed(self) -> int:
        return self.outcomes.get(DownloadStatus.FAILED.value, 0)

    @property
    def skipped(self) -> bool:
        return self.error is not None


@dataclass
class RunReport:
    """Aggregate of all channel reports for one run."""

    channels: List[ChannelReport] = field(default_factory=list)

    @property
    def admitted(self) -> int:
        return sum(c.admitted for c in self.channels)

    @property
    def failed(self) -> int:
        return sum(c.failed for c in self.channels)

    @property
    def skipped_channels(self) -> List[str]:
        return [c.channel for c in self.channels if c.skipped]


@dataclass(frozen=True)
class ScraperConfig:
    """
    Full scraper configuration.

    Loaded from config.yaml, environment and command-line overrides.
    Immutable (frozen) to prevent accidental modification after loading.
    """

    channels: Tuple[str, ...]
    output_root: Path = Path("images")
    sort_mode: SortMode = SortMode.DEFAULT
    item_limit: int = DEFAULT_ITEM_LIMIT
    image_host: str = "imgur"
    feed_base_url: str = "https://www.reddit.com"
    timeout: int = 30
    user_agent: Optional[str] = None
    log_level: LogLevel = LogLevel.INFO

    def __post_init__(self):
        """Validate configuration."""
        if not self.channels:
            raise ValueError("ScraperConfig.channels cannot be empty")
        for channel in self.channels:
            if not channel or not CHANNEL_NAME_PATTERN.match(channel):
                raise ValueError(f"Invalid subreddit name format: {channel}")
        if not self.image_host:
            raise ValueError("ScraperConfig.image_host cannot be empty")
        if type(self.timeout) is not int or self.timeout < 1:
            raise ValueError(f"ScraperConfig.timeout must be a positive integer, got: {self.timeout}")

    def fetch_options(self) -> FetchOptions:
        """Feed options derived from this configuration."""
        return FetchOptions.create(sort_mode=self.sort_mode, item_limit=self.item_limit)
