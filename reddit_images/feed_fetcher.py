"""
Reddit JSON listing fetcher.
"""
import json
import logging
import requests
from typing import Any, Dict, Optional

from reddit_images.errors import DecodeError, NetworkError
from reddit_images.models import FetchOptions, Listing, ListingEntry

logger = logging.getLogger(__name__)


class FeedFetcher:
    """
    Fetches and deserializes a subreddit's JSON listing.

    Features:
    - Sort mode and item limit encoded into the request URL
    - Custom User-Agent header (required by Reddit)
    - Single attempt per call; failures are raised, never retried
    """

    DEFAULT_BASE_URL = "https://www.reddit.com"
    DEFAULT_USER_AGENT = "reddit-images/1.0 (subreddit image downloader)"

    def __init__(self, base_url: Optional[str] = None, timeout: int = 30, user_agent: Optional[str] = None):
        """
        Initialize feed fetcher.

        Args:
            base_url: Reddit base URL
            timeout: Request timeout in seconds
            user_agent: Custom User-Agent string (Reddit requires this)
        """
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent or self.DEFAULT_USER_AGENT

    def build_url(self, channel: str, options: FetchOptions) -> str:
        """
        Build the listing URL for a subreddit.

        The default sort mode requests the subreddit's front listing
        (".../r/<channel>/.json").
        """
        return (
            f"{self.base_url}/r/{channel}/{options.sort_mode.path_segment}.json"
            f"?limit={options.item_limit}&after={options.page_cursor}"
        )

    def fetch(self, channel: str, options: Optional[FetchOptions] = None) -> Optional[Listing]:
        """
        Fetch and parse a subreddit listing.

        Args:
            channel: Subreddit name (without r/)
            options: Paging and sorting options

        Returns:
            Parsed Listing, or None if the body holds no listing

        Raises:
            ValueError: If channel is empty
            NetworkError: On transport failure or non-2xx status
            DecodeError: If the body is not a JSON listing
        """
        if not channel:
            raise ValueError("subreddit is required for downloading")

        options = options or FetchOptions()
        url = self.build_url(channel, options)
        logger.info(f"Fetching feed from {url}")

        headers = {"User-Agent": self.user_agent}
        try:
            with requests.Session() as session:
                response = session.get(url, timeout=self.timeout, headers=headers)
                response.raise_for_status()
                body = response.text
        except requests.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            raise NetworkError(f"Feed request failed for r/{channel}: {e}", url=url, status_code=status_code) from e
        except requests.RequestException as e:
            raise NetworkError(f"Feed request failed for r/{channel}: {e}", url=url) from e

        listing = self.parse_listing(body, url=url)
        if listing is not None:
            logger.info(f"Fetched {len(listing.entries)} entries from r/{channel}")
        return listing

    def parse_listing(self, body: str, url: Optional[str] = None) -> Optional[Listing]:
        """
        Deserialize a listing body.

        An empty body or a JSON null yields None.

        Raises:
            DecodeError: If the body is not JSON or not shaped like a listing
        """
        if not body or not body.strip():
            return None

        try:
            data = json.loads(body)
        except ValueError as e:
            raise DecodeError(f"Feed body is not valid JSON: {e}", url=url) from e

        if data is None:
            return None

        return self._parse_listing_data(data, url)

    def _parse_listing_data(self, data: Any, url: Optional[str]) -> Listing:
        if not isinstance(data, dict) or not isinstance(data.get("data"), dict):
            raise DecodeError("Feed body has no listing data", url=url)

        listing_data: Dict[str, Any] = data["data"]
        children = listing_data.get("children") or []
        if not isinstance(children, list):
            raise DecodeError("Listing children is not a list", url=url)

        entries = []
        for child in children:
            if not isinstance(child, dict) or not isinstance(child.get("data"), dict):
                logger.debug(f"Skipping malformed listing child: {child!r}")
                continue
            entries.append(ListingEntry.from_dict(child["data"]))

        return Listing(entries=entries, after=listing_data.get("after"))
