"""
Image extractor for finding image host links in Reddit listing entries.
"""
import logging
from typing import List, Optional
from urllib.parse import urlparse, urlunparse

from reddit_images.models import Author, ImageCandidate, Listing, ListingEntry

logger = logging.getLogger(__name__)


class ImageExtractor:
    """
    Extracts image candidates from a Reddit listing.

    Only entries hosted by the configured image host are kept. The host
    is matched as a substring marker (e.g. "imgur" matches "imgur.com",
    "i.imgur.com" and "m.imgur.com").
    """

    DEFAULT_IMAGE_HOST = "imgur"

    def __init__(self, image_host: Optional[str] = None):
        """
        Initialize image extractor.

        Args:
            image_host: Image host marker. Defaults to "imgur"
        """
        self.image_host = (image_host or self.DEFAULT_IMAGE_HOST).lower()

    def extract(self, listing: Optional[Listing]) -> List[ImageCandidate]:
        """
        Extract image candidates from a listing, preserving feed order.

        Args:
            listing: Parsed listing, or None

        Returns:
            List of ImageCandidate (empty if listing is None)
        """
        if listing is None:
            return []

        candidates = []
        for entry in listing.entries:
            if self.image_host not in entry.domain.lower():
                continue

            # The domain field and the resolved URL can disagree
            if not self.is_image_host_url(entry.url):
                logger.debug(f"Dropping entry {entry.id}: URL {entry.url!r} is not on {self.image_host}")
                continue

            candidates.append(self._to_candidate(entry))

        return candidates

    def is_image_host_url(self, url: Optional[str]) -> bool:
        """
        Check if URL points at the image host.

        Args:
            url: URL to check

        Returns:
            True if the URL's host contains the image host marker
        """
        if not url:
            return False

        try:
            host = urlparse(url).netloc.lower()
        except ValueError as e:
            logger.debug(f"Failed to parse URL '{url}': {e}")
            return False

        return self.image_host in host

    def get_image_id(self, url: str) -> str:
        """
        Derive the image ID from an image URL.

        "https://i.imgur.com/abc123.png" -> "abc123". A URL with no path
        ("https://imgur.com") or ending in "/" yields an empty ID.
        """
        if not url:
            return ""

        parsed = urlparse(url)
        if parsed.netloc and not parsed.path:
            url = urlunparse(parsed._replace(path="/"))

        return url.split("/")[-1].split(".")[0]

    def _to_candidate(self, entry: ListingEntry) -> ImageCandidate:
        return ImageCandidate(
            image_id=self.get_image_id(entry.url),
            source_link=entry.url,
            post_id=entry.id,
            post_link=entry.permalink,
            title=entry.title,
            author=Author.from_name(entry.author),
            channel=entry.subreddit,
        )
