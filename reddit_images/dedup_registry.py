"""
Dedup Registry for tracking images already handled in this run.

Handles deduplication by remembering which image IDs have been admitted
per subreddit. State lives in memory only and is gone when the process exits.
"""
import logging
from typing import Dict, List, Optional, Set

logger = logging.getLogger(__name__)


class DedupRegistry:
    """
    Per-subreddit set of admitted image IDs.

    A (channel, image_id) pair is admitted at most once for the lifetime
    of the registry. Channels get their own slot on first use, so one
    subreddit never affects another.
    """

    def __init__(self):
        self._seen: Dict[str, Set[str]] = {}

    def ensure_channel(self, channel: str) -> Set[str]:
        """Ensure a slot exists for the channel and return it."""
        if channel not in self._seen:
            self._seen[channel] = set()
        return self._seen[channel]

    def admit(self, channel: str, image_id: Optional[str]) -> bool:
        """
        Admit an image for download.

        Args:
            channel: Subreddit name
            image_id: Image ID

        Returns:
            True if this is the first time the image is seen for the channel,
            False if it is empty or was admitted before
        """
        if not image_id:
            return False

        seen = self.ensure_channel(channel)
        if image_id in seen:
            logger.debug(f"Rejecting duplicate image {image_id} for r/{channel}")
            return False

        seen.add(image_id)
        return True

    def is_seen(self, channel: str, image_id: str) -> bool:
        """Check if an image was already admitted for the channel."""
        return image_id in self._seen.get(channel, ())

    def seen_count(self, channel: str) -> int:
        """Number of images admitted for the channel."""
        return len(self._seen.get(channel, ()))

    def channels(self) -> List[str]:
        """Channels that have a slot, in first-seen order."""
        return list(self._seen)
