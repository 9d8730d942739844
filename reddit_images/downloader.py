"""
Image downloader with content sniffing and extension correction.

Every image is first stored as "<image_id>.png", then renamed to the
extension matching its real content once the bytes have been sniffed.
"""
import logging
import requests
from pathlib import Path
from typing import Optional, Union

from reddit_images.errors import FileSystemError, NetworkError
from reddit_images.models import DownloadResult, DownloadStatus, ImageCandidate
from reddit_images.sniffer import ContentTypeSniffer

logger = logging.getLogger(__name__)

# Placeholder extension until the content has been sniffed
PROVISIONAL_EXTENSION = "png"

CHUNK_SIZE = 64 * 1024


class ImageDownloader:
    """
    Downloads image candidates into a directory.

    Best effort: network and filesystem failures are reported in the
    returned DownloadResult instead of being raised, so one broken link
    never stops the rest of a batch.
    """

    DEFAULT_USER_AGENT = "reddit-images/1.0 (subreddit image downloader)"

    def __init__(
        self,
        timeout: int = 30,
        user_agent: Optional[str] = None,
        sniffer: Optional[ContentTypeSniffer] = None,
    ):
        """
        Initialize image downloader.

        Args:
            timeout: Request timeout in seconds
            user_agent: Custom User-Agent string
            sniffer: Content type sniffer (for testing)
        """
        self.timeout = timeout
        self.user_agent = user_agent or self.DEFAULT_USER_AGENT
        self.sniffer = sniffer or ContentTypeSniffer()

    def provisional_path(self, output_dir: Path, image_id: str) -> Path:
        return Path(output_dir) / f"{image_id}.{PROVISIONAL_EXTENSION}"

    def download(self, output_dir: Union[str, Path], candidate: ImageCandidate) -> DownloadResult:
        """
        Download a single image.

        Args:
            output_dir: Directory the image is stored in (must exist)
            candidate: Image to download

        Returns:
            DownloadResult describing what happened
        """
        output_dir = Path(output_dir)
        provisional = self.provisional_path(output_dir, candidate.image_id)

        # Already downloaded by an earlier run
        if provisional.exists():
            logger.debug(f"Skipping {candidate.image_id}: {provisional} already exists")
            return DownloadResult(DownloadStatus.ALREADY_EXISTS, candidate.image_id, path=provisional)

        url = f"{candidate.source_link}.{PROVISIONAL_EXTENSION}"

        try:
            self._fetch_to_file(url, provisional)
            return self._finalize(output_dir, candidate.image_id, provisional)
        except (NetworkError, FileSystemError) as e:
            logger.warning(f"Failed to download {candidate.image_id} from {url}: {e}")
            self._discard(provisional)
            return DownloadResult(
                DownloadStatus.FAILED,
                candidate.image_id,
                error_kind=type(e).__name__,
                error=str(e),
            )

    def _fetch_to_file(self, url: str, path: Path):
        """
        Stream an image into a file.

        Raises:
            NetworkError: On transport failure or non-2xx status
            FileSystemError: If the file cannot be written
        """
        headers = {"User-Agent": self.user_agent}
        try:
            with requests.Session() as session:
                with session.get(url, timeout=self.timeout, headers=headers, stream=True) as response:
                    response.raise_for_status()
                    with open(path, "wb") as f:
                        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                            f.write(chunk)
        except requests.RequestException as e:
            # RequestException subclasses OSError, so it must be handled first
            status_code = e.response.status_code if e.response is not None else None
            raise NetworkError(str(e), url=url, status_code=status_code) from e
        except (OSError, ValueError) as e:
            # ValueError: the image ID does not form a valid path (e.g. embedded null byte)
            raise FileSystemError(f"Failed to write {path}: {e}", url=url) from e

    def _finalize(self, output_dir: Path, image_id: str, provisional: Path) -> DownloadResult:
        """
        Rename the provisional file to match its sniffed content type.

        Raises:
            FileSystemError: If the file cannot be read, renamed or removed
        """
        try:
            file_type = self.sniffer.detect_file(provisional)

            if file_type is None or file_type.extension == PROVISIONAL_EXTENSION:
                return DownloadResult(DownloadStatus.DOWNLOADED, image_id, path=provisional)

            corrected = output_dir / f"{image_id}.{file_type.extension}"

            # Canonical artifact already on disk, drop the duplicate
            if corrected.exists():
                provisional.unlink()
                logger.debug(f"{corrected.name} already exists, removed {provisional.name}")
                return DownloadResult(DownloadStatus.DUPLICATE_REMOVED, image_id, path=corrected)

            provisional.rename(corrected)
            logger.debug(f"Renamed {provisional.name} -> {corrected.name}")
            return DownloadResult(DownloadStatus.RENAMED, image_id, path=corrected)
        except (OSError, ValueError) as e:
            raise FileSystemError(f"Failed to finalize {provisional}: {e}") from e

    def _discard(self, path: Path):
        """Remove a partially written file so the next run can retry it."""
        try:
            if path.exists():
                path.unlink()
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to remove partial file {path}: {e}")
