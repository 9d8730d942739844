"""
Main Orchestration Script for Reddit Image Scraper.

Coordinates all components to:
1. Fetch Reddit JSON listings
2. Extract image host links
3. Deduplicate per subreddit
4. Download images and fix their extensions

Designed to run once per invocation, then exit.
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable, List, Optional

from reddit_images.config import ConfigLoader
from reddit_images.dedup_registry import DedupRegistry
from reddit_images.downloader import ImageDownloader
from reddit_images.errors import ConfigError, DecodeError, FileSystemError, NetworkError
from reddit_images.feed_fetcher import FeedFetcher
from reddit_images.image_extractor import ImageExtractor
from reddit_images.models import (
    ChannelReport,
    DownloadResult,
    DownloadStatus,
    FetchOptions,
    RunReport,
    ScraperConfig,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Scraper:
    """
    Main scraper orchestration.

    Processes subreddits one at a time, in the configured order. A failing
    subreddit is skipped and a failing image is skipped; neither stops the run.
    """

    def __init__(
        self,
        config: ScraperConfig,
        feed_fetcher: Optional[FeedFetcher] = None,
        image_extractor: Optional[ImageExtractor] = None,
        downloader: Optional[ImageDownloader] = None,
        registry: Optional[DedupRegistry] = None,
    ):
        """
        Initialize scraper.

        Args:
            config: Loaded scraper configuration
            feed_fetcher: Optional FeedFetcher (for testing)
            image_extractor: Optional ImageExtractor (for testing)
            downloader: Optional ImageDownloader (for testing)
            registry: Optional DedupRegistry shared across runs
        """
        self.config = config
        self.feed_fetcher = feed_fetcher or FeedFetcher(
            base_url=config.feed_base_url,
            timeout=config.timeout,
            user_agent=config.user_agent,
        )
        self.image_extractor = image_extractor or ImageExtractor(image_host=config.image_host)
        self.downloader = downloader or ImageDownloader(
            timeout=config.timeout,
            user_agent=config.user_agent,
        )
        self.registry = registry or DedupRegistry()

    def run(
        self,
        channels: Optional[Iterable[str]] = None,
        options: Optional[FetchOptions] = None,
    ) -> RunReport:
        """
        Run the scraper over every subreddit.

        Args:
            channels: Subreddits to process (defaults to the configured ones)
            options: Feed options (defaults to the configured sort and limit)

        Returns:
            RunReport with per-subreddit counts
        """
        channels = list(channels) if channels is not None else list(self.config.channels)
        options = options or self.config.fetch_options()

        logger.info(f"Processing {len(channels)} subreddits into {self.config.output_root}")

        report = RunReport()
        for channel in channels:
            channel_report = ChannelReport(channel=channel)
            report.channels.append(channel_report)

            try:
                self._process_channel(channel, options, channel_report)
            except KeyboardInterrupt:
                # Re-raise interrupt signals - don't suppress user abort
                logger.info("Received interrupt signal, stopping...")
                raise
            except (NetworkError, DecodeError, FileSystemError, ValueError) as e:
                channel_report.error = f"{type(e).__name__}: {e}"
                logger.error(f"Skipping r/{channel}: {e}")
                continue
            except Exception as e:
                # Log error but continue with other subreddits
                channel_report.error = f"{type(e).__name__}: {e}"
                logger.error(f"Error processing subreddit '{channel}': {e}", exc_info=True)
                continue

        logger.info(
            f"Run completed: {report.admitted} images admitted, {report.failed} failed, "
            f"{len(report.skipped_channels)} subreddits skipped"
        )
        return report

    def _process_channel(self, channel: str, options: FetchOptions, channel_report: ChannelReport):
        """
        Process a single subreddit.

        Raises:
            NetworkError: If the feed cannot be fetched
            DecodeError: If the feed cannot be parsed
            FileSystemError: If the output directory cannot be created
        """
        self.registry.ensure_channel(channel)

        listing = self.feed_fetcher.fetch(channel, options)
        candidates = self.image_extractor.extract(listing)
        channel_report.candidates = len(candidates)

        directory = self._ensure_directory(channel)

        logger.info(f"Downloading {len(candidates)} images from /r/{channel}")

        for candidate in candidates:
            if not self.registry.admit(channel, candidate.image_id):
                channel_report.rejected += 1
                continue

            channel_report.admitted += 1
            logger.info(f"Downloading {candidate.image_id} from /r/{candidate.channel or channel}")

            try:
                result = self.downloader.download(directory, candidate)
            except Exception as e:
                # Log error but continue with other images
                logger.error(f"Error downloading {candidate.image_id!r}: {e}", exc_info=True)
                result = DownloadResult(
                    DownloadStatus.FAILED,
                    candidate.image_id,
                    error_kind=type(e).__name__,
                    error=str(e),
                )
            channel_report.record(result)

        logger.info(
            f"r/{channel}: {channel_report.admitted} admitted, {channel_report.rejected} rejected, "
            f"{channel_report.failed} failed"
        )

    def _ensure_directory(self, channel: str) -> Path:
        """
        Create the subreddit's output directory if needed.

        Raises:
            FileSystemError: If the directory cannot be created
        """
        directory = Path(self.config.output_root) / channel
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileSystemError(f"Failed to create directory {directory}: {e}") from e
        return directory


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reddit-images",
        description="Download imgur images posted to one or more subreddits.",
    )
    parser.add_argument("subreddits", nargs="*", help="Subreddits to scrape (overrides config)")
    parser.add_argument("-c", "--config", type=Path, help="Path to config.yaml")
    parser.add_argument("-o", "--output", help="Output directory")
    parser.add_argument(
        "-s", "--sort",
        help="Sort mode: default, hot, new (or newest), rising, controversial or top",
    )
    parser.add_argument("-l", "--limit", type=int, help="Images to look at per subreddit (max 50)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for command-line execution.

    Usage:
        python -m reddit_images.main [-c config.yaml] [subreddit ...]
    """
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)

    args = build_arg_parser().parse_args(argv)

    try:
        config = ConfigLoader(args.config).load(
            overrides={
                "subreddits": args.subreddits,
                "output": args.output,
                "sort": args.sort,
                "limit": args.limit,
            }
        )
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    logging.getLogger().setLevel(config.log_level.value.upper())

    try:
        Scraper(config).run()
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        logger.error(f"Scraper failed: {e}", exc_info=True)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
