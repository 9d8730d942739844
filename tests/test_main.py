"""
Tests for Main Orchestration Script.

Tests the complete flow: fetch → extract → dedupe → download → rename.
"""
import logging
import pytest
import responses
from pathlib import Path
from unittest.mock import Mock, patch

from reddit_images.dedup_registry import DedupRegistry
from reddit_images.errors import DecodeError, NetworkError
from reddit_images.main import Scraper, build_arg_parser, main
from reddit_images.models import (
    Author,
    DownloadResult,
    DownloadStatus,
    FetchOptions,
    ImageCandidate,
    ScraperConfig,
    SortMode,
)


CATS_FEED = "https://www.reddit.com/r/cats/.json"
DOGS_FEED = "https://www.reddit.com/r/dogs/.json"


@pytest.fixture
def config(tmp_path):
    return ScraperConfig(channels=("cats", "dogs"), output_root=tmp_path / "images", item_limit=25)


def make_candidate(image_id, channel="cats"):
    return ImageCandidate(
        image_id=image_id,
        source_link=f"https://i.imgur.com/{image_id}.png",
        post_id=f"post_{image_id}",
        post_link=f"/r/{channel}/comments/{image_id}/",
        title=f"Post {image_id}",
        author=Author.from_name("someone"),
        channel=channel,
    )


class TestScraperInit:
    """Tests for Scraper initialization."""

    def test_builds_components_from_config(self, config):
        scraper = Scraper(config)

        assert scraper.feed_fetcher.timeout == config.timeout
        assert scraper.image_extractor.image_host == "imgur"
        assert isinstance(scraper.registry, DedupRegistry)

    def test_uses_injected_components(self, config):
        fetcher, extractor, downloader, registry = Mock(), Mock(), Mock(), DedupRegistry()

        scraper = Scraper(config, fetcher, extractor, downloader, registry)

        assert scraper.feed_fetcher is fetcher
        assert scraper.registry is registry


class TestScraperRun:
    """Tests for orchestration with mocked components."""

    @pytest.fixture
    def components(self):
        fetcher = Mock()
        extractor = Mock()
        downloader = Mock()
        downloader.download.side_effect = lambda directory, candidate: DownloadResult(
            DownloadStatus.DOWNLOADED, candidate.image_id, path=Path(directory) / f"{candidate.image_id}.png"
        )
        return fetcher, extractor, downloader

    def test_processes_channels_in_order(self, config, components):
        fetcher, extractor, downloader = components
        extractor.extract.return_value = []

        Scraper(config, fetcher, extractor, downloader).run()

        channels = [call.args[0] for call in fetcher.fetch.call_args_list]
        assert channels == ["cats", "dogs"]

    def test_uses_configured_options(self, config, components):
        fetcher, extractor, downloader = components
        extractor.extract.return_value = []

        Scraper(config, fetcher, extractor, downloader).run(channels=["cats"])

        options = fetcher.fetch.call_args.args[1]
        assert options.item_limit == 25
        assert options.sort_mode == SortMode.DEFAULT

    def test_explicit_channels_and_options(self, config, components):
        fetcher, extractor, downloader = components
        extractor.extract.return_value = []
        options = FetchOptions.create(sort_mode="top", item_limit=5)

        Scraper(config, fetcher, extractor, downloader).run(channels=["aww"], options=options)

        fetcher.fetch.assert_called_once_with("aww", options)

    def test_duplicate_image_downloaded_once(self, config, components):
        """Test that a duplicate post triggers only one download attempt."""
        fetcher, extractor, downloader = components
        extractor.extract.return_value = [make_candidate("abc123"), make_candidate("abc123"), make_candidate("def456")]

        report = Scraper(config, fetcher, extractor, downloader).run(channels=["cats"])

        downloaded = [call.args[1].image_id for call in downloader.download.call_args_list]
        assert downloaded == ["abc123", "def456"]
        assert report.channels[0].admitted == 2
        assert report.channels[0].rejected == 1

    def test_empty_image_id_skipped(self, config, components):
        fetcher, extractor, downloader = components
        extractor.extract.return_value = [make_candidate("")]

        report = Scraper(config, fetcher, extractor, downloader).run(channels=["cats"])

        downloader.download.assert_not_called()
        assert report.channels[0].rejected == 1

    def test_feed_failure_skips_channel(self, config, components):
        """Test that a failing subreddit does not stop the others."""
        fetcher, extractor, downloader = components
        fetcher.fetch.side_effect = [NetworkError("down"), Mock()]
        extractor.extract.return_value = [make_candidate("abc123", channel="dogs")]

        report = Scraper(config, fetcher, extractor, downloader).run()

        assert report.skipped_channels == ["cats"]
        assert "NetworkError" in report.channels[0].error
        assert downloader.download.call_count == 1
        assert downloader.download.call_args.args[0] == config.output_root / "dogs"

    def test_decode_failure_skips_channel(self, config, components):
        fetcher, extractor, downloader = components
        fetcher.fetch.side_effect = [DecodeError("bad json"), None]
        extractor.extract.return_value = []

        report = Scraper(config, fetcher, extractor, downloader).run()

        assert report.skipped_channels == ["cats"]
        assert not report.channels[1].skipped

    def test_failed_download_continues(self, config, components):
        """Test that a failing image does not stop the channel."""
        fetcher, extractor, downloader = components
        extractor.extract.return_value = [make_candidate("bad"), make_candidate("good")]
        downloader.download.side_effect = [
            DownloadResult(DownloadStatus.FAILED, "bad", error_kind="NetworkError", error="404"),
            DownloadResult(DownloadStatus.DOWNLOADED, "good"),
        ]

        report = Scraper(config, fetcher, extractor, downloader).run(channels=["cats"])

        assert downloader.download.call_count == 2
        assert report.channels[0].failed == 1
        assert report.channels[0].outcomes["downloaded"] == 1

    def test_unexpected_download_error_continues(self, config, components):
        """Test that an exception raised by the downloader is recorded as a failure."""
        fetcher, extractor, downloader = components
        extractor.extract.return_value = [make_candidate("bad"), make_candidate("good")]
        downloader.download.side_effect = [
            RuntimeError("boom"),
            DownloadResult(DownloadStatus.DOWNLOADED, "good"),
        ]

        report = Scraper(config, fetcher, extractor, downloader).run(channels=["cats"])

        assert downloader.download.call_count == 2
        assert not report.channels[0].skipped
        assert report.channels[0].failed == 1
        assert report.channels[0].outcomes["downloaded"] == 1

    def test_unexpected_channel_error_skips_channel(self, config, components):
        """Test that an unexpected exception only skips the subreddit it came from."""
        fetcher, extractor, downloader = components
        extractor.extract.side_effect = [
            AttributeError("'int' object has no attribute 'lower'"),
            [make_candidate("abc123", channel="dogs")],
        ]

        report = Scraper(config, fetcher, extractor, downloader).run()

        assert report.skipped_channels == ["cats"]
        assert "AttributeError" in report.channels[0].error
        assert downloader.download.call_count == 1
        assert report.channels[1].admitted == 1

    def test_creates_channel_directory(self, config, components):
        fetcher, extractor, downloader = components
        extractor.extract.return_value = []

        Scraper(config, fetcher, extractor, downloader).run(channels=["cats"])

        assert (config.output_root / "cats").is_dir()

    def test_directory_failure_skips_channel(self, config, components):
        fetcher, extractor, downloader = components
        extractor.extract.return_value = [make_candidate("abc123")]

        with patch("pathlib.Path.mkdir", side_effect=PermissionError("denied")):
            report = Scraper(config, fetcher, extractor, downloader).run(channels=["cats"])

        assert "FileSystemError" in report.channels[0].error
        downloader.download.assert_not_called()

    def test_registry_slot_created_even_if_feed_fails(self, config, components):
        fetcher, extractor, downloader = components
        fetcher.fetch.side_effect = NetworkError("down")

        scraper = Scraper(config, fetcher, extractor, downloader)
        scraper.run(channels=["cats"])

        assert scraper.registry.channels() == ["cats"]

    def test_keyboard_interrupt_propagates(self, config, components):
        fetcher, extractor, downloader = components
        fetcher.fetch.side_effect = KeyboardInterrupt()

        with pytest.raises(KeyboardInterrupt):
            Scraper(config, fetcher, extractor, downloader).run()


class TestEndToEnd:
    """Full pipeline against stubbed HTTP and a real output directory."""

    @responses.activate
    def test_cats_scenario(self, config, cats_listing_json, png_bytes):
        responses.add(responses.GET, CATS_FEED, json=cats_listing_json, status=200)
        responses.add(responses.GET, "https://i.imgur.com/abc123.png.png", body=png_bytes, status=200)

        report = Scraper(config).run(channels=["cats"])

        assert (config.output_root / "cats" / "abc123.png").read_bytes() == png_bytes
        assert report.channels[0].candidates == 1
        assert report.channels[0].admitted == 1

    @responses.activate
    def test_extension_corrected(self, config, make_listing, gif_bytes):
        responses.add(responses.GET, CATS_FEED, json=make_listing(
            {"domain": "i.imgur.com", "url": "https://i.imgur.com/anim1.gif", "subreddit": "cats"},
        ), status=200)
        responses.add(responses.GET, "https://i.imgur.com/anim1.gif.png", body=gif_bytes, status=200)

        Scraper(config).run(channels=["cats"])

        files = sorted(p.name for p in (config.output_root / "cats").iterdir())
        assert files == ["anim1.gif"]

    @responses.activate
    def test_failing_channel_does_not_block_other(self, config, cats_listing_json, png_bytes):
        """Test that dogs failing still lets cats download."""
        responses.add(responses.GET, DOGS_FEED, body="Service Unavailable", status=503)
        responses.add(responses.GET, CATS_FEED, json=cats_listing_json, status=200)
        responses.add(responses.GET, "https://i.imgur.com/abc123.png.png", body=png_bytes, status=200)

        report = Scraper(config).run(channels=["dogs", "cats"])

        assert report.skipped_channels == ["dogs"]
        assert (config.output_root / "cats" / "abc123.png").exists()

    @responses.activate
    def test_malformed_fields_do_not_block_other(self, config, make_listing, cats_listing_json, png_bytes):
        """Test that non-string domain and url values are ignored, not fatal."""
        responses.add(responses.GET, DOGS_FEED, json=make_listing(
            {"domain": 123, "url": "https://i.imgur.com/dog1.png", "subreddit": "dogs"},
            {"domain": "i.imgur.com", "url": ["x"], "subreddit": "dogs"},
        ), status=200)
        responses.add(responses.GET, CATS_FEED, json=cats_listing_json, status=200)
        responses.add(responses.GET, "https://i.imgur.com/abc123.png.png", body=png_bytes, status=200)

        report = Scraper(config).run(channels=["dogs", "cats"])

        assert report.skipped_channels == []
        assert report.channels[0].candidates == 0
        assert (config.output_root / "cats" / "abc123.png").read_bytes() == png_bytes

    @responses.activate
    def test_second_run_is_idempotent(self, config, make_listing, png_bytes, gif_bytes):
        """Test that re-running against the same directory creates no duplicates."""
        responses.add(responses.GET, CATS_FEED, json=make_listing(
            {"domain": "imgur.com", "url": "https://i.imgur.com/still1.png", "subreddit": "cats"},
            {"domain": "imgur.com", "url": "https://i.imgur.com/anim1.gif", "subreddit": "cats"},
        ), status=200)
        responses.add(responses.GET, "https://i.imgur.com/still1.png.png", body=png_bytes, status=200)
        responses.add(responses.GET, "https://i.imgur.com/anim1.gif.png", body=gif_bytes, status=200)

        first = Scraper(config).run(channels=["cats"])
        second = Scraper(config).run(channels=["cats"])

        files = sorted(p.name for p in (config.output_root / "cats").iterdir())
        assert files == ["anim1.gif", "still1.png"]
        assert first.failed == 0
        assert second.failed == 0
        assert second.channels[0].outcomes == {"already_exists": 1, "duplicate_removed": 1}

    @responses.activate
    def test_same_registry_across_runs_rejects_seen(self, config, cats_listing_json, png_bytes):
        responses.add(responses.GET, CATS_FEED, json=cats_listing_json, status=200)
        responses.add(responses.GET, "https://i.imgur.com/abc123.png.png", body=png_bytes, status=200)

        scraper = Scraper(config)
        scraper.run(channels=["cats"])
        report = scraper.run(channels=["cats"])

        assert report.channels[0].admitted == 0
        assert report.channels[0].rejected == 1


class TestMain:
    """Tests for the command-line entry point."""

    def test_arg_parser(self):
        args = build_arg_parser().parse_args(["-o", "out", "-s", "new", "-l", "10", "cats", "dogs"])

        assert args.subreddits == ["cats", "dogs"]
        assert args.output == "out"
        assert args.sort == "new"
        assert args.limit == 10
        assert args.config is None

    def test_config_error_exits_nonzero(self, tmp_path):
        assert main(["-c", str(tmp_path / "missing.yaml")]) == 1

    def test_no_subreddits_exits_nonzero(self):
        assert main([]) == 1

    def test_runs_scraper(self, tmp_path):
        with patch("reddit_images.main.Scraper") as MockScraper:
            code = main(["-o", str(tmp_path), "cats"])

        assert code == 0
        config = MockScraper.call_args.args[0]
        assert config.channels == ("cats",)
        assert config.output_root == tmp_path
        MockScraper.return_value.run.assert_called_once_with()

    def test_unexpected_error_exits_nonzero(self, tmp_path):
        with patch("reddit_images.main.Scraper") as MockScraper:
            MockScraper.return_value.run.side_effect = RuntimeError("boom")
            code = main(["-o", str(tmp_path), "cats"])

        assert code == 1

    def test_applies_log_level(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("subreddits: [cats]\nlog_level: warning\n")

        root = logging.getLogger()
        previous = root.level
        try:
            with patch("reddit_images.main.Scraper"):
                main(["-c", str(config_path)])

            assert root.level == logging.WARNING
        finally:
            root.setLevel(previous)
