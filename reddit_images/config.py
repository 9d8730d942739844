"""
Configuration Loader for Reddit Image Scraper.

Loads and validates configuration from YAML files, environment variables
and command-line overrides.
"""
import os
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence
import yaml
from urllib.parse import urlparse

from reddit_images.errors import ConfigError
from reddit_images.models import (
    CHANNEL_NAME_PATTERN,
    DEFAULT_ITEM_LIMIT,
    LogLevel,
    ScraperConfig,
    SortMode,
)

logger = logging.getLogger(__name__)

ENV_OUTPUT = "REDDIT_IMAGES_OUTPUT"
ENV_LIMIT = "REDDIT_IMAGES_LIMIT"
ENV_SORT = "REDDIT_IMAGES_SORT"


class ConfigLoader:
    """
    Loads and validates scraper configuration.

    Supports:
    - Loading from YAML file (optional when subreddits are given directly)
    - Environment variable overrides
    - Command-line overrides (highest precedence)
    - Validation of required fields
    """

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize config loader.

        Args:
            config_path: Path to config.yaml file, or None to use defaults only
        """
        self.config_path = Path(config_path) if config_path else None

    def load(self, overrides: Optional[Dict[str, Any]] = None) -> ScraperConfig:
        """
        Load and validate configuration.

        Args:
            overrides: Values from the command line; None values are ignored

        Returns:
            ScraperConfig object

        Raises:
            ConfigError: If config is invalid or missing
        """
        config_data = self._read_file() if self.config_path else {}
        overrides = {k: v for k, v in (overrides or {}).items() if v is not None and v != []}

        try:
            return self._parse_config(config_data, overrides)
        except ConfigError:
            raise
        except Exception as e:
            raise ConfigError(f"Invalid configuration: {e}")

    def _read_file(self) -> Dict[str, Any]:
        if not self.config_path.exists():
            raise ConfigError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, "r") as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML: {e}")
        except OSError as e:
            raise ConfigError(f"Failed to read configuration file {self.config_path}: {e}")

        if not config_data:
            raise ConfigError("Configuration file is empty")

        if not isinstance(config_data, dict):
            raise ConfigError("Configuration file must contain a mapping")

        return config_data

    def _parse_config(self, data: Dict[str, Any], overrides: Dict[str, Any]) -> ScraperConfig:
        """
        Parse and validate configuration data.

        Precedence: command line, then environment, then file.

        Raises:
            ConfigError: If validation fails
        """
        channels = self._parse_channels(overrides.get("subreddits", data.get("subreddits", [])))

        output_root = overrides.get("output") or os.getenv(ENV_OUTPUT) or data.get("output_directory", "images")

        sort_value = overrides.get("sort") or os.getenv(ENV_SORT) or data.get("sort", "default")
        sort_mode = SortMode.parse(sort_value)

        item_limit = self._parse_int(
            "limit", overrides.get("limit", os.getenv(ENV_LIMIT, data.get("limit", DEFAULT_ITEM_LIMIT)))
        )

        timeout = self._parse_int("timeout", data.get("timeout", 30))
        if timeout < 1:
            raise ConfigError(f"timeout must be a positive integer, got: {timeout}")

        image_host = str(data.get("image_host", "imgur")).strip().lower()
        if not image_host:
            raise ConfigError("image_host cannot be empty")

        feed_base_url = data.get("feed_base_url", "https://www.reddit.com")
        if not self._is_valid_url(feed_base_url):
            raise ConfigError(f"Invalid URL for feed_base_url: {feed_base_url}")

        # Parse log level with validation
        log_level_str = str(data.get("log_level", "info")).lower()
        try:
            log_level = LogLevel(log_level_str)
        except ValueError:
            valid_levels = [level.value for level in LogLevel]
            raise ConfigError(f"Invalid log_level '{log_level_str}'. Valid values: {valid_levels}")

        logger.info(
            f"Loaded configuration with {len(channels)} subreddits, "
            f"sort={sort_mode.value}, limit={item_limit}, output={output_root}"
        )

        return ScraperConfig(
            channels=channels,
            output_root=Path(output_root),
            sort_mode=sort_mode,
            item_limit=item_limit,
            image_host=image_host,
            feed_base_url=feed_base_url,
            timeout=timeout,
            user_agent=data.get("user_agent"),
            log_level=log_level,
        )

    def _parse_channels(self, values: Sequence[Any]) -> tuple:
        """
        Parse and validate subreddit names.

        Names are stripped, lowercased and de-duplicated, keeping the first
        occurrence.
        """
        if isinstance(values, str):
            values = [values]

        channels = []
        for value in values or []:
            name = str(value).strip().lower() if value is not None else ""
            if name.startswith("r/"):
                name = name[2:]

            if not name:
                raise ConfigError("Subreddit name cannot be empty")

            # Only alphanumeric, underscores and hyphens reach the feed URL
            if not CHANNEL_NAME_PATTERN.match(name):
                raise ConfigError(f"Invalid subreddit name: {value}")

            if name not in channels:
                channels.append(name)

        if not channels:
            raise ConfigError("Configuration must include at least one subreddit")

        return tuple(channels)

    def _parse_int(self, name: str, value: Any) -> int:
        if type(value) is bool:
            raise ConfigError(f"{name} must be an integer, got: {value}")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{name} must be an integer, got: {value}")

    def _is_valid_url(self, url: str) -> bool:
        """
        Validate URL format.

        Only allows http and https schemes.

        Args:
            url: URL to validate

        Returns:
            True if valid HTTP/HTTPS URL, False otherwise
        """
        try:
            result = urlparse(url)
            if result.scheme not in ("http", "https"):
                logger.warning(f"URL has invalid scheme '{result.scheme}': {url}")
                return False
            return bool(result.netloc)
        except (TypeError, ValueError) as e:
            logger.warning(f"Failed to parse URL '{url}': {e}")
            return False
