"""
Exceptions raised by the Reddit image scraper.
"""


class ScraperError(Exception):
    """Base exception for scraper errors."""

    def __init__(self, message: str, url: str = None):
        super().__init__(message)
        self.url = url


class NetworkError(ScraperError):
    """Raised when a feed or image request fails at the transport level or with a non-2xx status."""

    def __init__(self, message: str, url: str = None, status_code: int = None):
        super().__init__(message, url=url)
        self.status_code = status_code


class DecodeError(ScraperError):
    """Raised when a feed body cannot be parsed into a listing."""
    pass


class FileSystemError(ScraperError):
    """Raised when a directory or file operation fails."""
    pass


class ConfigError(ScraperError):
    """Configuration error."""
    pass
