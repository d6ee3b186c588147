"""
Configuration management for the blog.
Loads environment variables and provides access to configuration settings.
"""
import logging
import os
from typing import Optional
from dotenv import load_dotenv

# Configure logging
logger = logging.getLogger(__name__)


class Config:
    """Configuration settings loaded from environment variables."""

    def __init__(self):
        """Initialize configuration by loading environment variables."""
        load_dotenv()

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get a configuration value by key.

        Args:
            key: Configuration key name
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        return os.getenv(key, default)

    @property
    def blog_root_dir(self) -> str:
        """Get the root directory holding the articles directory."""
        return self.get("BLOG_ROOT_DIR") or os.getcwd()

    @property
    def server_host(self) -> str:
        """Get web server host."""
        return self.get("BLOG_HOST", "0.0.0.0")

    @property
    def server_port(self) -> int:
        """Get web server port."""
        return int(self.get("BLOG_PORT", "4444"))

    @property
    def homepage_article_limit(self) -> int:
        """
        Get the number of articles listed on the homepage.

        Falls back to 10 when the variable is not a positive integer.
        """
        raw = self.get("HOMEPAGE_ARTICLE_LIMIT", "10")
        try:
            value = int(raw)
        except ValueError:
            logger.warning("Invalid HOMEPAGE_ARTICLE_LIMIT %r, using 10", raw)
            return 10
        if value <= 0:
            logger.warning("Non-positive HOMEPAGE_ARTICLE_LIMIT %r, using 10", raw)
            return 10
        return value

    @property
    def log_level(self) -> str:
        """Get the log level name."""
        return self.get("LOG_LEVEL", "INFO").upper()
