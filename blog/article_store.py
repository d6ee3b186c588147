"""
Abstract interface for article storage backends.

Defines the interface for listing, loading, and saving articles.
The web layer depends only on this interface.
"""
from abc import ABC, abstractmethod
from typing import List

from blog.models import Article


class ArticleStore(ABC):
    """Abstract base class for article storage backends."""

    @abstractmethod
    def list_articles(self) -> List[Article]:
        """
        Get all articles, newest first.

        Articles sharing a creation date are ordered by identifier ascending.

        Returns:
            List of articles.

        Raises:
            CorruptedStoreError: If a creation date cannot be ordered.
        """

    @abstractmethod
    def load_article(self, article_id: str) -> Article:
        """
        Get a single article by ID.

        Args:
            article_id: The unique identifier of the article.

        Returns:
            The stored article.

        Raises:
            ArticleNotFoundError: If no article has this identifier.
        """

    @abstractmethod
    def save_article(self, article: Article) -> None:
        """
        Save (create or update) an article.

        Args:
            article: The article to store under its identifier.

        Raises:
            InvalidArticleIdError: If the identifier is not a valid filename stem.
            InvalidArticleError: If the content is not bytes or the creation
                date is not a date. Nothing is written in that case.
            ArticleStoreIOError: If writing the content or metadata file fails.
        """
