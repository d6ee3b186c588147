"""
Exception hierarchy for the article store.

The web layer maps ArticleNotFoundError to a 404 response, InvalidArticleError
to a 400 response and every other ArticleStoreError to a generic 500 response.
"""
from typing import Optional


class ArticleStoreError(Exception):
    """Base class for all article store errors."""


class ArticleNotFoundError(ArticleStoreError, KeyError):
    """Raised when an article identifier is not in the index."""

    def __init__(self, article_id: str):
        super().__init__(article_id)
        self.article_id = article_id

    def __str__(self) -> str:
        return f"article {self.article_id!r} doesn't exist"


class ArticleStoreIOError(ArticleStoreError):
    """Raised when a filesystem read or write fails."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class CorruptedStoreError(ArticleStoreError):
    """Raised when the metadata file or a stored creation date is malformed."""


class InvalidArticleError(ArticleStoreError, ValueError):
    """Raised when an article cannot be saved as given (wrong field types)."""


class InvalidArticleIdError(InvalidArticleError):
    """Raised when an identifier cannot be used as a content filename stem."""

    def __init__(self, article_id: str):
        super().__init__(f"invalid article id: {article_id!r}")
        self.article_id = article_id
