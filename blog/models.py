"""
Article data model and metadata serialization.

Metadata entries are stored in meta.json as objects with "id", "title" and
"creation-date" keys, the date written as DD.MM.YYYY.
"""
import re
import secrets
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict

from blog.errors import CorruptedStoreError, InvalidArticleError, InvalidArticleIdError

DATE_FORMAT = "%d.%m.%Y"

ARTICLE_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


def parse_date(text: str) -> date:
    """
    Parse a creation date in canonical DD.MM.YYYY form.

    Raises:
        ValueError: If the text does not match the format
    """
    return datetime.strptime(text, DATE_FORMAT).date()


def format_date(value: date) -> str:
    """Format a creation date in canonical DD.MM.YYYY form."""
    return value.strftime(DATE_FORMAT)


def validate_article_id(article_id: str) -> str:
    """
    Check that an identifier is usable as a content filename stem.

    Returns:
        The identifier unchanged

    Raises:
        InvalidArticleIdError: If the identifier is empty or holds path characters
    """
    if not isinstance(article_id, str) or not ARTICLE_ID_PATTERN.match(article_id):
        raise InvalidArticleIdError(article_id)
    return article_id


def generate_article_id() -> str:
    """Generate a fresh random article identifier."""
    return secrets.token_hex(8)


@dataclass(frozen=True)
class ArticleMeta:
    """Non-content fields of an article."""

    id: str
    title: str
    creation_date: date

    def to_dict(self) -> Dict[str, str]:
        """Convert to a meta.json entry."""
        return {
            "id": self.id,
            "title": self.title,
            "creation-date": format_date(self.creation_date),
        }

    @classmethod
    def from_dict(cls, entry: Dict[str, Any]) -> "ArticleMeta":
        """
        Build metadata from a meta.json entry.

        Raises:
            CorruptedStoreError: If a field is missing or the date is unparseable
        """
        if not isinstance(entry, dict):
            raise CorruptedStoreError(f"metadata entry is not an object: {entry!r}")
        try:
            article_id = entry["id"]
            title = entry["title"]
            raw_date = entry["creation-date"]
        except KeyError as exc:
            raise CorruptedStoreError(
                f"metadata entry {entry.get('id')!r} is missing field {exc.args[0]!r}"
            ) from exc
        if not isinstance(article_id, str) or not isinstance(title, str):
            raise CorruptedStoreError(f"metadata entry {article_id!r} has non-string fields")
        try:
            creation_date = parse_date(raw_date)
        except (TypeError, ValueError) as exc:
            raise CorruptedStoreError(
                f"metadata entry {article_id!r} has unparseable creation date {raw_date!r}"
            ) from exc
        return cls(id=article_id, title=title, creation_date=creation_date)


@dataclass(frozen=True)
class Article:
    """An article: metadata plus raw markdown content."""

    meta: ArticleMeta
    content: bytes

    @classmethod
    def create(cls, article_id: str, title: str, creation_date: date, content: bytes) -> "Article":
        """Build an article from its individual fields."""
        return cls(
            meta=ArticleMeta(id=article_id, title=title, creation_date=creation_date),
            content=content,
        )

    @property
    def id(self) -> str:
        return self.meta.id

    @property
    def title(self) -> str:
        return self.meta.title

    @property
    def creation_date(self) -> date:
        return self.meta.creation_date

    @property
    def text(self) -> str:
        """Content decoded as UTF-8, undecodable bytes replaced."""
        return self.content.decode("utf-8", errors="replace")


def validate_article(article: Article) -> Article:
    """
    Check that an article's fields have the types the store writes.

    Returns:
        The article unchanged

    Raises:
        InvalidArticleIdError: If the identifier is not a valid filename stem
        InvalidArticleError: If title, creation date or content has the wrong type
    """
    validate_article_id(article.id)
    if not isinstance(article.title, str):
        raise InvalidArticleError(f"article {article.id!r}: title must be a string")
    # datetime is a date subclass but does not order against plain dates
    if isinstance(article.creation_date, datetime) or not isinstance(article.creation_date, date):
        raise InvalidArticleError(
            f"article {article.id!r}: creation date must be a date, "
            f"got {type(article.creation_date).__name__}"
        )
    if not isinstance(article.content, bytes):
        raise InvalidArticleError(
            f"article {article.id!r}: content must be bytes, "
            f"got {type(article.content).__name__}"
        )
    return article
