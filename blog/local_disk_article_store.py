"""
Local disk implementation of article storage.

Layout under the root directory:
    articles/meta.json   JSON array of {"id", "title", "creation-date"}
    articles/<id>.md     raw markdown content, one file per article

All articles are held in memory after a recovery scan at construction.
A single lock serializes every operation, disk I/O included.
"""
import json
import logging
import os
import threading
from datetime import date
from typing import Any, Dict, List, Optional

from blog.article_store import ArticleStore
from blog.errors import (
    ArticleNotFoundError,
    ArticleStoreError,
    ArticleStoreIOError,
    CorruptedStoreError,
)
from blog.file_utils import load_json_file, read_bytes_file, save_json_file, write_bytes_file
from blog.models import Article, ArticleMeta, validate_article, validate_article_id

logger = logging.getLogger(__name__)

ARTICLES_DIRNAME = "articles"
META_FILENAME = "meta.json"


class LocalDiskArticleStore(ArticleStore):
    """
    Local disk implementation of article storage.

    Construction never aborts on a single unreadable article: such entries are
    skipped and reported through recovery_error / recovery_errors.
    """

    def __init__(self, root_dir: str):
        """
        Initialize the store and rebuild the index from disk.

        Args:
            root_dir: Directory under which the articles directory is managed

        Raises:
            ArticleStoreIOError: If the working directory or metadata file
                cannot be created or read
            CorruptedStoreError: If meta.json is not a JSON array
        """
        self.workdir = os.path.join(root_dir, ARTICLES_DIRNAME)
        self._lock = threading.Lock()
        self._articles: Dict[str, Article] = {}
        self.recovery_errors: List[ArticleStoreError] = []

        with self._lock:
            self._recover()

        if self.recovery_errors:
            logger.warning(
                "Recovered %d article(s) from %s, skipped %d: %s",
                len(self._articles), self.workdir, len(self.recovery_errors),
                self.recovery_errors[0],
            )
        else:
            logger.info("Recovered %d article(s) from %s", len(self._articles), self.workdir)

    @property
    def recovery_error(self) -> Optional[ArticleStoreError]:
        """First error met during the recovery scan, or None."""
        if self.recovery_errors:
            return self.recovery_errors[0]
        return None

    def _get_meta_path(self) -> str:
        """Get the full path of the metadata file."""
        return os.path.join(self.workdir, META_FILENAME)

    def _get_content_path(self, article_id: str) -> str:
        """Get the full path of an article's content file."""
        return os.path.join(self.workdir, article_id + ".md")

    def _recover(self) -> None:
        try:
            os.makedirs(self.workdir, exist_ok=True)
        except OSError as exc:
            raise ArticleStoreIOError(
                f"cannot create working directory: {exc}", path=self.workdir
            ) from exc

        meta_path = self._get_meta_path()
        if not os.path.exists(meta_path):
            self._write_meta_entries([])
            return

        for entry in self._read_meta_entries():
            try:
                meta = ArticleMeta.from_dict(entry)
                validate_article_id(meta.id)
                # First entry wins, the same one _update_meta rewrites
                if meta.id in self._articles:
                    raise CorruptedStoreError(f"duplicate metadata entry for article {meta.id!r}")
                content = self._read_content(meta.id)
            except ArticleStoreError as exc:
                self.recovery_errors.append(exc)
                continue
            self._articles[meta.id] = Article(meta=meta, content=content)

    def _read_meta_entries(self) -> List[Dict[str, Any]]:
        """
        Read the raw metadata entries from disk.

        Raises:
            ArticleStoreIOError: If the file cannot be read
            CorruptedStoreError: If the file is not a JSON array
        """
        meta_path = self._get_meta_path()
        try:
            entries = load_json_file(meta_path, [])
        except json.JSONDecodeError as exc:
            raise CorruptedStoreError(f"{meta_path} is not valid JSON: {exc}") from exc
        except OSError as exc:
            raise ArticleStoreIOError(f"cannot read metadata: {exc}", path=meta_path) from exc
        if not isinstance(entries, list):
            raise CorruptedStoreError(f"{meta_path} does not hold a JSON array")
        return entries

    def _write_meta_entries(self, entries: List[Dict[str, Any]]) -> None:
        meta_path = self._get_meta_path()
        try:
            save_json_file(meta_path, entries, ensure_dir=False)
        except OSError as exc:
            raise ArticleStoreIOError(f"cannot write metadata: {exc}", path=meta_path) from exc

    def _read_content(self, article_id: str) -> bytes:
        path = self._get_content_path(article_id)
        try:
            return read_bytes_file(path)
        except OSError as exc:
            raise ArticleStoreIOError(
                f"cannot read content of article {article_id!r}: {exc}", path=path
            ) from exc

    def _write_content(self, article: Article) -> None:
        path = self._get_content_path(article.id)
        try:
            write_bytes_file(path, article.content)
        except OSError as exc:
            raise ArticleStoreIOError(
                f"cannot write content of article {article.id!r}: {exc}", path=path
            ) from exc

    def _update_meta(self, article: Article) -> None:
        """Rewrite meta.json with this article's entry updated or appended."""
        entries = self._read_meta_entries()
        new_entry = article.meta.to_dict()

        for i, existing in enumerate(entries):
            if isinstance(existing, dict) and existing.get("id") == article.id:
                entries[i] = {**existing, **new_entry}
                break
        else:
            entries.append(new_entry)

        self._write_meta_entries(entries)

    def list_articles(self) -> List[Article]:
        """
        Get all articles, newest first, ties broken by identifier ascending.

        Returns:
            List of articles.
        """
        with self._lock:
            articles = list(self._articles.values())

            for article in articles:
                if not isinstance(article.creation_date, date):
                    raise CorruptedStoreError(
                        f"article {article.id!r} has unorderable creation date "
                        f"{article.creation_date!r}"
                    )

            # Two stable sorts: id ascending, then date descending.
            articles.sort(key=lambda a: a.id)
            articles.sort(key=lambda a: a.creation_date, reverse=True)
            return articles

    def load_article(self, article_id: str) -> Article:
        """
        Get a single article by ID from the index.

        Args:
            article_id: The unique identifier of the article.

        Returns:
            The stored article.
        """
        with self._lock:
            try:
                return self._articles[article_id]
            except KeyError:
                raise ArticleNotFoundError(article_id) from None

    def save_article(self, article: Article) -> None:
        """
        Save (create or update) an article on local disk.

        The content file and metadata are written first; the index is updated
        only once both writes succeed. A metadata failure after the content
        write leaves the new content on disk ahead of meta.json until the next
        successful save of the same identifier.

        Args:
            article: The article to store under its identifier.

        Raises:
            InvalidArticleError: If a field has the wrong type; nothing is written
        """
        validate_article(article)
        with self._lock:
            self._write_content(article)
            self._update_meta(article)
            self._articles[article.id] = article
        logger.debug("Saved article %s", article.id)
