"""
Factory function for creating article stores.
"""
from typing import Optional, Tuple

from blog.article_store import ArticleStore
from blog.config import Config
from blog.errors import ArticleStoreError
from blog.local_disk_article_store import LocalDiskArticleStore


def create_article_store(
    root_dir: Optional[str] = None,
) -> Tuple[ArticleStore, Optional[ArticleStoreError]]:
    """
    Create an article store and report the first recovery error.

    The store is usable even when the error is set: only the articles that
    failed to load are missing from it.

    Args:
        root_dir: Directory holding the articles directory
            (default: BLOG_ROOT_DIR or the current directory)

    Returns:
        Tuple of the store and its first recovery error (or None)
    """
    if root_dir is None:
        root_dir = Config().blog_root_dir
    store = LocalDiskArticleStore(root_dir=root_dir)
    return store, store.recovery_error
