#!/usr/bin/env python
"""
Main entry point for the personal blog.
Opens the article store and runs the web server.
"""
import logging
import sys

import uvicorn

from blog.article_store_factory import create_article_store
from blog.config import Config
from blog.errors import ArticleStoreError
from blog.web import create_blog_app

logger = logging.getLogger('blog.main')


def build_app(config: Config):
    """
    Open the article store and create the web application.

    A partial recovery is logged and the server starts with the articles
    that could be loaded.
    """
    store, recovery_error = create_article_store(root_dir=config.blog_root_dir)
    if recovery_error is not None:
        logger.warning("Some articles could not be loaded: %s", recovery_error)
    return create_blog_app(store, homepage_limit=config.homepage_article_limit)


def main():
    """Run the blog server."""
    config = Config()
    logging.basicConfig(
        level=config.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    try:
        app = build_app(config)
    except ArticleStoreError as exc:
        logger.error("Cannot open article store: %s", exc)
        sys.exit(1)

    print(f"Server is listening on http://{config.server_host}:{config.server_port}")

    uvicorn.run(
        app,
        host=config.server_host,
        port=config.server_port,
        log_level=config.log_level.lower()
    )


if __name__ == "__main__":
    main()
