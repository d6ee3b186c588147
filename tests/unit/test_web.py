"""
Unit tests for the blog web layer endpoints.
"""
import asyncio
import json
import logging
from datetime import date
from io import StringIO
from unittest.mock import MagicMock, patch
from urllib.parse import urlencode

import pytest
from fastapi import HTTPException

from blog.errors import ArticleStoreIOError, InvalidArticleError
from tests.unit.test_store_base import BaseLocalDiskStoreTests


def make_form_request(fields):
    """Build a mock request carrying a URL-encoded form body."""
    mock_request = MagicMock()
    body = urlencode(fields).encode("utf-8")

    async def mock_body():
        return body

    mock_request.body = mock_body
    return mock_request


def make_json_request(payload):
    """Build a mock request carrying a JSON body."""
    mock_request = MagicMock()

    async def mock_json():
        return payload

    mock_request.json = mock_json
    return mock_request


def make_invalid_json_request():
    """Build a mock request whose body is not valid JSON."""
    mock_request = MagicMock()

    async def mock_json():
        raise json.JSONDecodeError("Expecting value", "{not json", 1)

    mock_request.json = mock_json
    return mock_request


class TestBlogApp(BaseLocalDiskStoreTests):
    """Test suite for blog web endpoints."""

    @pytest.fixture
    def store(self, temp_root_dir):
        """Create a LocalDiskArticleStore with a temporary root directory."""
        from blog.local_disk_article_store import LocalDiskArticleStore
        return LocalDiskArticleStore(root_dir=temp_root_dir)

    @pytest.fixture
    def app(self, store):
        """Create FastAPI app with the injected store."""
        from blog.web import create_blog_app
        return create_blog_app(store, homepage_limit=2)

    @pytest.fixture
    def log_capture(self):
        """Fixture to capture web log output."""
        log_stream = StringIO()
        handler = logging.StreamHandler(log_stream)
        handler.setLevel(logging.INFO)
        logger = logging.getLogger('blog.web')
        logger.addHandler(handler)

        yield log_stream

        logger.removeHandler(handler)
        handler.close()

    def _get_route_endpoint(self, app, path, method="GET"):
        """Helper to find a route endpoint by path and method."""
        for route in app.routes:
            if hasattr(route, "path") and route.path == path:
                if hasattr(route, "methods") and method in route.methods:
                    return route.endpoint
        return None

    def _save(self, store, article_id, title, date_text, content="# Body"):
        store.save_article(self.make_article(article_id, title, date_text, content))

    # ================== ROUTES ==================

    @pytest.mark.parametrize("path,method", [
        ("/", "GET"),
        ("/home", "GET"),
        ("/articles/new", "GET"),
        ("/articles/new", "POST"),
        ("/articles/{article_id}", "GET"),
        ("/articles/edit/{article_id}", "GET"),
        ("/articles/edit/{article_id}", "POST"),
        ("/api/articles", "GET"),
        ("/api/articles", "POST"),
        ("/api/articles/{article_id}", "GET"),
        ("/api/articles/{article_id}", "PUT"),
    ])
    def test_route_exists(self, app, path, method):
        """Test that every blog route is registered."""
        assert self._get_route_endpoint(app, path, method) is not None

    # ================== HOMEPAGE ==================

    def test_home_page_empty(self, app):
        """Test the homepage with no articles."""
        endpoint = self._get_route_endpoint(app, "/home")
        response = asyncio.run(endpoint())
        assert response.status_code == 200
        assert "No articles yet." in response.body.decode()

    def test_home_page_lists_newest_within_limit(self, app, store):
        """Test that the homepage shows the newest articles up to the limit."""
        self._save(store, "a", "Oldest", "01.01.2024")
        self._save(store, "b", "Middle", "02.01.2024")
        self._save(store, "c", "Newest", "03.01.2024")

        endpoint = self._get_route_endpoint(app, "/home")
        page = asyncio.run(endpoint()).body.decode()

        assert "Newest" in page
        assert "Middle" in page
        assert "Oldest" not in page
        assert page.index("Newest") < page.index("Middle")
        assert "03.01.2024" in page

    def test_home_page_escapes_titles(self, app, store):
        """Test that titles are HTML-escaped on the homepage."""
        self._save(store, "a", "<script>x</script>", "01.01.2024")
        page = asyncio.run(self._get_route_endpoint(app, "/")()).body.decode()
        assert "<script>x</script>" not in page
        assert "&lt;script&gt;" in page

    def test_home_page_store_failure_returns_500(self, app, store, log_capture):
        """Test that a store error becomes a generic 500 and is logged."""
        with patch.object(store, "list_articles", side_effect=ArticleStoreIOError("disk gone")):
            with pytest.raises(HTTPException) as exc_info:
                asyncio.run(self._get_route_endpoint(app, "/home")())

        assert exc_info.value.status_code == 500
        assert "disk gone" not in str(exc_info.value.detail)
        assert "disk gone" in log_capture.getvalue()

    # ================== ARTICLE PAGE ==================

    def test_article_page_renders_markdown(self, app, store):
        """Test that the article page renders content as HTML."""
        self._save(store, "a1", "Hello", "01.01.2024", "# Hi\n\n<script>bad()</script>")
        endpoint = self._get_route_endpoint(app, "/articles/{article_id}")
        page = asyncio.run(endpoint("a1")).body.decode()

        assert "<h1>Hello</h1>" in page
        assert "Hi</h1>" in page
        assert "<script>bad()" not in page
        assert 'href="/articles/edit/a1"' in page

    def test_article_page_not_found(self, app, log_capture):
        """Test that an unknown article returns 404."""
        endpoint = self._get_route_endpoint(app, "/articles/{article_id}")
        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(endpoint("missing"))
        assert exc_info.value.status_code == 404
        assert "Article missing not found" in log_capture.getvalue()

    # ================== CREATE FORM ==================

    def test_new_article_page(self, app):
        """Test that the new-article form renders."""
        page = asyncio.run(self._get_route_endpoint(app, "/articles/new")()).body.decode()
        assert 'action="/articles/new"' in page
        assert 'name="title"' in page

    def test_create_article_assigns_id_and_today(self, app, store):
        """Test that a valid form creates an article with a fresh id and today's date."""
        endpoint = self._get_route_endpoint(app, "/articles/new", "POST")
        with patch("blog.web.get_today_date", return_value=date(2024, 5, 6)):
            response = asyncio.run(endpoint(make_form_request(
                {"title": "Fresh", "content": "# New post"}
            )))

        assert response.status_code == 303
        articles = store.list_articles()
        assert len(articles) == 1
        assert articles[0].title == "Fresh"
        assert articles[0].content == b"# New post"
        assert articles[0].creation_date == date(2024, 5, 6)
        assert response.headers["location"] == f"/articles/{articles[0].id}"

    def test_create_article_invalid_form(self, app, store):
        """Test that a blank title re-renders the form with an error."""
        endpoint = self._get_route_endpoint(app, "/articles/new", "POST")
        response = asyncio.run(endpoint(make_form_request({"title": " ", "content": "body"})))

        assert response.status_code == 400
        page = response.body.decode()
        assert "Please enter article&#x27;s title" in page
        assert store.list_articles() == []

    def test_create_article_store_failure_returns_500(self, app, store):
        """Test that a failed save surfaces as a generic 500."""
        endpoint = self._get_route_endpoint(app, "/articles/new", "POST")
        with patch.object(store, "save_article", side_effect=ArticleStoreIOError("disk full")):
            with pytest.raises(HTTPException) as exc_info:
                asyncio.run(endpoint(make_form_request({"title": "T", "content": "C"})))
        assert exc_info.value.status_code == 500
        assert exc_info.value.detail == "Internal server error"

    # ================== EDIT FORM ==================

    def test_edit_article_page_prefilled(self, app, store):
        """Test that the edit form is pre-filled with the article."""
        self._save(store, "a1", "Old Title", "01.01.2024", "Old body")
        endpoint = self._get_route_endpoint(app, "/articles/edit/{article_id}")
        page = asyncio.run(endpoint("a1")).body.decode()
        assert 'value="Old Title"' in page
        assert "Old body</textarea>" in page
        assert 'action="/articles/edit/a1"' in page

    def test_edit_article_page_not_found(self, app):
        """Test that editing an unknown article returns 404."""
        endpoint = self._get_route_endpoint(app, "/articles/edit/{article_id}")
        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(endpoint("missing"))
        assert exc_info.value.status_code == 404

    def test_edit_article_keeps_id_and_creation_date(self, app, store):
        """Test that editing updates title and content but not id or date."""
        self._save(store, "a1", "Old Title", "01.01.2024", "Old body")
        endpoint = self._get_route_endpoint(app, "/articles/edit/{article_id}", "POST")
        response = asyncio.run(endpoint("a1", make_form_request(
            {"title": "New Title", "content": "New body"}
        )))

        assert response.status_code == 303
        assert response.headers["location"] == "/articles/a1"
        articles = store.list_articles()
        assert len(articles) == 1
        assert articles[0].title == "New Title"
        assert articles[0].content == b"New body"
        assert articles[0].creation_date == date(2024, 1, 1)

    def test_edit_article_invalid_form(self, app, store):
        """Test that blank content keeps the stored article unchanged."""
        self._save(store, "a1", "Title", "01.01.2024", "Body")
        endpoint = self._get_route_endpoint(app, "/articles/edit/{article_id}", "POST")
        response = asyncio.run(endpoint("a1", make_form_request({"title": "Title", "content": ""})))

        assert response.status_code == 400
        assert store.load_article("a1").content == b"Body"

    def test_edit_unknown_article_returns_404(self, app, store):
        """Test that posting an edit for an unknown id returns 404 and saves nothing."""
        endpoint = self._get_route_endpoint(app, "/articles/edit/{article_id}", "POST")
        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(endpoint("missing", make_form_request({"title": "T", "content": "C"})))
        assert exc_info.value.status_code == 404
        assert store.list_articles() == []

    # ================== JSON API ==================

    def test_api_get_articles(self, app, store):
        """Test that GET /api/articles returns metadata newest first."""
        self._save(store, "1", "Hello", "01.01.2024", "# Hi")
        self._save(store, "2", "World", "02.01.2024", "# Bye")

        response = asyncio.run(self._get_route_endpoint(app, "/api/articles")())
        data = json.loads(response.body)
        assert data["articles"] == [
            {"id": "2", "title": "World", "creation-date": "02.01.2024"},
            {"id": "1", "title": "Hello", "creation-date": "01.01.2024"},
        ]

    def test_api_get_article(self, app, store):
        """Test that GET /api/articles/{id} includes content."""
        self._save(store, "1", "Hello", "01.01.2024", "# Hi")
        endpoint = self._get_route_endpoint(app, "/api/articles/{article_id}")
        data = json.loads(asyncio.run(endpoint("1")).body)
        assert data == {"id": "1", "title": "Hello", "creation-date": "01.01.2024", "content": "# Hi"}

    def test_api_get_article_not_found(self, app):
        """Test that GET /api/articles/{id} returns 404 for unknown id."""
        endpoint = self._get_route_endpoint(app, "/api/articles/{article_id}")
        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(endpoint("missing"))
        assert exc_info.value.status_code == 404

    def test_api_post_article_creates_article(self, app, store):
        """Test that POST /api/articles creates an article."""
        endpoint = self._get_route_endpoint(app, "/api/articles", "POST")
        response = asyncio.run(endpoint(make_json_request(
            {"title": "New Article", "content": "# Content"}
        )))
        data = json.loads(response.body)

        assert data["status"] == "ok"
        article = store.load_article(data["article_id"])
        assert article.title == "New Article"

    def test_api_post_article_with_id_and_date(self, app, store):
        """Test that POST /api/articles honours a supplied id and date."""
        endpoint = self._get_route_endpoint(app, "/api/articles", "POST")
        response = asyncio.run(endpoint(make_json_request(
            {"id": "my-post", "title": "T", "content": "C", "creation_date": "24.12.2023"}
        )))

        assert json.loads(response.body)["article_id"] == "my-post"
        assert store.load_article("my-post").creation_date == date(2023, 12, 24)

    @pytest.mark.parametrize("payload", [
        {"content": "# Content"},
        {"title": "Title"},
        {"title": "  ", "content": "C"},
        {"title": "T", "content": "C", "creation_date": "2024-01-01"},
        {"title": "T", "content": "C", "id": "../etc/passwd"},
        ["not", "an", "object"],
    ])
    def test_api_post_article_rejects_bad_payload(self, app, store, payload):
        """Test that POST /api/articles returns 400 for invalid payloads."""
        endpoint = self._get_route_endpoint(app, "/api/articles", "POST")
        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(endpoint(make_json_request(payload)))
        assert exc_info.value.status_code == 400
        assert store.list_articles() == []

    def test_api_put_article_keeps_creation_date(self, app, store):
        """Test that PUT /api/articles/{id} updates without resetting the date."""
        self._save(store, "a1", "Old", "01.01.2024", "Old")
        endpoint = self._get_route_endpoint(app, "/api/articles/{article_id}", "PUT")
        response = asyncio.run(endpoint("a1", make_json_request({"title": "New", "content": "New"})))

        assert json.loads(response.body)["status"] == "ok"
        article = store.load_article("a1")
        assert article.title == "New"
        assert article.creation_date == date(2024, 1, 1)

    def test_api_put_article_with_new_date(self, app, store):
        """Test that PUT /api/articles/{id} applies a supplied creation date."""
        self._save(store, "a1", "Old", "01.01.2024", "Old")
        endpoint = self._get_route_endpoint(app, "/api/articles/{article_id}", "PUT")
        asyncio.run(endpoint("a1", make_json_request(
            {"title": "New", "content": "New", "creation_date": "10.02.2024"}
        )))
        assert store.load_article("a1").creation_date == date(2024, 2, 10)

    def test_api_put_article_returns_404_for_unknown_id(self, app):
        """Test that PUT /api/articles/{id} returns 404 for unknown article."""
        endpoint = self._get_route_endpoint(app, "/api/articles/{article_id}", "PUT")
        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(endpoint("missing", make_json_request({"title": "T", "content": "C"})))
        assert exc_info.value.status_code == 404

    def test_api_post_article_rejects_invalid_json(self, app, store):
        """Test that POST /api/articles returns 400 for a body that is not JSON."""
        endpoint = self._get_route_endpoint(app, "/api/articles", "POST")
        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(endpoint(make_invalid_json_request()))
        assert exc_info.value.status_code == 400
        assert store.list_articles() == []

    def test_api_put_article_rejects_invalid_json(self, app, store):
        """Test that PUT /api/articles/{id} returns 400 for a body that is not JSON."""
        self._save(store, "a1", "Old", "01.01.2024", "Old")
        endpoint = self._get_route_endpoint(app, "/api/articles/{article_id}", "PUT")
        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(endpoint("a1", make_invalid_json_request()))
        assert exc_info.value.status_code == 400
        assert store.load_article("a1").title == "Old"

    def test_api_post_article_maps_invalid_article_to_400(self, app, store):
        """Test that an article the store refuses is reported as a client error."""
        endpoint = self._get_route_endpoint(app, "/api/articles", "POST")
        with patch.object(store, "save_article",
                          side_effect=InvalidArticleError("content must be bytes")):
            with pytest.raises(HTTPException) as exc_info:
                asyncio.run(endpoint(make_json_request({"title": "T", "content": "C"})))
        assert exc_info.value.status_code == 400

    # ================== LOGGING ==================

    def test_logs_sanitized_ids(self, app, log_capture):
        """Test that ids are sanitized before being logged."""
        endpoint = self._get_route_endpoint(app, "/articles/{article_id}")
        with pytest.raises(HTTPException):
            asyncio.run(endpoint("evil\nFAKE LOG LINE"))
        assert "evil_FAKE LOG LINE" in log_capture.getvalue()
        assert "evil\nFAKE" not in log_capture.getvalue()


class TestSanitizeLogInput:
    """Test suite for sanitize_log_input."""

    def test_replaces_control_characters(self):
        """Test that newlines and tabs are replaced."""
        from blog.web import sanitize_log_input
        assert sanitize_log_input("a\nb\rc\td") == "a_b_c_d"

    def test_truncates_long_values(self):
        """Test that values are truncated to 200 characters."""
        from blog.web import sanitize_log_input
        assert len(sanitize_log_input("x" * 500)) == 200

    def test_converts_non_strings(self):
        """Test that non-string values are converted."""
        from blog.web import sanitize_log_input
        assert sanitize_log_input(42) == "42"
