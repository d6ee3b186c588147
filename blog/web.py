"""
Web layer for the personal blog.
Serves the homepage, article pages, authoring forms and a JSON API on top of
an ArticleStore.
"""
import html
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from blog.article_store import ArticleStore
from blog.errors import ArticleNotFoundError, ArticleStoreError, InvalidArticleError
from blog.file_utils import get_today_date
from blog.forms import ArticleForm
from blog.models import Article, format_date, generate_article_id, parse_date
from blog.rendering import markdown_to_safe_html

# Configure web logger
logger = logging.getLogger('blog.web')
logger.setLevel(logging.INFO)

# Add console handler if not already present
if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

SERVER_ERROR_DETAIL = "Internal server error"


def sanitize_log_input(value: str) -> str:
    """
    Sanitize user input for logging to prevent log injection attacks.
    Removes newlines and other control characters that could be used for log forging.

    Args:
        value: The user input to sanitize

    Returns:
        Sanitized string safe for logging
    """
    if not isinstance(value, str):
        value = str(value)
    sanitized = value.replace('\n', '_').replace('\r', '_').replace('\t', '_')
    # Truncate to reasonable length to prevent log flooding
    return sanitized[:200]


# ================== HTML RENDERING ==================

def render_layout(title: str, body: str) -> str:
    """Wrap a page body in the common layout."""
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{html.escape(title)}</title>
    <style>
        body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 760px; margin: 0 auto; padding: 20px; color: #222; }}
        header a {{ color: #222; text-decoration: none; font-weight: bold; }}
        .article-list {{ list-style: none; padding: 0; }}
        .article-list li {{ margin-bottom: 12px; }}
        .date {{ color: #777; font-size: 0.9em; }}
        .error {{ color: #c0392b; font-size: 0.9em; }}
        textarea {{ width: 100%; min-height: 320px; font-family: monospace; }}
        input[type=text] {{ width: 100%; }}
        pre {{ background: #f5f5f5; padding: 10px; overflow-x: auto; }}
    </style>
</head>
<body>
    <header><a href="/home">Home</a> &middot; <a href="/articles/new">New article</a></header>
    <main>
{body}
    </main>
</body>
</html>"""


def render_home_page(articles: List[Article]) -> str:
    """Render the homepage listing."""
    if not articles:
        items = "<p>No articles yet.</p>"
    else:
        rows = []
        for article in articles:
            rows.append(
                f'<li><a href="/articles/{html.escape(article.id)}">{html.escape(article.title)}</a> '
                f'<span class="date">{format_date(article.creation_date)}</span></li>'
            )
        items = '<ul class="article-list">\n' + "\n".join(rows) + "\n</ul>"
    return render_layout("Blog", f"<h1>Latest articles</h1>\n{items}")


def render_article_page(article: Article) -> str:
    """Render a single article with its markdown converted to safe HTML."""
    body = (
        f"<article>\n<h1>{html.escape(article.title)}</h1>\n"
        f'<p class="date">{format_date(article.creation_date)} &middot; '
        f'<a href="/articles/edit/{html.escape(article.id)}">Edit</a></p>\n'
        f"{markdown_to_safe_html(article.content)}\n</article>"
    )
    return render_layout(article.title, body)


def render_form_page(form: ArticleForm, action: str, heading: str) -> str:
    """Render the create/edit form with any validation errors."""
    def error_for(name: str) -> str:
        if name in form.errors:
            return f'<p class="error">{html.escape(form.errors[name])}</p>'
        return ""

    body = f"""<h1>{html.escape(heading)}</h1>
<form method="post" action="{html.escape(action)}">
    <label for="title">Title</label>
    <input type="text" id="title" name="title" value="{html.escape(form.title)}">
    {error_for('title')}
    <label for="content">Content</label>
    <textarea id="content" name="content">{html.escape(form.content)}</textarea>
    {error_for('content')}
    <button type="submit">Save</button>
</form>"""
    return render_layout(heading, body)


def article_to_dict(article: Article, include_content: bool = False) -> Dict[str, Any]:
    """Convert an article to a JSON-serializable dict."""
    data = article.meta.to_dict()
    if include_content:
        data["content"] = article.text
    return data


async def parse_form_body(request: Request) -> Dict[str, str]:
    """Decode an application/x-www-form-urlencoded request body."""
    raw = await request.body()
    fields = parse_qs(raw.decode("utf-8", errors="replace"), keep_blank_values=True)
    return {key: values[0] for key, values in fields.items()}


def create_blog_app(store: ArticleStore, homepage_limit: int = 10) -> FastAPI:
    """
    Create the blog FastAPI application.

    Args:
        store: Article store backing every page
        homepage_limit: Number of newest articles listed on the homepage

    Returns:
        FastAPI application instance
    """
    app = FastAPI()  # pylint: disable=redefined-outer-name

    # ================== STORE ACCESS ==================
    def server_error(action: str, exc: Exception) -> HTTPException:
        """Log a store failure and build the generic 500 response."""
        logger.error("%s failed: %s", action, exc)
        return HTTPException(status_code=500, detail=SERVER_ERROR_DETAIL)

    def list_articles() -> List[Article]:
        try:
            return store.list_articles()
        except ArticleStoreError as exc:
            raise server_error("Listing articles", exc) from exc

    def load_article(article_id: str) -> Article:
        sanitized_id = sanitize_log_input(article_id)
        try:
            return store.load_article(article_id)
        except ArticleNotFoundError:
            logger.warning(f"Article {sanitized_id} not found")
            raise HTTPException(status_code=404, detail="Article not found") from None
        except ArticleStoreError as exc:
            raise server_error(f"Loading article {sanitized_id}", exc) from exc

    def save_article(article: Article) -> None:
        try:
            store.save_article(article)
        except InvalidArticleError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except ArticleStoreError as exc:
            raise server_error(f"Saving article {sanitize_log_input(article.id)}", exc) from exc

    # ================== PAGES ==================
    @app.get("/", response_class=HTMLResponse)
    @app.get("/home", response_class=HTMLResponse)
    async def home_page():
        """Homepage with the newest articles."""
        logger.info("GET /home")
        articles = list_articles()[:homepage_limit]
        return HTMLResponse(content=render_home_page(articles))

    @app.get("/articles/new", response_class=HTMLResponse)
    async def new_article_page():
        """Empty form for a new article."""
        logger.info("GET /articles/new")
        return HTMLResponse(content=render_form_page(ArticleForm(), "/articles/new", "New article"))

    @app.post("/articles/new")
    async def create_article(request: Request):
        """Create an article with a fresh identifier and today's date."""
        logger.info("POST /articles/new")
        fields = await parse_form_body(request)
        form = ArticleForm(title=fields.get("title", ""), content=fields.get("content", ""))
        if not form.validate():
            logger.warning(f"POST /articles/new - 400 {sorted(form.errors)}")
            return HTMLResponse(
                content=render_form_page(form, "/articles/new", "New article"),
                status_code=400,
            )

        article = Article.create(
            article_id=generate_article_id(),
            title=form.title,
            creation_date=get_today_date(),
            content=form.content.encode("utf-8"),
        )
        save_article(article)
        logger.info(f"POST /articles/new - created {article.id}")
        return RedirectResponse(url=f"/articles/{article.id}", status_code=303)

    @app.get("/articles/{article_id}", response_class=HTMLResponse)
    async def article_page(article_id: str):
        """Single article page."""
        logger.info(f"GET /articles/{sanitize_log_input(article_id)}")
        article = load_article(article_id)
        return HTMLResponse(content=render_article_page(article))

    @app.get("/articles/edit/{article_id}", response_class=HTMLResponse)
    async def edit_article_page(article_id: str):
        """Form pre-filled with an existing article."""
        logger.info(f"GET /articles/edit/{sanitize_log_input(article_id)}")
        article = load_article(article_id)
        form = ArticleForm.from_article(article)
        return HTMLResponse(
            content=render_form_page(form, f"/articles/edit/{article.id}", "Edit article")
        )

    @app.post("/articles/edit/{article_id}")
    async def edit_article(article_id: str, request: Request):
        """Update an article, keeping its identifier and creation date."""
        sanitized_id = sanitize_log_input(article_id)
        logger.info(f"POST /articles/edit/{sanitized_id}")
        existing = load_article(article_id)
        fields = await parse_form_body(request)
        form = ArticleForm(title=fields.get("title", ""), content=fields.get("content", ""))
        if not form.validate():
            logger.warning(f"POST /articles/edit/{sanitized_id} - 400 {sorted(form.errors)}")
            return HTMLResponse(
                content=render_form_page(form, f"/articles/edit/{existing.id}", "Edit article"),
                status_code=400,
            )

        article = Article.create(
            article_id=existing.id,
            title=form.title,
            creation_date=existing.creation_date,
            content=form.content.encode("utf-8"),
        )
        save_article(article)
        logger.info(f"POST /articles/edit/{sanitized_id} - 303")
        return RedirectResponse(url=f"/articles/{article.id}", status_code=303)

    # ================== JSON API ==================
    async def read_json_payload(request: Request, action: str) -> Any:
        """Decode the request body, 400 when it is not JSON."""
        try:
            return await request.json()
        except ValueError:
            logger.warning(f"{action} - 400 Invalid JSON body")
            raise HTTPException(status_code=400, detail="Request body must be valid JSON") from None

    def validated_payload(payload: Any, action: str) -> ArticleForm:
        """Validate the title/content fields of a JSON payload."""
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Request body must be a JSON object")
        title = payload.get("title")
        content = payload.get("content")
        if not isinstance(title, str) or not isinstance(content, str):
            logger.warning(f"{action} - 400 Missing title or content")
            raise HTTPException(status_code=400, detail="title and content are required")
        form = ArticleForm(title=title, content=content)
        if not form.validate():
            logger.warning(f"{action} - 400 {sorted(form.errors)}")
            raise HTTPException(status_code=400, detail=form.errors)
        return form

    def payload_date(payload: Dict[str, Any], action: str):
        """Parse the optional creation_date field, None when absent."""
        raw = payload.get("creation_date")
        if raw is None:
            return None
        try:
            return parse_date(raw)
        except (TypeError, ValueError):
            logger.warning(f"{action} - 400 Invalid creation_date")
            raise HTTPException(
                status_code=400, detail="creation_date must use the DD.MM.YYYY format"
            ) from None

    @app.get("/api/articles")
    async def get_articles():
        """Get metadata of all articles, newest first."""
        logger.info("GET /api/articles")
        articles = list_articles()
        return JSONResponse({"articles": [article_to_dict(a) for a in articles]})

    @app.get("/api/articles/{article_id}")
    async def get_article(article_id: str):
        """Get a single article with its content."""
        logger.info(f"GET /api/articles/{sanitize_log_input(article_id)}")
        article = load_article(article_id)
        return JSONResponse(article_to_dict(article, include_content=True))

    @app.post("/api/articles")
    async def post_article(request: Request):
        """Create (or overwrite, when an id is supplied) an article."""
        logger.info("POST /api/articles")
        payload = await read_json_payload(request, "POST /api/articles")
        form = validated_payload(payload, "POST /api/articles")
        creation_date = payload_date(payload, "POST /api/articles") or get_today_date()

        article_id: Optional[str] = payload.get("id") or generate_article_id()
        article = Article.create(
            article_id=article_id,
            title=form.title,
            creation_date=creation_date,
            content=form.content.encode("utf-8"),
        )
        save_article(article)
        logger.info(f"POST /api/articles - 200 created {sanitize_log_input(article.id)}")
        return JSONResponse({"status": "ok", "article_id": article.id})

    @app.put("/api/articles/{article_id}")
    async def put_article(article_id: str, request: Request):
        """Update an article; the creation date is kept unless supplied."""
        sanitized_id = sanitize_log_input(article_id)
        action = f"PUT /api/articles/{sanitized_id}"
        logger.info(action)
        existing = load_article(article_id)
        payload = await read_json_payload(request, action)
        form = validated_payload(payload, action)
        creation_date = payload_date(payload, action) or existing.creation_date

        article = Article.create(
            article_id=existing.id,
            title=form.title,
            creation_date=creation_date,
            content=form.content.encode("utf-8"),
        )
        save_article(article)
        logger.info(f"{action} - 200")
        return JSONResponse({"status": "ok", "article_id": article.id})

    return app
