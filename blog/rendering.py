"""
Markdown to sanitized HTML conversion for article pages.

Raw HTML in article sources is escaped rather than passed through, links with
unsafe schemes lose their target, and external links open in a new tab.
"""
import html
import re
from typing import Union
from urllib.parse import urlsplit

import markdown
from markdown.extensions import Extension
from markdown.treeprocessors import Treeprocessor

MD_EXTENSIONS = [
    "fenced_code",
    "tables",
    "toc",
]

SAFE_URL_SCHEMES = frozenset({"", "http", "https", "mailto"})

URL_ATTRIBUTES = {"a": "href", "img": "src"}

# Browsers ignore whitespace and control characters inside a URL scheme.
URL_IGNORED_CHARS = re.compile(r"[\x00-\x20\x7f]+")


def normalize_url(url: str) -> str:
    """Decode entities and drop the characters a browser would skip."""
    return URL_IGNORED_CHARS.sub("", html.unescape(url))


def url_scheme(url: str) -> str:
    """Scheme of a link target as a browser would read it."""
    return urlsplit(normalize_url(url)).scheme.lower()


def is_safe_url(url: str) -> bool:
    """Check whether a link target uses an allowed scheme."""
    normalized = normalize_url(url)
    if "&#" in normalized:
        return False
    try:
        scheme = urlsplit(normalized).scheme.lower()
    except ValueError:
        return False
    if scheme not in SAFE_URL_SCHEMES:
        return False
    if not scheme and ":" in normalized.split("/", 1)[0]:
        return False
    return True


class LinkPolicyTreeprocessor(Treeprocessor):
    """Drops unsafe link targets and opens absolute links in a new tab."""

    def run(self, root):
        for tag, attribute in URL_ATTRIBUTES.items():
            for element in root.iter(tag):
                url = element.get(attribute)
                if url is None:
                    continue
                if not is_safe_url(url):
                    del element.attrib[attribute]
                    continue
                if tag == "a" and url_scheme(url) in ("http", "https"):
                    element.set("target", "_blank")
                    element.set("rel", "noopener noreferrer")


class SafeHtmlExtension(Extension):
    """Disables raw HTML and applies the link policy."""

    def extendMarkdown(self, md):
        md.preprocessors.deregister("html_block")
        md.inlinePatterns.deregister("html")
        md.treeprocessors.register(LinkPolicyTreeprocessor(md), "link_policy", -1)


def markdown_to_safe_html(content: Union[bytes, str]) -> str:
    """
    Convert article markdown to HTML safe for embedding in a page.

    Args:
        content: Raw markdown, bytes are decoded as UTF-8

    Returns:
        Rendered HTML fragment
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    return markdown.markdown(
        content,
        extensions=MD_EXTENSIONS + [SafeHtmlExtension()],
        output_format="html",
    )
