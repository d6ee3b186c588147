"""
Validation of submitted article forms.
"""
from dataclasses import dataclass, field
from typing import Dict

from blog.models import Article


@dataclass
class ArticleForm:
    """Title and content submitted by the author, plus validation errors."""

    title: str = ""
    content: str = ""
    errors: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_article(cls, article: Article) -> "ArticleForm":
        """Pre-fill a form for editing an existing article."""
        return cls(title=article.title, content=article.text)

    def validate(self) -> bool:
        """
        Check that title and content are not blank.

        Returns:
            True if the form is valid; errors is filled otherwise.
        """
        self.errors = {}
        if not self.content.strip():
            self.errors["content"] = "Please enter article's content"
        if not self.title.strip():
            self.errors["title"] = "Please enter article's title"
        return not self.errors
