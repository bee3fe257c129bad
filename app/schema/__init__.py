"""Schema package exports."""

from .article_jobs import ArticleJob

__all__ = ["ArticleJob"]
