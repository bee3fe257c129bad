"""Provider implementations."""

from app.ai.providers.tavily import TavilySearchProvider

__all__ = ["TavilySearchProvider"]
