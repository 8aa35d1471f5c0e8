"""Database package for Newsdesk."""

from .models import (
    Base,
    NewsClassification,
    NewsCategoryLink,
)

__all__ = [
    "Base",
    "NewsClassification",
    "NewsCategoryLink",
]
