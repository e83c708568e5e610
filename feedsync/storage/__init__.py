"""Database storage and models."""

from .database import ArticleStorage
from .factory import create_article_storage
from .models import ArticleModel, EmbeddingModel, SourceModel, FeedStatsModel, init_db

__all__ = [
    "ArticleStorage", "create_article_storage",
    "ArticleModel", "EmbeddingModel", "SourceModel", "FeedStatsModel", "init_db",
]
