"""Factory functions to create storage instances.

The database type is taken from DATABASE_URL:
- PostgreSQL (e.g. Supabase) for production, through the psycopg2 driver
- SQLite for local development
"""

import os

import structlog

from .database import ArticleStorage
from ..config.settings import settings

logger = structlog.get_logger()


def get_database_url(config=None) -> str:
    """Get database URL from environment, with fallback to settings."""
    config = config or settings

    # Check for DATABASE_URL first (standard for cloud platforms)
    url = os.environ.get('DATABASE_URL') or config.database_url

    # SQLAlchemy only accepts the postgresql:// scheme
    if url.startswith('postgres://'):
        url = 'postgresql://' + url[len('postgres://'):]
    return url


def is_postgres(url: str = None) -> bool:
    """Check if we're using PostgreSQL."""
    url = url or get_database_url()
    return url.startswith('postgresql://') or url.startswith('postgresql+')


def create_article_storage(database_url: str = None) -> ArticleStorage:
    """Create a new article storage for one run."""
    url = database_url or get_database_url()
    logger.info(
        "using_postgres_storage" if is_postgres(url) else "using_sqlite_storage",
        url=url[:40] + "...",
    )
    return ArticleStorage(url)
