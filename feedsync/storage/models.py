"""SQLAlchemy models for the feedsync database."""

from datetime import datetime

from sqlalchemy import create_engine, event, Column, Integer, String, Text, DateTime, Float, JSON, ForeignKey, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class SourceModel(Base):
    """Configured feed origins. Read-only to the sync pipeline."""
    __tablename__ = "sources"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    url = Column(String(2048), nullable=False)
    bias_label = Column(String(50))
    country = Column(String(64))


class ArticleModel(Base):
    """Deduplicated articles, unique by URL."""
    __tablename__ = "articles"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Source identification
    source_id = Column(String(64))
    url = Column(String(2048), unique=True, nullable=False)

    # Content
    title = Column(Text, nullable=False)
    content = Column(Text, nullable=False, default="")

    # Bias label copied from the source at ingestion time
    bias = Column(String(50))

    # Timestamps
    published_at = Column(DateTime, nullable=False)
    fetched_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('idx_articles_published', 'published_at'),
        Index('idx_articles_source', 'source_id'),
    )


class EmbeddingModel(Base):
    """One embedding vector per article."""
    __tablename__ = "embeddings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    article_id = Column(Integer, ForeignKey("articles.id", ondelete="CASCADE"), unique=True, nullable=False)
    embedding = Column(JSON, nullable=False)
    model = Column(String(100))
    created_at = Column(DateTime, default=datetime.utcnow)


class FeedStatsModel(Base):
    """Database model for per-source sync statistics."""
    __tablename__ = "feed_stats"

    feed_name = Column(String(255), primary_key=True)
    last_fetch_at = Column(DateTime)
    total_articles = Column(Integer, default=0)
    last_error = Column(Text)
    consecutive_failures = Column(Integer, default=0)
    success_rate = Column(Float, default=1.0)
    avg_fetch_time_ms = Column(Integer, default=0)
    fetch_count = Column(Integer, default=0)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite only enforces foreign keys when asked to, per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_db(database_url: str):
    """Initialize database and create all tables."""
    engine = create_engine(database_url, echo=False)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    Base.metadata.create_all(engine)
    return engine
