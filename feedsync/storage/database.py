"""Database operations for article, embedding and source storage."""

from datetime import datetime
from typing import Optional, List
from pathlib import Path

from sqlalchemy.orm import sessionmaker
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import structlog

from .models import SourceModel, ArticleModel, EmbeddingModel, FeedStatsModel, init_db
from ..ingestion.interfaces import Article, Source, SourceId, ArticleStoreInterface
from ..config.settings import settings
from ..exceptions import InsertError

logger = structlog.get_logger()

# Weight of the newest sample in the rolling feed stats
_STATS_WEIGHT = 0.1


class ArticleStorage(ArticleStoreInterface):
    """SQLAlchemy-backed store for articles and their embeddings."""

    def __init__(self, database_url: str = None):
        if database_url is None:
            database_url = settings.database_url

        # Ensure data directory exists
        if database_url.startswith("sqlite:///"):
            db_path = database_url.replace("sqlite:///", "")
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self.engine = init_db(database_url)
        self.Session = sessionmaker(bind=self.engine)

    def exists_by_url(self, url: str) -> bool:
        """Check if an article with this URL exists."""
        session = self.Session()
        try:
            return session.query(ArticleModel.id)\
                .filter(ArticleModel.url == url)\
                .first() is not None
        finally:
            session.close()

    def insert_article(
        self,
        source_id: Optional[SourceId],
        title: str,
        url: str,
        published_at: datetime,
        content: str,
        bias: Optional[str],
    ) -> Optional[int]:
        """Insert article, return ID or None if the URL already exists.

        Raises:
            InsertError: the write failed for any other reason.
        """
        session = self.Session()
        try:
            model = ArticleModel(
                source_id=str(source_id) if source_id is not None else None,
                title=title,
                url=url,
                published_at=published_at,
                content=content,
                bias=bias,
                fetched_at=datetime.utcnow(),
            )
            session.add(model)
            session.commit()
            article_id = model.id
            logger.debug("article_saved", id=article_id, url=url[:80])
            return article_id
        except IntegrityError as e:
            session.rollback()
            if self.exists_by_url(url):
                logger.debug("article_duplicate", url=url[:80])
                return None
            raise InsertError(f"Article rejected by store: {e.orig}") from e
        except SQLAlchemyError as e:
            session.rollback()
            raise InsertError(f"Article insert failed: {e}") from e
        finally:
            session.close()

    def insert_embedding(self, article_id: int, vector: list, model: str = None) -> None:
        """Store the embedding for an article.

        Raises:
            InsertError: article missing, embedding already present, or the
                write failed.
        """
        session = self.Session()
        try:
            session.add(EmbeddingModel(
                article_id=article_id,
                embedding=[float(x) for x in vector],
                model=model,
            ))
            session.commit()
            logger.debug("embedding_saved", article_id=article_id, dims=len(vector))
        except SQLAlchemyError as e:
            session.rollback()
            raise InsertError(f"Embedding insert failed for article {article_id}: {e}") from e
        finally:
            session.close()

    def get_by_url(self, url: str) -> Optional[Article]:
        """Get article by URL."""
        session = self.Session()
        try:
            model = session.query(ArticleModel)\
                .filter(ArticleModel.url == url)\
                .first()
            return self._model_to_article(model) if model else None
        finally:
            session.close()

    def get_embedding(self, article_id: int) -> Optional[List[float]]:
        """Get the stored vector for an article."""
        session = self.Session()
        try:
            model = session.query(EmbeddingModel)\
                .filter(EmbeddingModel.article_id == article_id)\
                .first()
            return list(model.embedding) if model else None
        finally:
            session.close()

    def count_articles(self) -> int:
        session = self.Session()
        try:
            return session.query(ArticleModel).count()
        finally:
            session.close()

    def count_embeddings(self) -> int:
        session = self.Session()
        try:
            return session.query(EmbeddingModel).count()
        finally:
            session.close()

    def get_stats(self) -> dict:
        """Get database statistics."""
        session = self.Session()
        try:
            total = session.query(ArticleModel).count()
            embedded = session.query(EmbeddingModel).count()
            return {
                "total_articles": total,
                "embedded_articles": embedded,
                "missing_embeddings": total - embedded,
                "sources": session.query(SourceModel).count(),
            }
        finally:
            session.close()

    def add_source(
        self,
        name: str,
        url: str,
        bias_label: str = None,
        country: str = None,
    ) -> int:
        """Add a source to the catalog table, return its ID."""
        session = self.Session()
        try:
            model = SourceModel(name=name, url=url, bias_label=bias_label, country=country)
            session.add(model)
            session.commit()
            logger.info("source_added", id=model.id, name=name)
            return model.id
        finally:
            session.close()

    def list_sources(self) -> List[Source]:
        """Get all configured sources, in ID order."""
        session = self.Session()
        try:
            models = session.query(SourceModel).order_by(SourceModel.id).all()
            return [
                Source(
                    id=m.id,
                    name=m.name,
                    url=m.url,
                    bias_label=m.bias_label,
                    country=m.country,
                )
                for m in models
            ]
        finally:
            session.close()

    def _model_to_article(self, model: ArticleModel) -> Article:
        """Convert database model to Article."""
        return Article(
            id=model.id,
            source_id=model.source_id,
            title=model.title,
            url=model.url,
            published_at=model.published_at,
            content=model.content,
            bias=model.bias,
            fetched_at=model.fetched_at,
        )

    def update_feed_stats(
        self,
        feed_name: str,
        articles: int = 0,
        error: str = None,
        fetch_time_ms: int = 0
    ) -> None:
        """Record one sync attempt for a source.

        ``success_rate`` and ``avg_fetch_time_ms`` are exponentially
        weighted running averages.
        """
        session = self.Session()
        try:
            stats = session.get(FeedStatsModel, feed_name) or FeedStatsModel(
                feed_name=feed_name,
                total_articles=0,
                consecutive_failures=0,
                success_rate=1.0,
                avg_fetch_time_ms=0,
                fetch_count=0,
            )
            stats.last_fetch_at = datetime.utcnow()
            stats.fetch_count += 1
            stats.total_articles += articles
            stats.last_error = error
            stats.consecutive_failures = stats.consecutive_failures + 1 if error else 0
            stats.success_rate = _weighted(stats.success_rate, 0.0 if error else 1.0)
            stats.avg_fetch_time_ms = int(_weighted(stats.avg_fetch_time_ms, fetch_time_ms))

            session.add(stats)
            session.commit()
            logger.debug("feed_stats_updated", feed=feed_name, articles=articles, failed=bool(error))
        finally:
            session.close()

    def get_feed_stats(self, feed_name: str) -> Optional[dict]:
        """Get statistics for a specific feed."""
        session = self.Session()
        try:
            stats = session.get(FeedStatsModel, feed_name)
            return _row_to_dict(stats) if stats else None
        finally:
            session.close()

    def get_all_feed_stats(self) -> List[dict]:
        session = self.Session()
        try:
            return [_row_to_dict(s) for s in session.query(FeedStatsModel).order_by(FeedStatsModel.feed_name)]
        finally:
            session.close()


def _weighted(previous: float, sample: float) -> float:
    """Move a running average a tenth of the way towards the new sample."""
    return previous + _STATS_WEIGHT * (sample - previous)


def _row_to_dict(row) -> dict:
    return {column.name: getattr(row, column.name) for column in row.__table__.columns}
