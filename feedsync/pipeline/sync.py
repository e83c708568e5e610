"""Sync pipeline orchestration."""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError

from .dedup import DedupGate
from .summary import FailureRecord, RunSummary
from ..config.settings import Settings, settings as default_settings
from ..config.sources import SourceCatalog, DatabaseSourceCatalog, JsonSourceCatalog
from ..embedding.client import EmbeddingClient
from ..exceptions import CatalogReadError, FetchError, ParseError
from ..ingestion.fetcher import FeedFetcher
from ..ingestion.interfaces import RawEntry, Source
from ..ingestion.parser import parse_document
from ..storage.factory import create_article_storage, get_database_url

logger = structlog.get_logger()


class SourceState(Enum):
    """Per-source progress. FAILED is reachable from FETCHING and PARSING."""
    PENDING = "pending"
    FETCHING = "fetching"
    PARSING = "parsing"
    PROCESSING_ENTRIES = "processing_entries"
    DONE = "done"
    FAILED = "failed"


class EntryOutcome(Enum):
    """Where an entry ended up."""
    INVALID = "invalid"        # no link or no title
    DUPLICATE = "duplicate"    # URL already stored
    FAILED = "failed"          # dedup lookup or article insert failed
    INSERTED = "inserted"      # article stored, embedding missing
    PERSISTED = "persisted"    # article and embedding stored


_COUNTED = (EntryOutcome.INSERTED, EntryOutcome.PERSISTED)


class SyncPipeline:
    """Fetch every source, store new entries, embed them.

    One broken source never stops the others. Within a source, entries are
    handled one at a time in feed order so each dedup check sees the
    inserts made before it.
    """

    def __init__(
        self,
        store,
        catalog: SourceCatalog,
        embedder,
        fetcher=None,
        max_concurrent_sources: int = None,
    ):
        self.store = store
        self.catalog = catalog
        self.embedder = embedder
        self.fetcher = fetcher or FeedFetcher()
        self.max_concurrent_sources = max_concurrent_sources or default_settings.max_concurrent_sources
        self.gate = DedupGate(store)

    async def run(self) -> RunSummary:
        """Run one sync across all enabled sources.

        Raises:
            CatalogReadError: the source list could not be read. No source
                is processed.
        """
        summary = RunSummary()
        sources = [s for s in self.catalog.load() if s.enabled]
        summary.sources_total = len(sources)
        logger.info("sync_started", sources=len(sources), concurrency=self.max_concurrent_sources)

        semaphore = asyncio.Semaphore(self.max_concurrent_sources)

        async def bounded(fetcher, source: Source) -> int:
            async with semaphore:
                return await self.sync_source(fetcher, source, summary)

        async with self.fetcher as fetcher:
            results = await asyncio.gather(
                *(bounded(fetcher, source) for source in sources),
                return_exceptions=True,
            )

        for source, result in zip(sources, results):
            if isinstance(result, BaseException):
                # Anything sync_source did not classify itself
                logger.error("source_crashed", feed=source.name, error=repr(result))
                summary.source_failures.append(FailureRecord(
                    source=source.name, stage="source", error=repr(result),
                ))

        summary.finished_at = datetime.utcnow()
        logger.info(
            "sync_complete",
            inserted=summary.inserted,
            duplicates=summary.skipped_duplicate,
            invalid=summary.skipped_invalid,
            sources_ok=summary.sources_succeeded,
            sources_failed=len(summary.source_failures),
            source_warnings=len(summary.source_warnings),
            entry_failures=len(summary.entry_failures),
            embedding_failures=len(summary.embedding_failures),
            elapsed_seconds=round(summary.elapsed_seconds, 2),
        )
        return summary

    async def sync_source(self, fetcher, source: Source, summary: RunSummary) -> int:
        """Sync one source. Returns the number of articles inserted."""
        state = self._transition(source, SourceState.PENDING)
        start_time = time.time()

        try:
            state = self._transition(source, SourceState.FETCHING)
            content = await fetcher.fetch(source)
            state = self._transition(source, SourceState.PARSING)
            parsed = parse_document(content, source_name=source.name)
        except (FetchError, ParseError) as e:
            stage = "fetch" if state is SourceState.FETCHING else "parse"
            self._transition(source, SourceState.FAILED)
            logger.warning("source_failed", feed=source.name, stage=stage, error=str(e))
            summary.source_failures.append(FailureRecord(source=source.name, stage=stage, error=str(e)))
            self._record_feed_stats(source, 0, str(e), start_time)
            return 0

        entries = parsed.entries
        if parsed.recovered_error:
            # Entries recovered from broken markup are kept
            summary.source_warnings.append(FailureRecord(
                source=source.name, stage="parse", error=parsed.recovered_error,
            ))

        self._transition(source, SourceState.PROCESSING_ENTRIES)
        inserted = 0
        for entry in entries:
            outcome = await self.process_entry(source, entry, summary)
            if outcome in _COUNTED:
                inserted += 1

        self._transition(source, SourceState.DONE)
        summary.sources_succeeded += 1
        logger.info("source_synced", feed=source.name, entries=len(entries), inserted=inserted)
        self._record_feed_stats(source, inserted, None, start_time)
        return inserted

    async def process_entry(self, source: Source, entry: RawEntry, summary: RunSummary) -> EntryOutcome:
        """Validate, dedup, insert and embed one entry."""
        if not entry.is_valid:
            summary.skipped_invalid += 1
            logger.debug("entry_invalid", feed=source.name, link=entry.link, has_title=bool(entry.title))
            return EntryOutcome.INVALID

        url = entry.link.strip()
        title = entry.title.strip()
        content = entry.content or ""

        async with self.gate.claim(url):
            try:
                exists = self.gate.exists(url)
            except Exception as e:
                return self._entry_failed(summary, source, url, "dedup", e)

            if exists:
                summary.skipped_duplicate += 1
                logger.debug("entry_duplicate", feed=source.name, url=url[:80])
                return EntryOutcome.DUPLICATE

            try:
                article_id = self.store.insert_article(
                    source_id=source.id,
                    title=title,
                    url=url,
                    published_at=entry.published_at or datetime.utcnow(),
                    content=content,
                    bias=source.bias_label,
                )
            except Exception as e:
                return self._entry_failed(summary, source, url, "insert", e)

        if article_id is None:
            # The store's unique constraint caught what the gate did not see
            summary.skipped_duplicate += 1
            logger.debug("entry_duplicate", feed=source.name, url=url[:80], detected_by="store")
            return EntryOutcome.DUPLICATE

        summary.inserted += 1
        logger.info("article_inserted", feed=source.name, id=article_id, url=url[:80])

        # From here the article stays counted; embedding failures only degrade it
        try:
            vector = await self.embedder.embed(content)
        except Exception as e:
            return self._embedding_failed(summary, source, url, article_id, "embed", e)

        try:
            self.store.insert_embedding(article_id, vector, model=getattr(self.embedder, "model", None))
        except Exception as e:
            return self._embedding_failed(summary, source, url, article_id, "embedding_write", e)

        return EntryOutcome.PERSISTED

    def _entry_failed(self, summary: RunSummary, source: Source, url: str, stage: str, error: Exception) -> EntryOutcome:
        logger.warning("entry_failed", feed=source.name, url=url[:80], stage=stage, error=str(error))
        summary.entry_failures.append(FailureRecord(source=source.name, stage=stage, error=str(error), url=url))
        return EntryOutcome.FAILED

    def _embedding_failed(
        self, summary: RunSummary, source: Source, url: str, article_id, stage: str, error: Exception
    ) -> EntryOutcome:
        logger.warning(
            "embedding_failed", feed=source.name, article_id=article_id, stage=stage, error=str(error)
        )
        summary.embedding_failures.append(
            FailureRecord(source=source.name, stage=stage, error=str(error), url=url)
        )
        return EntryOutcome.INSERTED

    def _record_feed_stats(self, source: Source, inserted: int, error: Optional[str], start_time: float):
        update = getattr(self.store, "update_feed_stats", None)
        if update is None:
            return
        try:
            update(
                feed_name=source.name,
                articles=inserted,
                error=error,
                fetch_time_ms=int((time.time() - start_time) * 1000),
            )
        except Exception as e:
            logger.warning("feed_stats_failed", feed=source.name, error=str(e))

    @staticmethod
    def _transition(source: Source, state: SourceState) -> SourceState:
        logger.debug("source_state", feed=source.name, state=state.value)
        return state


@dataclass
class SyncResponse:
    """HTTP-style outcome of a triggered run."""
    status: int
    body: str
    summary: Optional[RunSummary] = None


def build_pipeline(config: Settings = None, sources_path=None, store=None) -> SyncPipeline:
    """Construct a pipeline and its collaborators from settings."""
    config = config or default_settings
    store = store or create_article_storage(get_database_url(config))

    path = sources_path or config.sources_path
    catalog = JsonSourceCatalog(path) if path else DatabaseSourceCatalog(store)

    embedder = EmbeddingClient(
        api_key=config.embedding_api_key,
        base_url=config.embedding_base_url,
        model=config.embedding_model,
        max_chars=config.embedding_max_chars,
        timeout_seconds=config.embedding_timeout_seconds,
        max_attempts=config.embedding_max_retries,
    )
    fetcher = FeedFetcher(
        timeout_seconds=config.fetch_timeout_seconds,
        max_attempts=config.fetch_max_retries,
        rate_limit_per_second=config.fetch_rate_limit_per_second,
        user_agent=config.user_agent,
    )
    return SyncPipeline(
        store=store,
        catalog=catalog,
        embedder=embedder,
        fetcher=fetcher,
        max_concurrent_sources=config.max_concurrent_sources,
    )


async def run_sync(config: Settings = None, sources_path=None, store=None) -> SyncResponse:
    """Run the sync once.

    Returns status 200 with "Sync done. Articles inserted: N" whenever the
    run completes, even if every source failed; the per-source failures are
    on ``summary``. Returns 500 when the source catalog or store cannot be
    opened.
    """
    try:
        pipeline = build_pipeline(config, sources_path=sources_path, store=store)
        summary = await pipeline.run()
    except CatalogReadError as e:
        logger.error("catalog_read_failed", error=str(e))
        return SyncResponse(status=500, body=str(e))
    except SQLAlchemyError as e:
        logger.error("store_unavailable", error=str(e))
        return SyncResponse(status=500, body=f"Store unavailable: {e}")

    return SyncResponse(status=200, body=summary.message, summary=summary)
