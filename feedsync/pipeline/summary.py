"""Run summary and failure records."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class FailureRecord:
    """One recorded failure, at source or entry granularity."""
    source: str
    stage: str  # fetch, parse, insert, embed, embedding_write, source
    error: str
    url: Optional[str] = None

    def to_dict(self) -> dict:
        return {"source": self.source, "stage": self.stage, "error": self.error, "url": self.url}


@dataclass
class RunSummary:
    """Counts and failures for one run."""
    inserted: int = 0
    skipped_duplicate: int = 0
    skipped_invalid: int = 0
    sources_total: int = 0
    sources_succeeded: int = 0
    source_failures: List[FailureRecord] = field(default_factory=list)
    source_warnings: List[FailureRecord] = field(default_factory=list)
    entry_failures: List[FailureRecord] = field(default_factory=list)
    embedding_failures: List[FailureRecord] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None

    @property
    def elapsed_seconds(self) -> float:
        end = self.finished_at or datetime.utcnow()
        return (end - self.started_at).total_seconds()

    @property
    def message(self) -> str:
        return f"Sync done. Articles inserted: {self.inserted}"

    def to_dict(self) -> dict:
        return {
            "inserted": self.inserted,
            "skipped_duplicate": self.skipped_duplicate,
            "skipped_invalid": self.skipped_invalid,
            "sources_total": self.sources_total,
            "sources_succeeded": self.sources_succeeded,
            "source_failures": [f.to_dict() for f in self.source_failures],
            "source_warnings": [f.to_dict() for f in self.source_warnings],
            "entry_failures": [f.to_dict() for f in self.entry_failures],
            "embedding_failures": [f.to_dict() for f in self.embedding_failures],
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "elapsed_seconds": self.elapsed_seconds,
        }
