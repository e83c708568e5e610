"""Pipeline orchestration - one sync run across all sources."""

from .dedup import DedupGate
from .summary import FailureRecord, RunSummary
from .sync import SyncPipeline, SyncResponse, SourceState, EntryOutcome, build_pipeline, run_sync

__all__ = [
    "DedupGate", "FailureRecord", "RunSummary",
    "SyncPipeline", "SyncResponse", "SourceState", "EntryOutcome",
    "build_pipeline", "run_sync",
]
