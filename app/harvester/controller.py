"""Paginated ingestion controller.

The controller owns the page cursor, the batch counter and the run status. It
fetches one page per iteration through a ``PageSourceClient``, merges the
records, snapshots the store and asks its scheduler for the next iteration
after the pacing interval. Halts happen only at iteration boundaries:

* source exhausted (empty page or no continuation) -> ``complete``
* batch limit reached -> ``paused``
* fetch failure -> ``failed`` (restartable with ``start()``)
* ``pause()`` -> ``paused``; an in-flight fetch still commits first
"""
from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Optional

from . import config
from .aggregator import RegionTally, merge
from .enrichment import HunterContactLookup
from .error_codes import ErrorCode
from .exporter import EmptyExportError, export_csv
from .logging_utils import _harvest_event
from .page_source import PageSourceClient, SourceFetchError, build_page_source
from .persistence import PersistenceBridge
from .records import Record
from .retry_policy import is_retryable_fetch_failure
from .scheduling import InlineScheduler
from .snapshot_store import JsonFileSnapshotStore
from .utils import log_line


class IngestionStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETE = "complete"
    FAILED = "failed"


class HaltReason:
    EXHAUSTED = "source_exhausted"
    BATCH_LIMIT = "batch_limit"
    PAUSED = "paused"
    FETCH_FAILED = "fetch_failed"


@dataclass
class IngestionState:
    cursor: int = 1
    processed_count: int = 0
    status: IngestionStatus = IngestionStatus.IDLE
    has_more: bool = True


@dataclass
class FetchFailure:
    page_index: Optional[int]
    error_code: str
    message: str
    http_status: Optional[int]
    retryable: bool


class IngestionController:
    def __init__(
        self,
        client: PageSourceClient,
        persistence: PersistenceBridge,
        *,
        batch_limit: int = config.DEFAULT_BATCH_LIMIT,
        pacing_interval: float = config.DEFAULT_PACING_INTERVAL_MS / 1000.0,
        scheduler: Optional[Any] = None,
        message_limit: int = config.STATUS_MESSAGE_LIMIT,
    ) -> None:
        if batch_limit < 1:
            raise ValueError("batch_limit must be at least 1")
        if pacing_interval < 0:
            raise ValueError("pacing_interval must not be negative")

        self._client = client
        self._persistence = persistence
        self._batch_limit = batch_limit
        self._pacing_interval = pacing_interval
        self._scheduler = scheduler or InlineScheduler()
        self._lock = threading.RLock()

        self.state = IngestionState()
        self.batch_number = 1
        self.halt_reason: Optional[str] = None
        self.last_failure: Optional[FetchFailure] = None
        self.messages: deque[str] = deque(maxlen=max(1, message_limit))

        self._records: list[Record] = []
        self._tally: RegionTally = {}
        # Bumped by reset(); iterations from an older run drop their results.
        self._generation = 0
        self._loop_active = False

    @classmethod
    def from_config(
        cls,
        harvest_config: config.HarvestConfig,
        *,
        scheduler: Optional[Any] = None,
        store: Optional[Any] = None,
        source: Optional[Any] = None,
        enricher: Optional[Any] = None,
        session: Optional[Any] = None,
    ) -> "IngestionController":
        """Wire a controller and its collaborators from ``harvest_config``."""

        if store is None:
            store = JsonFileSnapshotStore(harvest_config.snapshot_dir)
        if source is None:
            source = build_page_source(harvest_config, session=session)
        if enricher is None and harvest_config.enrichment_enabled and harvest_config.hunter_api_key:
            enricher = HunterContactLookup(harvest_config.hunter_api_key, session=session)

        return cls(
            PageSourceClient(source, enricher=enricher),
            PersistenceBridge(store, harvest_config.snapshot_key),
            batch_limit=harvest_config.batch_limit,
            pacing_interval=harvest_config.pacing_interval_seconds,
            scheduler=scheduler,
        )

    @property
    def batch_limit(self) -> int:
        return self._batch_limit

    @property
    def records(self) -> list[Record]:
        with self._lock:
            return list(self._records)

    @property
    def tally(self) -> RegionTally:
        with self._lock:
            return dict(self._tally)

    @property
    def is_looping(self) -> bool:
        return self._loop_active

    def restore(self) -> int:
        """Seed the store from the last snapshot; returns the record count."""

        restored = self._persistence.restore()
        if not restored:
            return 0
        with self._lock:
            self._records, self._tally = merge([], {}, restored)
        self._note(f"Loaded {len(restored)} items from local snapshot")
        return len(restored)

    def start(self) -> bool:
        """Begin or resume harvesting. Returns ``False`` when rejected."""

        with self._lock:
            state = self.state
            if self._loop_active:
                if state.status is IngestionStatus.PAUSED:
                    # The previous loop has not reached its boundary yet; let it carry on.
                    state.status = IngestionStatus.RUNNING
                    self.halt_reason = None
                    self._note("Resuming harvester...")
                    return True
                self._note("Harvester is already running.")
                return False
            if not state.has_more and state.cursor > 1:
                self._note("No more items to harvest. All pages have been processed.")
                return False
            if state.status not in (IngestionStatus.IDLE, IngestionStatus.PAUSED, IngestionStatus.FAILED):
                self._note(f"Cannot start while {state.status.value}.")
                return False

            if state.processed_count >= self._batch_limit:
                state.processed_count = 0
                self.batch_number += 1
                self._note(f"Starting batch {self.batch_number}.")

            state.status = IngestionStatus.RUNNING
            self.halt_reason = None
            self.last_failure = None
            self._loop_active = True
            generation = self._generation
            self._note("Starting harvester...")

        _harvest_event("state", phase="start", cursor=state.cursor, batch=self.batch_number)
        self._scheduler.call_later(0, self._iterate, generation)
        return True

    def pause(self) -> bool:
        with self._lock:
            if self.state.status is not IngestionStatus.RUNNING:
                self._note("Harvester is not running.")
                return False
            self.state.status = IngestionStatus.PAUSED
            self.halt_reason = HaltReason.PAUSED
            self._note("Harvester paused. Start again to resume.")
        _harvest_event("state", phase="pause", cursor=self.state.cursor)
        return True

    def reconfigure_source(self, harvest_config: config.HarvestConfig, *, session: Optional[Any] = None) -> bool:
        """Point an idle controller at the source described by ``harvest_config``.

        The enricher is kept. Returns ``False`` unless the controller is idle.
        """

        with self._lock:
            if self._loop_active or self.state.status is not IngestionStatus.IDLE:
                self._note("The source can only be changed while idle.")
                return False
            source = build_page_source(harvest_config, session=session)
            self._client = PageSourceClient(source, enricher=self._client.enricher)
            self._note(f"Using source URL: {harvest_config.source.base_url}")
        _harvest_event("state", phase="reconfigure", source=harvest_config.source_kind)
        return True

    def reset(self) -> None:
        """Drop all records, the tally and the snapshot; back to ``idle``."""

        with self._lock:
            self._generation += 1
            self._loop_active = False
            self.state = IngestionState()
            self.batch_number = 1
            self.halt_reason = None
            self.last_failure = None
            self._records = []
            self._tally = {}
            self._persistence.clear()
            self.messages.clear()
            self._note("Harvester reset. Ready to start.")
        _harvest_event("state", phase="reset")

    def export_csv(self) -> Optional[bytes]:
        """Return the CSV export, or ``None`` when there is nothing to export."""

        records = self.records
        try:
            payload = export_csv(records)
        except EmptyExportError:
            self._note("No data to export")
            return None
        self._note(f"Exported {len(records)} items to CSV")
        return payload

    def status_payload(self) -> dict[str, Any]:
        with self._lock:
            state = asdict(self.state)
            state["status"] = self.state.status.value
            return {
                "state": state,
                "batch_limit": self._batch_limit,
                "batch_number": self.batch_number,
                "halt_reason": self.halt_reason,
                "last_failure": asdict(self.last_failure) if self.last_failure else None,
                "record_count": len(self._records),
                "tally": dict(sorted(self._tally.items())),
                "messages": list(self.messages),
            }

    def _iterate(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            if not self._may_fetch():
                self._loop_active = False
                return
            page_index = self.state.cursor
            self._note(f"Processing page {page_index}...")

        try:
            page = self._client.fetch(page_index)
        except SourceFetchError as exc:
            self._fail(generation, page_index, exc)
            return
        except Exception as exc:  # noqa: BLE001
            self._fail(
                generation,
                page_index,
                SourceFetchError(ErrorCode.INTERNAL, str(exc) or repr(exc), page_index=page_index),
            )
            return

        with self._lock:
            if generation != self._generation:
                log_line(f"[HARVEST] Dropping page {page_index} fetched before reset")
                return
            if not self._commit(page_index, page.records, page.continuation):
                self._loop_active = False
                return

        self._scheduler.call_later(self._pacing_interval, self._iterate, generation)

    def _may_fetch(self) -> bool:
        state = self.state
        if state.status is not IngestionStatus.RUNNING:
            return False
        if state.processed_count >= self._batch_limit:
            self._halt(IngestionStatus.PAUSED, HaltReason.BATCH_LIMIT)
            return False
        if not state.has_more:
            self._halt(IngestionStatus.COMPLETE, HaltReason.EXHAUSTED)
            return False
        return True

    def _commit(self, page_index: int, records: list[Record], continuation: bool) -> bool:
        """Apply one fetched page; returns ``True`` when the loop should go on."""

        state = self.state
        if not records:
            state.has_more = False
            self._halt(IngestionStatus.COMPLETE, HaltReason.EXHAUSTED)
            return False

        self._records, self._tally = merge(self._records, self._tally, records)
        state.cursor += 1
        state.processed_count = min(state.processed_count + len(records), self._batch_limit)
        state.has_more = bool(continuation)
        self._persistence.snapshot(self._records)
        self._note(f"Processed page {page_index}, found {len(records)} new items")
        _harvest_event(
            "state",
            phase="page_committed",
            page=page_index,
            added=len(records),
            processed=state.processed_count,
            total=len(self._records),
            has_more=state.has_more,
        )

        if state.processed_count >= self._batch_limit:
            self._halt(IngestionStatus.PAUSED, HaltReason.BATCH_LIMIT)
            return False
        if not state.has_more:
            self._halt(IngestionStatus.COMPLETE, HaltReason.EXHAUSTED)
            return False
        return state.status is IngestionStatus.RUNNING

    def _halt(self, status: IngestionStatus, reason: str) -> None:
        self.state.status = status
        self.halt_reason = reason
        if reason == HaltReason.BATCH_LIMIT:
            self._note("Batch complete. Start again to process the next batch.")
        elif reason == HaltReason.EXHAUSTED:
            self._note("No more items found. Harvest complete.")
        _harvest_event("state", phase="halt", status=status.value, reason=reason, cursor=self.state.cursor)

    def _fail(self, generation: int, page_index: int, exc: SourceFetchError) -> None:
        with self._lock:
            if generation != self._generation:
                return
            if exc.page_index is None:
                exc.page_index = page_index
            retryable = is_retryable_fetch_failure(
                exc.error_code, http_status=exc.http_status, page_index=exc.page_index
            )
            self.last_failure = FetchFailure(
                page_index=exc.page_index,
                error_code=exc.error_code,
                message=str(exc),
                http_status=exc.http_status,
                retryable=retryable,
            )
            self.state.status = IngestionStatus.FAILED
            self.halt_reason = HaltReason.FETCH_FAILED
            self._loop_active = False
            self._note(f"Error processing page {exc.page_index}: {exc}")

    def _note(self, message: str) -> None:
        self.messages.append(f"[{time.strftime('%H:%M:%S')}] {message}")
        log_line(f"[HARVEST] {message}")


__all__ = [
    "FetchFailure",
    "HaltReason",
    "IngestionController",
    "IngestionState",
    "IngestionStatus",
]
