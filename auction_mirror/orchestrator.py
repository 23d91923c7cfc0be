"""Ingestion orchestrator wiring together fetch, dedup, sweep and publish."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from itertools import count
from typing import Any

import structlog

from .config import ScheduleConfig, ServiceConfig
from .engine import (
    ExpirySweeper,
    HistoryDeduplicator,
    PagedFetcher,
    SnapshotPublisher,
    parse_listings,
)
from .scheduler import APSchedulerAdapter
from .store import ListingStore

INGEST_JOB_ID = "ingest::cycle"
SWEEP_JOB_ID = "ingest::sweep"


class CycleState(str, Enum):
    """Stages of one ingestion cycle."""

    PENDING = "pending"
    FETCHING = "fetching"
    DEDUPLICATING = "deduplicating"
    SWEEPING = "sweeping"
    PUBLISHING = "publishing"
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class CycleReport:
    """Outcome of one cycle, kept for logging and the CLI."""

    cycle_id: int
    started_at: datetime
    finished_at: datetime | None = None
    state: CycleState = CycleState.PENDING
    fetched: int = 0
    rejected: int = 0
    inserted: int = 0
    swept: int | None = None
    published: int = 0
    failed_stage: CycleState | None = None
    error: str | None = None
    stages: list[CycleState] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state is CycleState.DONE

    @property
    def duration_seconds(self) -> float | None:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def advance(self, state: CycleState) -> None:
        self.state = state
        self.stages.append(state)

    def as_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["state"] = self.state.value
        payload["failed_stage"] = self.failed_stage.value if self.failed_stage else None
        payload["stages"] = [stage.value for stage in self.stages]
        payload["started_at"] = self.started_at.isoformat()
        payload["finished_at"] = self.finished_at.isoformat() if self.finished_at else None
        payload["duration_seconds"] = self.duration_seconds
        return payload


class IngestionOrchestrator:
    """Central coordinator running ingestion cycles on a fixed schedule.

    Cycles may overlap when one outlasts the interval. Nothing here locks;
    each component tolerates concurrent runs on its own.
    """

    def __init__(
        self,
        fetcher: PagedFetcher,
        deduplicator: HistoryDeduplicator,
        sweeper: ExpirySweeper,
        publisher: SnapshotPublisher,
        scheduler: APSchedulerAdapter | None = None,
        schedule: ScheduleConfig | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.deduplicator = deduplicator
        self.sweeper = sweeper
        self.publisher = publisher
        self.scheduler = scheduler or APSchedulerAdapter()
        self.schedule = schedule or ScheduleConfig()
        self.logger = logger or structlog.get_logger("auction_mirror").bind(
            component="orchestrator"
        )
        self.started = False
        self._cycle_ids = count(1)

    @classmethod
    def build(
        cls,
        config: ServiceConfig,
        store: ListingStore,
        scheduler: APSchedulerAdapter | None = None,
    ) -> "IngestionOrchestrator":
        return cls(
            fetcher=PagedFetcher(config.feed),
            deduplicator=HistoryDeduplicator(store),
            sweeper=ExpirySweeper(store),
            publisher=SnapshotPublisher(store, chunk_size=config.store.chunk_size),
            scheduler=scheduler,
            schedule=config.schedule,
        )

    # ------------------------------------------------------------------
    def start(self) -> CycleReport:
        """Run the startup cycle, then register the recurring jobs."""

        if self.started:
            raise RuntimeError("Ingestion orchestrator already started")
        self.started = True
        report = self.run_cycle()
        self.scheduler.schedule_interval(
            INGEST_JOB_ID,
            self.run_cycle,
            self.schedule.ingest_interval_seconds,
            max_instances=self.schedule.max_overlapping_cycles,
        )
        self.scheduler.schedule_interval(
            SWEEP_JOB_ID, self.sweeper.sweep, self.schedule.sweep_interval_seconds
        )
        self.scheduler.start()
        return report

    def shutdown(self) -> None:
        self.scheduler.shutdown()
        self.fetcher.close()
        self.started = False

    def run_cycle(self) -> CycleReport:
        """Run fetch → dedup → sweep → publish; failures are reported, never raised."""

        report = CycleReport(cycle_id=next(self._cycle_ids), started_at=_utcnow())
        log = self.logger.bind(cycle_id=report.cycle_id)
        log.info("cycle_started")
        try:
            report.advance(CycleState.FETCHING)
            raw_records = self.fetcher.fetch_all()
            batch = parse_listings(raw_records, logger=log)
            report.fetched = len(raw_records)
            report.rejected = batch.rejected

            report.advance(CycleState.DEDUPLICATING)
            report.inserted = self.deduplicator.record(batch.listings)

            report.advance(CycleState.SWEEPING)
            report.swept = self.sweeper.sweep()

            report.advance(CycleState.PUBLISHING)
            report.published = self.publisher.publish(batch.listings)

            report.advance(CycleState.DONE)
        except Exception as exc:  # noqa: BLE001
            report.failed_stage = report.state
            report.error = str(exc) or exc.__class__.__name__
            report.advance(CycleState.FAILED)
            log.error(
                "cycle_failed",
                stage=report.failed_stage.value,
                error=report.error,
                error_type=exc.__class__.__name__,
            )
        finally:
            report.finished_at = _utcnow()
        if report.ok:
            log.info(
                "cycle_completed",
                fetched=report.fetched,
                rejected=report.rejected,
                inserted=report.inserted,
                swept=report.swept,
                published=report.published,
                duration_seconds=report.duration_seconds,
            )
        return report


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


__all__ = ["CycleReport", "CycleState", "IngestionOrchestrator"]
