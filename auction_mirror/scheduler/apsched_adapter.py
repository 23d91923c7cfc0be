"""APScheduler wrapper exposing higher level helpers."""

from __future__ import annotations

from typing import Callable

import structlog
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger


class APSchedulerAdapter:
    """Manage recurring interval jobs on a background thread scheduler."""

    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self.scheduler = BackgroundScheduler()
        self.logger = logger or structlog.get_logger("auction_mirror.scheduler")
        self.started = False

    def start(self) -> None:
        if not self.started:
            self.scheduler.start()
            self.started = True
            self.logger.info("apscheduler_started")

    def shutdown(self) -> None:
        if self.started:
            self.scheduler.shutdown(wait=False)
            self.started = False
            self.logger.info("apscheduler_stopped")

    def schedule_interval(
        self,
        job_id: str,
        callback: Callable[[], object],
        seconds: float,
        max_instances: int = 1,
    ) -> None:
        trigger = self._build_trigger(seconds)
        self.scheduler.add_job(
            callback,
            trigger=trigger,
            id=job_id,
            replace_existing=True,
            max_instances=max_instances,
            coalesce=False,
        )
        self.logger.info(
            "job_scheduled", job_id=job_id, interval_seconds=seconds, max_instances=max_instances
        )

    def remove_job(self, job_id: str) -> None:
        try:
            self.scheduler.remove_job(job_id)
        except Exception:  # noqa: BLE001
            self.logger.warning("job_remove_failed", job_id=job_id)

    @staticmethod
    def _build_trigger(seconds: float) -> IntervalTrigger:
        if seconds <= 0:
            raise ValueError("Interval schedule requires a positive number of seconds")
        return IntervalTrigger(seconds=float(seconds))

    def list_jobs(self) -> list[dict]:
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append(
                {
                    "id": job.id,
                    "next_run_time": getattr(job, "next_run_time", None),
                    "trigger": str(job.trigger),
                }
            )
        return jobs


__all__ = ["APSchedulerAdapter"]
