"""Cron-driven scheduling of lock workflows (APScheduler)."""

from __future__ import annotations

from collections.abc import Sequence

import structlog
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, EVENT_JOB_MISSED, JobExecutionEvent
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from stakehub.errors import ConfigError
from stakehub.execution.workflow import LockMarketWorkflow, run_lock_job

log = structlog.get_logger(__name__)

_CRON_FIELDS = ("second", "minute", "hour", "day", "month", "day_of_week")


def build_trigger(schedule: str, timezone: str = "UTC") -> CronTrigger:
    """
    Parse a cron expression. 5 fields is standard crontab; 6 fields adds a
    leading seconds field.
    """
    parts = (schedule or "").split()
    try:
        if len(parts) == 5:
            return CronTrigger.from_crontab(" ".join(parts), timezone=timezone)
        if len(parts) == 6:
            return CronTrigger(timezone=timezone, **dict(zip(_CRON_FIELDS, parts)))
    except ValueError as e:
        raise ConfigError(f"Invalid cron schedule {schedule!r}: {e}") from e
    raise ConfigError(f"Invalid cron schedule {schedule!r}: expected 5 or 6 fields, got {len(parts)}")


def job_id(workflow: LockMarketWorkflow) -> str:
    t = workflow.target
    return f"lock:{t.market_address.lower()}:{int(t.outcome)}"


def _on_job_event(event: JobExecutionEvent) -> None:
    if event.code == EVENT_JOB_ERROR:
        log.error("scheduled_run_failed", job_id=event.job_id, error=str(event.exception))
    elif event.code == EVENT_JOB_EXECUTED:
        log.debug("scheduled_run_ok", job_id=event.job_id)
    elif event.code == EVENT_JOB_MISSED:
        log.warning("scheduled_run_missed", job_id=event.job_id)


class LockScheduler:
    """One cron job per lock target. Distinct markets may run concurrently; one instance per market."""

    def __init__(
        self,
        schedule: str,
        workflows: Sequence[LockMarketWorkflow],
        *,
        scheduler: BaseScheduler | None = None,
        max_workers: int = 10,
    ) -> None:
        self.trigger = build_trigger(schedule)
        self.workflows = list(workflows)
        self.scheduler = scheduler or BlockingScheduler(
            timezone="UTC",
            executors={"default": ThreadPoolExecutor(max_workers)},
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 30},
        )
        self.scheduler.add_listener(_on_job_event, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MISSED)
        seen: set[str] = set()
        for wf in self.workflows:
            jid = job_id(wf)
            if jid in seen:
                log.warning("duplicate_lock_target", job_id=jid)
                continue
            seen.add(jid)
            self.scheduler.add_job(
                run_lock_job,
                trigger=self.trigger,
                args=[wf],
                id=jid,
                name=f"Lock {wf.target.market_address}",
                replace_existing=True,
                coalesce=True,
                max_instances=1,
            )

    def job_ids(self) -> list[str]:
        return [job.id for job in self.scheduler.get_jobs()]

    def start(self) -> None:
        log.info("scheduler_started", jobs=self.job_ids(), trigger=str(self.trigger))
        self.scheduler.start()

    def shutdown(self, wait: bool = False) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
        log.info("scheduler_stopped")
