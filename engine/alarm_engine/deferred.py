"""
Host deferred-execution service: one-shot callbacks keyed by a numeric id
"""

from datetime import datetime, timedelta
from typing import Any, Callable, List, Optional, Sequence

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

from .errors import SchedulingRejected
from .logging_utils import get_logger
from .models import ScheduleResult

logger = get_logger(__name__)

JOB_PREFIX = "alarm_"


def job_id_for(identifier: int) -> str:
    return f"{JOB_PREFIX}{identifier}"


class DeferredExecutor:
    """Interface of the host deferred-execution service"""

    def initialize(self) -> None:
        raise NotImplementedError

    def schedule_one_shot_at(self, instant: datetime, identifier: int,
                             callback: Callable[..., Any], args: Sequence[Any] = (),
                             exact: bool = True, wake: bool = True) -> ScheduleResult:
        raise NotImplementedError

    def cancel(self, identifier: int) -> bool:
        raise NotImplementedError

    def pending_identifiers(self) -> List[int]:
        raise NotImplementedError

    def shutdown(self) -> None:
        raise NotImplementedError


class APSchedulerExecutor(DeferredExecutor):
    """One-shot jobs on an APScheduler BackgroundScheduler.

    Each request becomes a DateTrigger job with id ``alarm_<identifier>`` and
    ``replace_existing=True``, so a second request for the same identifier
    replaces the pending one. Requests further in the past than the misfire
    grace window are rejected.
    """

    def __init__(self, misfire_grace_s: int = 60, timezone: Optional[str] = None,
                 clock: Callable[[], datetime] = datetime.now,
                 scheduler: Optional[BackgroundScheduler] = None):
        self.misfire_grace_s = misfire_grace_s
        self.clock = clock
        if scheduler is None:
            scheduler = BackgroundScheduler(timezone=timezone) if timezone else BackgroundScheduler()
        self.scheduler = scheduler

    def initialize(self, paused: bool = False) -> None:
        if not self.scheduler.running:
            self.scheduler.start(paused=paused)
            logger.info("Deferred-execution scheduler started")

    def _check_instant(self, instant: datetime, identifier: int) -> None:
        if not isinstance(instant, datetime):
            raise SchedulingRejected(f"instant must be a datetime, got {type(instant).__name__}", identifier)
        oldest = self.clock() - timedelta(seconds=self.misfire_grace_s)
        if instant.replace(tzinfo=None) < oldest.replace(tzinfo=None):
            raise SchedulingRejected(
                f"instant {instant:%Y-%m-%d %H:%M:%S} is more than {self.misfire_grace_s}s in the past",
                identifier,
            )

    def schedule_one_shot_at(self, instant: datetime, identifier: int,
                             callback: Callable[..., Any], args: Sequence[Any] = (),
                             exact: bool = True, wake: bool = True) -> ScheduleResult:
        """Request ``callback(*args)`` at ``instant``.

        Raises SchedulingRejected for instants the service will not run.
        """
        self._check_instant(instant, identifier)
        self.scheduler.add_job(
            callback,
            trigger=DateTrigger(run_date=instant),
            args=list(args),
            id=job_id_for(identifier),
            name=f"one-shot {identifier} (exact={exact}, wake={wake})",
            replace_existing=True,
            misfire_grace_time=self.misfire_grace_s if exact else None,
            coalesce=True,
            max_instances=1
        )
        logger.debug(f"Queued one-shot {identifier} at {instant.isoformat()} (exact={exact}, wake={wake})")
        return ScheduleResult.SCHEDULED

    def cancel(self, identifier: int) -> bool:
        try:
            self.scheduler.remove_job(job_id_for(identifier))
        except JobLookupError:
            return False
        return True

    def pending_identifiers(self) -> List[int]:
        identifiers = []
        for job in self.scheduler.get_jobs():
            if job.id.startswith(JOB_PREFIX):
                identifiers.append(int(job.id[len(JOB_PREFIX):]))
        return identifiers

    def next_run_time(self, identifier: int) -> Optional[datetime]:
        job = self.scheduler.get_job(job_id_for(identifier))
        return job.next_run_time if job else None

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Deferred-execution scheduler stopped")
