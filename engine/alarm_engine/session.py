"""
Alarm session: the owned, in-memory alarm set plus the machinery that fires it.

One session is constructed per process and handed to UI collaborators. It
owns the ordered alarm list, persists the whole list after every mutation,
and runs either the clock poller or analytic one-shot scheduling.
"""

import threading
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from .config import AlarmEngineConfig
from .deferred import APSchedulerExecutor
from .errors import PersistenceFailure
from .firing import FiringCoordinator
from .logging_utils import get_logger, log_tick
from .matcher import due_alarms
from .models import (
    Alarm, CommitResult, DeleteResult, LoadReport, TimeOfDay,
    DAYS_PER_WEEK, DEFAULT_COLOR, DEFAULT_HOUR, DEFAULT_MINUTE, new_alarm_id
)
from .notifications import build_notifier
from .poller import ClockPoller
from .store import AlarmStore, build_store

logger = get_logger(__name__)

_EDITABLE_FIELDS = ("time", "days", "is_set", "color", "name", "audio_path", "audio_url")


class AlarmSession:
    """Owns the alarm set for one running process"""

    def __init__(self, config: AlarmEngineConfig, store: AlarmStore,
                 coordinator: FiringCoordinator,
                 clock: Callable[[], datetime] = datetime.now):
        self.config = config
        self.store = store
        self.coordinator = coordinator
        self.clock = clock

        self._alarms: List[Alarm] = []
        self._lock = threading.RLock()
        self._save_lock = threading.Lock()
        self._stale = False
        self._started = False

        self.poller: Optional[ClockPoller] = None
        if config.scheduling_mode == "poll":
            self.poller = ClockPoller(
                config.timings.poll_interval_s,
                self.tick,
                clock=clock,
                join_timeout_s=config.timings.shutdown_timeout_s
            )

    @classmethod
    def from_config(cls, config: AlarmEngineConfig,
                    clock: Callable[[], datetime] = datetime.now) -> "AlarmSession":
        """Wire a session from configuration"""
        store = build_store(config.storage_backend, config.store_path, config.storage_key)
        executor = APSchedulerExecutor(misfire_grace_s=config.timings.misfire_grace_s, clock=clock)
        notifier = build_notifier(config.notifier_backend)
        coordinator = FiringCoordinator(executor, notifier, config, store=store, clock=clock)
        return cls(config, store, coordinator, clock=clock)

    # Lifecycle

    def start(self) -> LoadReport:
        if self._started:
            return LoadReport(alarms=self.observe_alarm_set())
        self.coordinator.executor.initialize()
        self.coordinator.notifier.initialize(self.config.notification)
        self.coordinator.bind()
        report = self.load()
        if self.poller is not None:
            self.poller.start()
        else:
            self.arm_all()
        self._started = True
        logger.info(f"Alarm session started in {self.config.scheduling_mode} mode with {len(report.alarms)} alarm(s)")
        return report

    def stop(self) -> None:
        if self.poller is not None:
            self.poller.stop()
        self.coordinator.unbind()
        self.coordinator.executor.shutdown()
        if self._started:
            logger.info("Alarm session stopped")
        self._started = False

    def __enter__(self) -> "AlarmSession":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # Persistence

    @property
    def is_stale(self) -> bool:
        """True when the last save failed and disk may lag memory"""
        return self._stale

    def load(self) -> LoadReport:
        """Replace the in-memory set with the stored list"""
        try:
            report = self.store.load_report()
        except PersistenceFailure as e:
            logger.error(f"Could not load alarms, keeping in-memory set: {e}")
            self._stale = True
            return LoadReport(alarms=self.observe_alarm_set())
        with self._lock:
            self._alarms = report.alarms
            self._stale = False
        if report.skipped:
            logger.warning(f"Skipped {report.skipped} malformed stored alarm(s)")
        return LoadReport(alarms=self.observe_alarm_set(), skipped=report.skipped)

    def _persist(self) -> bool:
        # Snapshot inside the save lock so the last save always writes the newest list
        with self._save_lock:
            ok = self.store.save(self.observe_alarm_set())
            self._stale = not ok
        return ok

    # Collaborator interface

    def observe_alarm_set(self) -> List[Alarm]:
        """Read-only snapshot of the ordered alarm set"""
        with self._lock:
            return [alarm.copy() for alarm in self._alarms]

    def get(self, alarm_id: str) -> Optional[Alarm]:
        with self._lock:
            for alarm in self._alarms:
                if alarm.id == alarm_id:
                    return alarm.copy()
        return None

    def create(self, **defaults) -> Alarm:
        """New, not yet committed alarm with a unique id"""
        unknown = set(defaults) - set(_EDITABLE_FIELDS)
        if unknown:
            raise TypeError(f"Unknown alarm field(s): {', '.join(sorted(unknown))}")

        with self._lock:
            taken = {alarm.id for alarm in self._alarms}
        created_at = self.clock()
        while new_alarm_id(created_at) in taken:
            created_at += timedelta(microseconds=1)

        fields = {
            "time": TimeOfDay(DEFAULT_HOUR, DEFAULT_MINUTE),
            "days": [False] * DAYS_PER_WEEK,
            "is_set": False,
            "color": DEFAULT_COLOR,
            "name": "",
        }
        fields.update(defaults)
        return Alarm(id=new_alarm_id(created_at), **fields)

    def commit(self, alarm: Alarm) -> CommitResult:
        """Insert the alarm, or replace the one with the same id in place"""
        stored = alarm.copy()
        with self._lock:
            for index, existing in enumerate(self._alarms):
                if existing.id == stored.id:
                    self._alarms[index] = stored
                    result = CommitResult.REPLACED
                    break
            else:
                self._alarms.append(stored)
                result = CommitResult.INSERTED
        logger.info(f"Committed alarm {stored.id} ({result.value})", extra={"alarm_id": stored.id})
        self._persist()
        self._rearm(stored)
        return result

    def delete(self, alarm_id: str) -> DeleteResult:
        with self._lock:
            remaining = [alarm for alarm in self._alarms if alarm.id != alarm_id]
            if len(remaining) == len(self._alarms):
                logger.debug(f"Delete of unknown alarm {alarm_id} ignored")
                return DeleteResult.NOT_FOUND
            self._alarms = remaining
        logger.info(f"Deleted alarm {alarm_id}", extra={"alarm_id": alarm_id})
        self._persist()
        self.coordinator.cancel(alarm_id)
        return DeleteResult.REMOVED

    def toggle_is_set(self, alarm_id: str) -> Optional[Alarm]:
        """Flip ``is_set``; returns the updated alarm or None when unknown"""
        with self._lock:
            target = next((alarm for alarm in self._alarms if alarm.id == alarm_id), None)
            if target is None:
                return None
            target.is_set = not target.is_set
            updated = target.copy()
        if updated.is_set:
            logger.info(f"Alarm set for {updated.time.format()}", extra={"alarm_id": alarm_id})
        else:
            logger.info(f"Alarm canceled for {updated.time.format()}", extra={"alarm_id": alarm_id})
        self._persist()
        self._rearm(updated)
        return updated

    # Firing

    def tick(self, now: Optional[datetime] = None) -> List[Alarm]:
        """Match the current snapshot against ``now`` and request firing for each due alarm"""
        now = now or self.clock()
        snapshot = self.observe_alarm_set()
        due = due_alarms(now, snapshot)
        log_tick(logger, now, len(snapshot), len(due))
        for alarm in due:
            self.coordinator.schedule_firing(alarm, now)
        return due

    def arm_all(self) -> None:
        """Analytic mode: request each alarm's next occurrence"""
        now = self.clock()
        for alarm in self.observe_alarm_set():
            self.coordinator.schedule_next(alarm, now)

    def _rearm(self, alarm: Alarm) -> None:
        if self.config.scheduling_mode == "analytic" and self._started:
            self.coordinator.schedule_next(alarm, self.clock())

    def fire_now(self, alarm_id: str) -> Optional[bool]:
        """Show the alarm notification immediately; None when the alarm is unknown"""
        if self.get(alarm_id) is None:
            return None
        channel = self.config.notification
        return self.coordinator.notifier.show(channel.notification_id, channel.title, channel.body, channel)
