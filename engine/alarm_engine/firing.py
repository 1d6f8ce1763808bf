"""
Firing coordinator: turn a matched alarm into a deferred one-shot request and,
when that request runs, into a notification.
"""

import threading
import zlib
from datetime import datetime
from typing import Callable, Optional

from .config import AlarmEngineConfig
from .deferred import APSchedulerExecutor, DeferredExecutor
from .errors import PersistenceFailure, SchedulingRejected
from .logging_utils import get_logger, log_error, log_fire, log_schedule_request
from .matcher import next_occurrence
from .models import Alarm, ScheduleResult
from .notifications import Notifier, build_notifier
from .store import AlarmStore, build_store

logger = get_logger(__name__)

_bound_coordinator: Optional["FiringCoordinator"] = None
_bound_lock = threading.Lock()


def alarm_identifier(alarm_id: str) -> int:
    """Stable non-negative 31-bit identifier for an alarm id.

    Uses CRC-32 rather than ``hash()``, which is salted per process.
    """
    return zlib.crc32(alarm_id.encode("utf-8")) & 0x7FFFFFFF


class FiringCoordinator:
    """Requests one-shot callbacks for due alarms and displays them when they run"""

    def __init__(self, executor: DeferredExecutor, notifier: Notifier,
                 config: AlarmEngineConfig, store: Optional[AlarmStore] = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.executor = executor
        self.notifier = notifier
        self.config = config
        self.store = store
        self.clock = clock

    def _request(self, alarm: Alarm, instant: datetime) -> ScheduleResult:
        identifier = alarm_identifier(alarm.id)
        try:
            result = self.executor.schedule_one_shot_at(
                instant, identifier, on_fire, args=(alarm.id,), exact=True, wake=True
            )
        except SchedulingRejected as e:
            log_schedule_request(logger, alarm.id, identifier, instant, ScheduleResult.REJECTED.value, reason=str(e))
            return ScheduleResult.REJECTED
        log_schedule_request(logger, alarm.id, identifier, instant, result.value)
        return result

    def schedule_firing(self, alarm: Alarm, now: Optional[datetime] = None) -> ScheduleResult:
        """Request a one-shot for today at the alarm's time.

        The instant is computed from ``now``, so a late tick yields an instant
        already in the past; it is not moved to the next occurrence.
        """
        now = now or self.clock()
        identifier = alarm_identifier(alarm.id)
        try:
            instant = now.replace(hour=alarm.time.hour, minute=alarm.time.minute, second=0, microsecond=0)
        except (TypeError, ValueError) as e:
            logger.warning(
                f"Alarm {alarm.id} has an invalid time {alarm.time}: {e}",
                extra={"alarm_id": alarm.id, "identifier": identifier}
            )
            return ScheduleResult.REJECTED
        return self._request(alarm, instant)

    def schedule_next(self, alarm: Alarm, now: Optional[datetime] = None) -> Optional[ScheduleResult]:
        """Arm the alarm's next occurrence; cancel it when there is none"""
        now = now or self.clock()
        instant = next_occurrence(alarm, now)
        if instant is None:
            if self.cancel(alarm.id):
                logger.info(f"Alarm {alarm.id} has no upcoming occurrence, pending one-shot cancelled")
            return None
        return self._request(alarm, instant)

    def cancel(self, alarm_id: str) -> bool:
        return self.executor.cancel(alarm_identifier(alarm_id))

    def fire(self, alarm_id: str, rearm: bool = True) -> bool:
        """Post the alarm notification. Display failures are logged only.

        In analytic mode the alarm's next occurrence is armed afterwards
        unless ``rearm`` is False.
        """
        channel = self.config.notification
        displayed = self.notifier.show(channel.notification_id, channel.title, channel.body, channel)
        log_fire(logger, alarm_id, displayed)

        if rearm and self.config.scheduling_mode == "analytic":
            self._rearm(alarm_id)
        return displayed

    def _rearm(self, alarm_id: str) -> None:
        if self.store is None:
            logger.warning(f"No store available to re-arm alarm {alarm_id}")
            return
        try:
            alarm = self.store.find(alarm_id)
        except PersistenceFailure as e:
            log_error(logger, alarm_id, e, {"phase": "rearm"})
            return
        if alarm is None:
            logger.info(f"Alarm {alarm_id} no longer stored, not re-arming")
            return
        self.schedule_next(alarm, self.clock())

    def bind(self) -> None:
        """Make this coordinator the one ``on_fire`` uses in this process"""
        global _bound_coordinator
        with _bound_lock:
            _bound_coordinator = self

    def unbind(self) -> None:
        global _bound_coordinator
        with _bound_lock:
            if _bound_coordinator is self:
                _bound_coordinator = None


def bound_coordinator() -> Optional[FiringCoordinator]:
    with _bound_lock:
        return _bound_coordinator


def coordinator_from_config(config: AlarmEngineConfig) -> FiringCoordinator:
    """Build a coordinator for a process that has no running session"""
    notifier = build_notifier(config.notifier_backend)
    notifier.initialize(config.notification)
    executor = APSchedulerExecutor(misfire_grace_s=config.timings.misfire_grace_s)
    store = build_store(config.storage_backend, config.store_path, config.storage_key)
    return FiringCoordinator(executor, notifier, config, store=store)


def on_fire(alarm_id: str) -> bool:
    """Callback run by the deferred-execution service.

    May run after the session stopped or in a process without one. A
    coordinator is then built from the environment configuration to show the
    notification; it does not re-arm, since its scheduler would not outlive
    this call. The next session start arms the alarm again.
    """
    coordinator = bound_coordinator()
    if coordinator is None:
        logger.info(f"No bound coordinator, building one from configuration for alarm {alarm_id}")
        coordinator = coordinator_from_config(AlarmEngineConfig.from_env())
        return coordinator.fire(alarm_id, rearm=False)
    return coordinator.fire(alarm_id)
