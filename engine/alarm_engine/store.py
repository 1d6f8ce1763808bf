"""
Durable persistence of the alarm set.

The alarm list lives under one fixed key of a host key-value store as a list
of strings, each string being one JSON-encoded alarm record. Every save
rewrites the whole list.
"""

import json
import os
import tempfile
import threading
from typing import Dict, Iterable, List, Optional

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .errors import DeserializationFailure, PersistenceFailure
from .logging_utils import get_logger, log_store_event
from .models import Alarm, LoadReport

logger = get_logger(__name__)

ALARMS_KEY = "alarms"


class KeyValueStore:
    """Host key-value store holding lists of strings"""

    def get_list(self, key: str) -> Optional[List[str]]:
        raise NotImplementedError

    def set_list(self, key: str, values: List[str]) -> bool:
        raise NotImplementedError


class MemoryKeyValueStore(KeyValueStore):
    """In-process store; contents are lost with the process"""

    def __init__(self, initial: Optional[Dict[str, List[str]]] = None):
        self._data: Dict[str, List[str]] = {k: list(v) for k, v in (initial or {}).items()}
        self._lock = threading.Lock()

    def get_list(self, key: str) -> Optional[List[str]]:
        with self._lock:
            values = self._data.get(key)
            return list(values) if values is not None else None

    def set_list(self, key: str, values: List[str]) -> bool:
        with self._lock:
            self._data[key] = list(values)
        return True


class JsonFileKeyValueStore(KeyValueStore):
    """Key-value store backed by one JSON object file.

    Writes go to a temporary file in the same directory and are moved into
    place with ``os.replace``, so readers see either the old or the new file.
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, List[str]]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceFailure(f"Could not read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceFailure(f"{self.path} does not contain a JSON object")
        return data

    def get_list(self, key: str) -> Optional[List[str]]:
        with self._lock:
            data = self._read_all()
        values = data.get(key)
        if values is None:
            return None
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            raise PersistenceFailure(f"Value under '{key}' in {self.path} is not a list of strings")
        return values

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        retry=retry_if_exception_type(OSError),
        reraise=True
    )
    def _write_atomic(self, data: Dict[str, List[str]]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".alarms-", suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _move_aside(self) -> bool:
        corrupt_path = self.path + ".corrupt"
        try:
            os.replace(self.path, corrupt_path)
        except OSError as e:
            logger.error(f"Could not move unreadable store file aside, not saving: {e}")
            return False
        logger.warning(f"Moved unreadable store file to {corrupt_path}")
        return True

    def set_list(self, key: str, values: List[str]) -> bool:
        with self._lock:
            try:
                data = self._read_all()
            except PersistenceFailure as e:
                logger.warning(f"Store file is unreadable: {e}")
                if not self._move_aside():
                    return False
                data = {}
            data[key] = list(values)
            try:
                self._write_atomic(data)
            except OSError as e:
                logger.error(f"Failed to write {self.path}: {e}")
                return False
        return True


def serialize_alarm(alarm: Alarm) -> str:
    """Encode one alarm as a self-describing JSON record"""
    return json.dumps(alarm.to_dict(), ensure_ascii=False)


def deserialize_alarm(text: str) -> Alarm:
    """Decode one JSON record; raises DeserializationFailure on bad input"""
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise DeserializationFailure(f"record is not valid JSON: {e}") from e
    return Alarm.from_dict(data)


class AlarmStore:
    """Saves and loads the full, ordered alarm list under a single key"""

    def __init__(self, kv: KeyValueStore, key: str = ALARMS_KEY):
        self.kv = kv
        self.key = key

    def save(self, alarms: Iterable[Alarm]) -> bool:
        """Overwrite the stored list with ``alarms``; False on failure"""
        records = [serialize_alarm(alarm) for alarm in alarms]
        try:
            ok = self.kv.set_list(self.key, records)
        except PersistenceFailure as e:
            logger.error(f"Failed to save alarms: {e}")
            return False
        if ok:
            log_store_event(logger, "save", self.key, len(records))
        else:
            logger.error(f"Host store rejected save of {len(records)} alarm(s) under '{self.key}'")
        return ok

    def load_report(self) -> LoadReport:
        """Load all decodable alarms and count the records that were skipped.

        Raises PersistenceFailure when the host store cannot be read.
        """
        records = self.kv.get_list(self.key)
        report = LoadReport()
        if records is None:
            logger.info(f"No stored value under '{self.key}', starting empty")
            return report

        for index, record in enumerate(records):
            try:
                report.alarms.append(deserialize_alarm(record))
            except DeserializationFailure as e:
                report.skipped += 1
                logger.warning(f"Skipping stored alarm #{index}: {e}")

        log_store_event(logger, "load", self.key, len(report.alarms), skipped=report.skipped)
        return report

    def load(self) -> List[Alarm]:
        return self.load_report().alarms

    def find(self, alarm_id: str) -> Optional[Alarm]:
        """Look up one alarm in the persisted list"""
        for alarm in self.load():
            if alarm.id == alarm_id:
                return alarm
        return None


def build_store(backend: str, path: str, key: str = ALARMS_KEY) -> AlarmStore:
    """Create an AlarmStore for the configured backend"""
    if backend == "memory":
        kv: KeyValueStore = MemoryKeyValueStore()
    else:
        kv = JsonFileKeyValueStore(path)
    return AlarmStore(kv, key=key)
