#!/usr/bin/env python3
"""
Integration tests for the alarm clock web host
"""

import logging
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

# Add app and engine directories to path (use relative paths)
project_root = Path(__file__).parent.parent
sys.path.append(str(project_root / 'app'))
sys.path.append(str(project_root / 'engine'))

from fastapi.testclient import TestClient

from alarm_engine.logging_utils import JSONFormatter


class TestAlarmHostIntegration(unittest.TestCase):
    """Exercise the collaborator endpoints against a running session"""

    def setUp(self):
        """Set up test environment"""
        self.tmp = tempfile.TemporaryDirectory()
        self.env = patch.dict(os.environ, {
            'ALARM_BASE_DIR': self.tmp.name,
            'ALARM_STORAGE_BACKEND': 'file',
            'ALARM_NOTIFIER': 'log',
            'ALARM_SCHEDULING_MODE': 'poll'
        })
        self.env.start()
        os.environ.pop('ALARM_STORE_PATH', None)

        import main
        self.main = main
        self.client = TestClient(main.app)
        self.client.__enter__()

    def tearDown(self):
        self.client.__exit__(None, None, None)
        self.env.stop()
        self.tmp.cleanup()

    def _draft(self, **changes):
        record = self.client.post("/api/alarms/new").json()
        record.update(changes)
        return record

    def test_health(self):
        """Test health endpoint"""
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")
        self.assertEqual(response.json()["alarms"], 0)

    def test_new_alarm_is_a_draft(self):
        """Test new alarm is a draft"""
        draft = self._draft()
        self.assertEqual(draft["time"], {"hour": 4, "minute": 20})
        self.assertEqual(draft["days"], [False] * 7)
        self.assertFalse(draft["isSet"])
        self.assertEqual(self.client.get("/api/alarms").json(), [])

    def test_commit_insert_then_replace(self):
        """Test commit insert then replace"""
        draft = self._draft(name="Gym", isSet=True)

        response = self.client.put(f"/api/alarms/{draft['id']}", json=draft)
        self.assertEqual(response.json(), {"status": "inserted", "persisted": True})

        draft["name"] = "Run"
        response = self.client.put(f"/api/alarms/{draft['id']}", json=draft)
        self.assertEqual(response.json()["status"], "replaced")

        alarms = self.client.get("/api/alarms").json()
        self.assertEqual([a["name"] for a in alarms], ["Run"])

    def test_commit_persists_to_store_file(self):
        """Test commit persists to store file"""
        draft = self._draft(isSet=True)
        self.client.put(f"/api/alarms/{draft['id']}", json=draft)

        store_path = Path(self.tmp.name) / "data" / "alarms.json"
        self.assertTrue(store_path.exists())
        self.assertIn(draft["id"], store_path.read_text())

    def test_commit_rejects_malformed_record(self):
        """Test commit rejects malformed record"""
        draft = self._draft()
        del draft["days"]
        response = self.client.put(f"/api/alarms/{draft['id']}", json=draft)
        self.assertEqual(response.status_code, 422)

    def test_commit_rejects_id_mismatch(self):
        """Test commit rejects id mismatch"""
        draft = self._draft()
        response = self.client.put("/api/alarms/other-id", json=draft)
        self.assertEqual(response.status_code, 400)

    def test_toggle_and_delete(self):
        """Test toggle and delete"""
        draft = self._draft(isSet=True)
        self.client.put(f"/api/alarms/{draft['id']}", json=draft)

        toggled = self.client.post(f"/api/alarms/{draft['id']}/toggle").json()
        self.assertFalse(toggled["isSet"])

        response = self.client.delete(f"/api/alarms/{draft['id']}")
        self.assertEqual(response.json()["status"], "removed")
        self.assertEqual(self.client.get("/api/alarms").json(), [])

    def test_unknown_alarm_returns_404(self):
        """Test unknown alarm returns 404"""
        self.assertEqual(self.client.delete("/api/alarms/missing").status_code, 404)
        self.assertEqual(self.client.post("/api/alarms/missing/toggle").status_code, 404)
        self.assertEqual(self.client.post("/api/alarms/missing/fire_now").status_code, 404)

    def test_fire_now(self):
        """Test firing an alarm immediately"""
        draft = self._draft()
        self.client.put(f"/api/alarms/{draft['id']}", json=draft)
        response = self.client.post(f"/api/alarms/{draft['id']}/fire_now")
        self.assertEqual(response.json(), {"status": "success"})

    def test_home_page_lists_alarms(self):
        """Test home page lists alarms"""
        draft = self._draft(name="Gym", days=[True, False, False, False, False, False, False])
        self.client.put(f"/api/alarms/{draft['id']}", json=draft)

        response = self.client.get("/")

        self.assertEqual(response.status_code, 200)
        self.assertIn("Gym - 4:20 - Monday", response.text)
        self.assertIn("color: rgba(255, 255, 255, 1.0)", response.text)

    def test_logging_follows_engine_config(self):
        """Test the host configures logging from the engine configuration"""
        self.client.__exit__(None, None, None)
        root = logging.getLogger()
        self.addCleanup(root.setLevel, root.level)

        with patch.dict(os.environ, {"LOG_LEVEL": "WARNING", "LOG_FORMAT": "json"}):
            self.client = TestClient(self.main.app)
            self.client.__enter__()

        self.assertEqual(root.level, logging.WARNING)
        self.assertTrue(any(isinstance(h.formatter, JSONFormatter) for h in root.handlers))

    def test_session_reloads_persisted_alarms_on_restart(self):
        """Test session reloads persisted alarms on restart"""
        draft = self._draft(name="Persisted")
        self.client.put(f"/api/alarms/{draft['id']}", json=draft)

        self.client.__exit__(None, None, None)
        self.client = TestClient(self.main.app)
        self.client.__enter__()

        self.assertEqual([a["name"] for a in self.client.get("/api/alarms").json()], ["Persisted"])


if __name__ == "__main__":
    unittest.main(verbosity=2)
