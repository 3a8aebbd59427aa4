import json
import pathlib
import sys
import tempfile
import unittest


ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from controlplane_telemetry.store import InMemoryRecordStore, NdjsonRecordStore, read_ndjson
from helpers import make_action, make_event


class InMemoryRecordStoreTests(unittest.TestCase):
    def test_actions_ordered_and_scoped(self):
        store = InMemoryRecordStore(
            actions=[
                make_action(created_at=300, orchestration_id="orch-1", action_id="late"),
                make_action(created_at=100, orchestration_id="orch-2", action_id="other"),
                make_action(created_at=200, orchestration_id="orch-1", action_id="early"),
            ]
        )
        self.assertEqual([a.id for a in store.list_actions()], ["other", "early", "late"])
        self.assertEqual([a.id for a in store.list_actions("orch-1")], ["early", "late"])
        self.assertEqual(store.list_actions("missing"), [])

    def test_events_ordered_by_recorded_time(self):
        store = InMemoryRecordStore(
            events=[
                make_event("2024-01-01T00:00:02Z", event_id="second"),
                make_event("2024-01-01T00:00:01Z", event_id="first"),
                make_event("2024-01-01T00:00:00Z", orchestration_id="orch-2", event_id="other"),
            ]
        )
        self.assertEqual([e.id for e in store.list_events("orch-1")], ["first", "second"])


class NdjsonRecordStoreTests(unittest.TestCase):
    def test_missing_files_read_empty(self):
        with tempfile.TemporaryDirectory() as td:
            root = pathlib.Path(td)
            store = NdjsonRecordStore(root / "actions.ndjson", root / "events.ndjson")
            self.assertEqual(store.list_actions(), [])
            self.assertEqual(store.list_events("orch-1"), [])

    def test_skips_bad_lines_and_records(self):
        with tempfile.TemporaryDirectory() as td:
            root = pathlib.Path(td)
            actions_file = root / "actions.ndjson"
            events_file = root / "events.ndjson"
            actions_file.write_text(
                "\n".join(
                    [
                        json.dumps(make_action(action_id="ok", created_at=5).to_dict()),
                        "{not json",
                        "[1, 2]",
                        json.dumps({"id": "bad", "actionType": "pause"}),
                        "",
                    ]
                ),
                encoding="utf-8",
            )
            events_file.write_text(
                "\n".join(
                    [
                        json.dumps(make_event("2024-01-01T00:00:00Z", event_id="good").to_dict()),
                        json.dumps({"id": "bad", "orchestrationId": "orch-1", "recordedAt": "never"}),
                    ]
                ),
                encoding="utf-8",
            )
            store = NdjsonRecordStore(actions_file, events_file)
            with self.assertLogs("controlplane_telemetry.store", level="WARNING") as logs:
                actions = store.list_actions()
                events = store.list_events("orch-1")
            self.assertEqual([a.id for a in actions], ["ok"])
            self.assertEqual([e.id for e in events], ["good"])
            self.assertGreaterEqual(len(logs.output), 4)

    def test_rereads_on_every_call(self):
        with tempfile.TemporaryDirectory() as td:
            root = pathlib.Path(td)
            actions_file = root / "actions.ndjson"
            store = NdjsonRecordStore(actions_file, root / "events.ndjson")
            self.assertEqual(store.list_actions(), [])
            actions_file.write_text(json.dumps(make_action(action_id="new").to_dict()) + "\n", encoding="utf-8")
            self.assertEqual([a.id for a in store.list_actions()], ["new"])

    def test_read_ndjson_returns_objects_only(self):
        with tempfile.TemporaryDirectory() as td:
            path = pathlib.Path(td) / "log.ndjson"
            path.write_text('{"a": 1}\n\n"str"\n{"b": 2}\n', encoding="utf-8")
            self.assertEqual(read_ndjson(path), [{"a": 1}, {"b": 2}])


if __name__ == "__main__":
    unittest.main()
