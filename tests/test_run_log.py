from __future__ import annotations

import io
import json
import tempfile
import unittest
from pathlib import Path

from mb_post.run_log import RunLogger


class TestRunLogger(unittest.TestCase):
    def test_writes_one_json_object_per_line(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "logs" / "mb_post.log"

            with RunLogger.open(path, session_id="s1") as log:
                log.info("generation_cycle_started", cycle_id="c1", image_count=2)
                log.warning("visual_post_empty", cycle_id="c1")

            records = [json.loads(ln) for ln in path.read_text(encoding="utf-8").splitlines()]

        self.assertEqual([r["event"] for r in records], ["generation_cycle_started", "visual_post_empty"])
        self.assertEqual(records[0]["session_id"], "s1")
        self.assertEqual(records[0]["cycle_id"], "c1")
        self.assertEqual(records[0]["data"], {"image_count": 2})
        self.assertEqual(records[1]["level"], "WARN")
        self.assertNotIn("data", records[1])

    def test_appends_unless_overwrite(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "run.log"

            with RunLogger.open(path) as log:
                log.info("first")
            with RunLogger.open(path) as log:
                log.info("second")
            self.assertEqual(len(path.read_text(encoding="utf-8").splitlines()), 2)

            with RunLogger.open(path, overwrite=True) as log:
                log.info("third")
            lines = path.read_text(encoding="utf-8").splitlines()

        self.assertEqual([json.loads(ln)["event"] for ln in lines], ["third"])

    def test_exception_records_cause(self) -> None:
        stream = io.StringIO()
        log = RunLogger(stream=stream)

        try:
            try:
                raise ValueError("raw model output was not JSON")
            except ValueError as inner:
                raise RuntimeError("caption parse failed") from inner
        except RuntimeError as e:
            log.exception("generation_cycle_failed", exc=e, cycle_id="c9")

        record = json.loads(stream.getvalue())
        self.assertEqual(record["level"], "ERROR")
        self.assertEqual(record["data"]["error"]["type"], "RuntimeError")
        self.assertEqual(record["data"]["error"]["cause"]["type"], "ValueError")
        self.assertIn("Traceback", record["data"]["error"]["traceback"])

    def test_stream_is_not_closed(self) -> None:
        stream = io.StringIO()
        with RunLogger(stream=stream) as log:
            log.info("hello")
        self.assertFalse(stream.closed)

    def test_requires_a_target(self) -> None:
        with self.assertRaises(ValueError):
            RunLogger()


if __name__ == "__main__":
    unittest.main()
