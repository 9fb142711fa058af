from __future__ import annotations

import json
import sys
import traceback
import uuid
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, TextIO


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _truncate(text: str, *, limit: int) -> str:
    s = str(text or "")
    if limit <= 0:
        return ""
    if len(s) <= limit:
        return s
    return s[: max(0, limit - 1)] + "…"


class RunLogger:
    """
    JSONL diagnostics log for generation cycles.

    Each line is one JSON object. Failure details that are never shown to end
    users (backend errors, unparsable model output) end up here.
    """

    def __init__(
        self,
        path: str | Path | None = None,
        *,
        stream: TextIO | None = None,
        overwrite: bool = False,
        session_id: str | None = None,
    ) -> None:
        if path is None and stream is None:
            raise ValueError("RunLogger needs a path or a stream")

        self._path = Path(path) if path is not None else None
        self._stream = stream
        self._overwrite = bool(overwrite)
        self._session_id = (session_id or "").strip() or uuid.uuid4().hex
        self._fp: TextIO | None = None
        self._lock = Lock()

    @classmethod
    def open(
        cls,
        path: str | Path,
        *,
        overwrite: bool = False,
        session_id: str | None = None,
    ) -> "RunLogger":
        logger = cls(path, overwrite=overwrite, session_id=session_id)
        logger._ensure_open()
        return logger

    @classmethod
    def to_stderr(cls, *, session_id: str | None = None) -> "RunLogger":
        return cls(stream=sys.stderr, session_id=session_id)

    @property
    def session_id(self) -> str:
        return self._session_id

    def close(self) -> None:
        with self._lock:
            if self._fp is not None and self._fp is not self._stream:
                try:
                    self._fp.flush()
                finally:
                    self._fp.close()
            self._fp = None

    def __enter__(self) -> "RunLogger":
        self._ensure_open()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()

    def info(self, event: str, *, cycle_id: str | None = None, **data: Any) -> None:
        self.log("INFO", event, cycle_id=cycle_id, **data)

    def warning(self, event: str, *, cycle_id: str | None = None, **data: Any) -> None:
        self.log("WARN", event, cycle_id=cycle_id, **data)

    def error(self, event: str, *, cycle_id: str | None = None, **data: Any) -> None:
        self.log("ERROR", event, cycle_id=cycle_id, **data)

    def exception(
        self,
        event: str,
        *,
        exc: BaseException,
        cycle_id: str | None = None,
        level: str = "ERROR",
        **data: Any,
    ) -> None:
        err = {
            "type": type(exc).__name__,
            "message": _truncate(str(exc), limit=2000),
            "traceback": _truncate(
                "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
                limit=12000,
            ),
        }
        cause = exc.__cause__
        if cause is not None:
            err["cause"] = {
                "type": type(cause).__name__,
                "message": _truncate(str(cause), limit=2000),
            }
        self.log(level, event, cycle_id=cycle_id, error=err, **data)

    def log(self, level: str, event: str, *, cycle_id: str | None = None, **data: Any) -> None:
        lvl = (level or "").strip().upper() or "INFO"
        ev = (event or "").strip() or "event"

        record: dict[str, Any] = {
            "ts": _utc_now_iso(),
            "level": lvl,
            "event": ev,
            "session_id": self._session_id,
        }

        cid = (cycle_id or "").strip()
        if cid:
            record["cycle_id"] = cid

        if data:
            record["data"] = data

        self._write(record)

    def _ensure_open(self) -> None:
        if self._fp is not None:
            return

        with self._lock:
            if self._fp is not None:
                return

            if self._path is None:
                self._fp = self._stream
                return

            self._path.parent.mkdir(parents=True, exist_ok=True)
            mode = "w" if self._overwrite else "a"
            self._fp = self._path.open(mode, encoding="utf-8", newline="\n")
            # Later reopens after close() append instead of truncating.
            self._overwrite = False

    def _write(self, record: dict[str, Any]) -> None:
        self._ensure_open()

        payload = json.dumps(
            record,
            ensure_ascii=False,
            sort_keys=True,
            separators=(",", ":"),
            default=str,
        )

        with self._lock:
            if self._fp is None:
                return
            self._fp.write(payload + "\n")
            self._fp.flush()
