"""JSON stdout logger for propagation runs."""

import json
import time
from typing import Optional


class EngineLogger:
    """
    Emits JSON lines to stdout for a supervising process to stream.

    Event types:
    - "run"    → propagation run lifecycle (running / done / precondition_failed)
    - "entity" → one placement or creative staged or failed
    - "commit" → atomic batch committed
    - "log"    → free-form log line
    """

    def __init__(self, run_id: str = ""):
        self.run_id = run_id
        self._start = time.time()

    def _emit(self, data: dict) -> None:
        print(json.dumps(data, ensure_ascii=False), flush=True)

    # ── Run events ──

    def run_start(self, parent_type: str, parent_id: str) -> None:
        self._emit({"event": "run", "run_id": self.run_id, "status": "running",
                    "parent_type": parent_type, "parent_id": parent_id})
        self.info(f"▶ Updating taxonomies for {parent_type} {parent_id}")

    def run_complete(self, result) -> None:
        elapsed = round(time.time() - self._start, 3)
        self._emit({"event": "run", "run_id": self.run_id, "status": result.status,
                    "updated": result.updated_count, "skipped": result.skipped,
                    "errors": len(result.errors), "elapsed_seconds": elapsed})
        if result.errors:
            self.warn(f"Run finished with {len(result.errors)} skipped entities")
        else:
            self.info(f"✅ {result.updated_count} entities updated")

    # ── Entity events ──

    def entity_updated(self, kind: str, entity_id: str) -> None:
        self._emit({"event": "entity", "kind": kind, "id": entity_id, "status": "staged"})

    def entity_failed(self, kind: str, entity_id: str, error: str) -> None:
        self._emit({"event": "entity", "kind": kind, "id": entity_id, "status": "failed"})
        self.error(f"❌ {kind} {entity_id} skipped: {error}", entity=entity_id)

    # ── Commit ──

    def report_commit(self, count: int) -> None:
        self._emit({"event": "commit", "run_id": self.run_id, "count": count})

    # ── Log events ──

    def info(self, msg: str, entity: Optional[str] = None) -> None:
        self._emit({"event": "log", "level": "info", "entity": entity, "message": msg})

    def warn(self, msg: str, entity: Optional[str] = None) -> None:
        self._emit({"event": "log", "level": "warn", "entity": entity, "message": msg})

    def error(self, msg: str, entity: Optional[str] = None) -> None:
        self._emit({"event": "log", "level": "error", "entity": entity, "message": msg})

    def debug(self, msg: str, entity: Optional[str] = None) -> None:
        self._emit({"event": "log", "level": "debug", "entity": entity, "message": msg})
