"""JSON file trace storage.

Stores TraceRecord objects as JSON files under .vouch/traces/ with an
index file mapping workspace ids to trace ids. Uses atomic writes to
prevent corruption. Secret-shaped strings in the prompt and answer are
redacted before anything touches disk.
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
import threading
from pathlib import Path

from vouch.models.answer import StructuredAnswer
from vouch.models.trace import TraceRecord
from vouch.validation.rules.pii import redact_secrets


def redact_trace(trace: TraceRecord) -> TraceRecord:
    """Return a copy of *trace* with secrets in free text replaced."""
    answer = trace.answer
    redacted_answer = StructuredAnswer(
        answer=redact_secrets(answer.answer),
        confidence=answer.confidence,
        evidence=tuple(redact_secrets(item) for item in answer.evidence),
        alternatives=tuple(redact_secrets(item) for item in answer.alternatives),
    )
    return trace.model_copy(
        update={"prompt": redact_secrets(trace.prompt), "answer": redacted_answer}
    )


def _atomic_write(path: Path, content: str) -> None:
    """Write through a uniquely named temp file, then replace *path*."""
    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
    ) as handle:
        handle.write(content)
    os.replace(handle.name, path)


class JsonTraceStore:
    """Persist and query TraceRecord objects as JSON files.

    File layout:
        .vouch/
            traces/
                {trace-id}.json    # Individual traces
            index.json             # Workspace id -> [trace IDs] mapping

    Writes go through a unique temp file and os.replace, so readers never
    see a partial file. Index updates are serialized by a per-store lock
    because save() runs in worker threads.
    """

    def __init__(self, project_root: Path, storage_dir: str | None = None) -> None:
        effective_dir = storage_dir or ".vouch"
        self.vouch_dir = project_root / effective_dir
        self.traces_dir = self.vouch_dir / "traces"
        self.index_path = self.vouch_dir / "index.json"
        self._index_lock = threading.Lock()

    def ensure_dirs(self) -> None:
        """Create the .vouch/traces/ directory."""
        self.traces_dir.mkdir(parents=True, exist_ok=True)

    async def save(self, trace: TraceRecord) -> None:
        """TraceSink entry point; file I/O runs off the event loop."""
        await asyncio.to_thread(self.save_trace, trace)

    def save_trace(self, trace: TraceRecord) -> str:
        """Write a trace file and update the index.

        Returns:
            The trace ID.
        """
        self.ensure_dirs()

        data = redact_trace(trace).model_dump(mode="json")
        content = json.dumps(data, indent=2, ensure_ascii=False)

        _atomic_write(self.traces_dir / f"{trace.trace_id}.json", content)
        self._update_index(trace.workspace_id, trace.trace_id)
        return trace.trace_id

    def load(self, trace_id: str) -> TraceRecord:
        """Load a TraceRecord from its JSON file.

        Raises:
            FileNotFoundError: If no trace with that ID exists.
        """
        trace_file = self.traces_dir / f"{trace_id}.json"
        content = trace_file.read_text(encoding="utf-8")
        return TraceRecord.model_validate_json(content)

    def list_traces(self, workspace_id: str | None = None) -> list[str]:
        """List trace IDs, optionally filtered by workspace.

        Args:
            workspace_id: If provided, only return that workspace's traces
                in the order they were saved. If None, return all trace IDs
                sorted by file name.
        """
        if workspace_id is not None:
            with self._index_lock:
                index = self._load_index()
            return index.get(workspace_id, [])

        if not self.traces_dir.exists():
            return []
        return sorted(f.stem for f in self.traces_dir.glob("*.json"))

    def delete(self, trace_id: str) -> bool:
        """Delete a trace file and remove it from the index.

        Returns:
            True if the trace existed and was deleted.
        """
        trace_file = self.traces_dir / f"{trace_id}.json"
        if not trace_file.exists():
            return False
        trace_file.unlink()

        with self._index_lock:
            index = self._load_index()
            for workspace_id, ids in list(index.items()):
                if trace_id in ids:
                    ids.remove(trace_id)
                    if not ids:
                        del index[workspace_id]
            self._write_index(index)
        return True

    # _load_index and _write_index expect _index_lock to be held.

    def _load_index(self) -> dict[str, list[str]]:
        if not self.index_path.exists():
            return {}
        return json.loads(self.index_path.read_text(encoding="utf-8"))

    def _write_index(self, index: dict[str, list[str]]) -> None:
        _atomic_write(self.index_path, json.dumps(index, indent=2))

    def _update_index(self, workspace_id: str, trace_id: str) -> None:
        with self._index_lock:
            index = self._load_index()
            ids = index.setdefault(workspace_id, [])
            if trace_id not in ids:
                ids.append(trace_id)
            self._write_index(index)
