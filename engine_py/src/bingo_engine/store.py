"""
Snapshot stores for session state that must survive a restart.

Saving never raises and never blocks the event loop: a failed write is logged
and the in-memory state simply stays unpersisted.
"""

import asyncio
import copy
import logging
import os
import threading
from typing import Any, Dict, Optional, Set

import orjson
from pydantic import ValidationError

from .models import SessionState
from .serialization import restore_state, snapshot_state

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Base store. Subclasses implement read_raw and write_raw."""

    def read_raw(self) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def write_raw(self, data: Dict[str, Any]) -> None:
        raise NotImplementedError

    def load(self) -> SessionState:
        """Load state, falling back to an empty session on any failure."""
        try:
            data = self.read_raw()
            if data is None:
                return SessionState()
            state = restore_state(data)
            logger.info(f"Restored snapshot for game {state.session.game_id}")
            return state
        except (OSError, ValueError, ValidationError) as e:
            logger.error(f"Failed to load snapshot, starting empty: {e}")
            return SessionState()

    def save(self, state: SessionState) -> None:
        try:
            self.write_raw(snapshot_state(state))
        except Exception as e:
            logger.error(f"Failed to save snapshot: {e}")


class MemorySnapshotStore(SnapshotStore):
    """Keeps the latest snapshot in process memory."""

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self.data = copy.deepcopy(data)
        self.saves = 0

    def read_raw(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self.data)

    def write_raw(self, data: Dict[str, Any]) -> None:
        self.data = copy.deepcopy(data)
        self.saves += 1


class JsonSnapshotStore(SnapshotStore):
    """
    Stores the snapshot as a JSON file.

    Inside a running event loop the write happens on a worker thread and the
    caller does not wait for it. Each save carries a sequence number so an
    older snapshot never lands on top of a newer one.
    """

    def __init__(self, path: str):
        self.path = path
        self._seq = 0
        self._written_seq = 0
        self._write_lock = threading.Lock()
        self._pending: Set[asyncio.Task] = set()

    def read_raw(self) -> Optional[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return None
        with open(self.path, 'rb') as f:
            return orjson.loads(f.read())

    def write_raw(self, data: Dict[str, Any]) -> None:
        payload = orjson.dumps(data, option=orjson.OPT_INDENT_2)
        self._seq += 1
        seq = self._seq

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._write_file(seq, payload)
            return

        task = loop.create_task(asyncio.to_thread(self._write_file, seq, payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def flush(self) -> None:
        """Wait for every scheduled write to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending))

    def _write_file(self, seq: int, payload: bytes) -> None:
        with self._write_lock:
            if seq < self._written_seq:
                return
            try:
                directory = os.path.dirname(self.path)
                if directory:
                    os.makedirs(directory, exist_ok=True)
                tmp_path = f"{self.path}.tmp"
                with open(tmp_path, 'wb') as f:
                    f.write(payload)
                os.replace(tmp_path, self.path)
                self._written_seq = seq
            except OSError as e:
                logger.error(f"Failed to write snapshot to {self.path}: {e}")


def create_store(path: Optional[str]) -> SnapshotStore:
    """Pick a store for the configured snapshot path."""
    if path:
        return JsonSnapshotStore(path)
    return MemorySnapshotStore()
