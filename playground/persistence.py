"""Snapshot persistence: save the editor state on every change, reload on start."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from .config import PlaygroundConfig
from .display import get_display
from .store import TreeStore


class SnapshotFile:
    """A JSON file holding the latest store snapshot.

    Usage:
        snapshots = SnapshotFile(".playground/snapshot.json")
        store = snapshots.open_store()   # reload, then save on every change
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[Dict[str, Any]]:
        """Read the saved snapshot.

        Returns:
            The snapshot dict, or None when the file is absent, empty or corrupt
        """
        if not self.path.exists():
            return None
        try:
            text = self.path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            get_display().print_warning(f"Ignoring corrupt snapshot {self.path}: {e}")
            return None
        except OSError as e:
            get_display().print_warning(f"Cannot read snapshot {self.path}: {e}")
            return None
        if not text.strip():
            return None
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            get_display().print_warning(f"Ignoring corrupt snapshot {self.path}: {e}")
            return None
        if not isinstance(data, dict):
            get_display().print_warning(f"Ignoring snapshot {self.path}: not a JSON object")
            return None
        return data

    def save(self, snapshot: Dict[str, Any]) -> None:
        """Write a snapshot atomically (temp file in the same directory, then rename)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(
            dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, indent=2)
            os.replace(temp_name, self.path)
        except BaseException:
            if os.path.exists(temp_name):
                os.unlink(temp_name)
            raise

    def listener(self) -> Callable[[Dict[str, Any]], None]:
        """A store change listener that saves each snapshot.

        Write failures are reported, not raised, so an unwritable disk
        never blocks editing.
        """

        def save_snapshot(snapshot: Dict[str, Any]) -> None:
            try:
                self.save(snapshot)
            except OSError as e:
                get_display().print_error(f"Failed to save snapshot to {self.path}: {e}")

        return save_snapshot

    def open_store(self, config: Optional[PlaygroundConfig] = None) -> TreeStore:
        """Restore a store from this file and keep the file in sync with it."""
        store = TreeStore.from_snapshot(self.load(), config)
        store.subscribe(self.listener())
        return store
