"""User preferences with fire-and-forget persistence."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import asdict, replace
from pathlib import Path
from typing import Dict, List, Protocol

from bitt.common import Preferences

# Python field name -> key stored on disk
_STORED_KEYS: Dict[str, str] = {
    "sounds_enabled": "soundsEnabled",
    "flash_enabled": "flashEnabled",
}


class PreferenceStore(Protocol):
    def load(self) -> Dict[str, bool]: ...

    def save(self, values: Dict[str, bool]) -> None: ...


class MemoryPreferenceStore:
    def __init__(self, values: Dict[str, bool] | None = None) -> None:
        self.values: Dict[str, bool] = dict(values or {})

    def load(self) -> Dict[str, bool]:
        return dict(self.values)

    def save(self, values: Dict[str, bool]) -> None:
        self.values = dict(values)


class JsonPreferenceStore:
    """Stores preferences as a small JSON object."""

    def __init__(self, path: str | Path) -> None:
        self._logger = logging.getLogger(__name__)
        self._path = Path(path)
        self._write_lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Dict[str, bool]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            self._logger.warning("Ignoring unreadable preferences %s: %s", self._path, exc)
            return {}
        if not isinstance(raw, dict):
            self._logger.warning("Ignoring malformed preferences %s", self._path)
            return {}
        values: Dict[str, bool] = {}
        for field_name, stored_key in _STORED_KEYS.items():
            value = raw.get(stored_key)
            if isinstance(value, bool):
                values[field_name] = value
        return values

    def save(self, values: Dict[str, bool]) -> None:
        payload = {_STORED_KEYS[name]: value for name, value in values.items() if name in _STORED_KEYS}
        with self._write_lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(".tmp")
            tmp.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            tmp.replace(self._path)


class PreferenceGate:
    """Single source of truth for the sound and flash toggles."""

    def __init__(self, store: PreferenceStore | None = None) -> None:
        self._logger = logging.getLogger(__name__)
        self._store = store
        self._lock = threading.Lock()
        self._prefs = Preferences()
        self._write_lock = threading.Lock()
        self._writers: List[threading.Thread] = []
        if store is not None:
            loaded = store.load()
            if loaded:
                self._prefs = replace(self._prefs, **loaded)

    def get(self) -> Preferences:
        with self._lock:
            return self._prefs

    def set(self, key: str, value: bool) -> None:
        if key not in _STORED_KEYS:
            raise ValueError(f"Unknown preference: {key!r}")
        if not isinstance(value, bool):
            raise ValueError(f"Preference {key} must be a bool, got {value!r}")
        with self._lock:
            self._prefs = replace(self._prefs, **{key: value})
        self._logger.info("Preference %s set to %s", key, value)
        self._persist()

    def toggle(self, key: str) -> bool:
        value = not getattr(self.get(), key)
        self.set(key, value)
        return value

    def flush(self, timeout: float | None = None) -> None:
        """Wait for outstanding writes to finish."""
        for writer in list(self._writers):
            writer.join(timeout)

    def _persist(self) -> None:
        if self._store is None:
            return
        writer = threading.Thread(target=self._write, name="PreferenceWriter", daemon=True)
        self._writers = [w for w in self._writers if w.is_alive()]
        self._writers.append(writer)
        writer.start()

    def _write(self) -> None:
        # writers are serialized and each one saves the newest snapshot
        with self._write_lock:
            snapshot = asdict(self.get())
            try:
                self._store.save(snapshot)
            except OSError as exc:
                self._logger.error("Saving preferences failed: %s", exc)
