from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Optional

from packages.shared.config import AppConfig
from packages.shared.paths import config_path, ensure_app_dirs

log = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Raised when the config file cannot be written."""


class ConfigStore:
    def __init__(self, path: Optional[Path] = None) -> None:
        if path is None:
            ensure_app_dirs()
            path = config_path()
        self._path = Path(path)
        self._lock = threading.Lock()

    def load(self, strict: bool = False) -> AppConfig:
        """Read the config file; a missing file gives defaults.

        An unreadable or invalid file also gives defaults, unless `strict`
        is set, in which case PersistenceError is raised so that callers
        about to write never overwrite state they could not read.
        """
        with self._lock:
            if not self._path.exists():
                return AppConfig()

            try:
                raw = self._path.read_text(encoding="utf-8")
                data: Any = json.loads(raw)
                return AppConfig.model_validate(data)
            except Exception as e:
                if strict:
                    raise PersistenceError(f"Could not read {self._path}: {e}") from e
                log.exception("Unreadable config at %s, using defaults", self._path)
                return AppConfig()

    def save(self, cfg: AppConfig) -> None:
        with self._lock:
            tmp = self._path.with_name(self._path.name + ".tmp")
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                tmp.write_text(cfg.model_dump_json(indent=2), encoding="utf-8")
                os.replace(tmp, self._path)
            except OSError as e:
                raise PersistenceError(f"Could not write {self._path}: {e}") from e

    def path(self) -> str:
        return str(self._path)
