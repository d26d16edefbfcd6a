from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import IO, Optional

from glove_corpus.errors import OutputError
from glove_corpus.types import LogLevel

LOGGER = logging.getLogger(__name__)


class TokenLog:
    """Append-only log of suspicious tokens shared by every worker.

    Entries are written one per line as ``[LEVEL] source: token``. The file
    handle is opened on ``__enter__`` (or :meth:`open`) and every write is
    serialized through a single lock.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._handle: Optional[IO[str]] = None

    def open(self) -> "TokenLog":
        LOGGER.debug("Opening token log %s", self.path)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = self.path.open("a", encoding="utf-8")
        except OSError as exc:
            raise OutputError(f"Failed to open token log {self.path}: {exc}") from exc
        return self

    def close(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.close()
                self._handle = None

    def __enter__(self) -> "TokenLog":
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def record(self, level: LogLevel, source: str, token: str) -> None:
        with self._lock:
            if self._handle is None:
                return
            self._handle.write(f"[{level.value}] {source}: {token}\n")
