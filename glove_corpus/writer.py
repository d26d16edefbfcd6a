from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import BinaryIO, Iterable, Optional

from glove_corpus.errors import OutputError
from glove_corpus.types import RunStatistics

LOGGER = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 1024 * 1024


class ResultWriter:
    """Single consumer that appends finished documents to the output corpus.

    Only the thread running :meth:`run` touches the output handle. Counters
    are guarded by a lock so that :meth:`stats` can be called from any
    thread while documents are being written.
    """

    def __init__(self, output_path: Path, buffer_size: int = DEFAULT_BUFFER_SIZE) -> None:
        self.output_path = Path(output_path)
        self.buffer_size = buffer_size
        self._handle: Optional[BinaryIO] = None
        self._counter_lock = threading.Lock()
        self._lines = 0
        self._bytes = 0
        self._corrupted = 0
        self._corrupted_lines = 0
        self._failed_files = 0
        self._start_time = time.monotonic()

    def open(self) -> "ResultWriter":
        try:
            self.output_path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = self.output_path.open("wb", buffering=self.buffer_size)
        except OSError as exc:
            raise OutputError(f"Failed to create output file {self.output_path}: {exc}") from exc
        LOGGER.info("Writing corpus to %s", self.output_path)
        self._start_time = time.monotonic()
        return self

    def close(self) -> None:
        if self._handle is not None:
            try:
                self._handle.close()
            finally:
                self._handle = None

    def __enter__(self) -> "ResultWriter":
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def run(self, documents: Iterable[str]) -> None:
        """Consume ``documents`` until the stream ends.

        Per-document failures are logged and the document is skipped; the
        loop itself never stops early because workers would block on a full
        queue forever.
        """

        handle = self._handle
        if handle is None:
            raise OutputError("ResultWriter.run() called before open()")

        for document in documents:
            if not document:
                continue
            try:
                self._write(handle, document)
            except OSError as exc:
                LOGGER.error("Write error: %s", exc)
            except Exception:
                LOGGER.warning("Pipeline warning: writer fault, document skipped", exc_info=True)

        try:
            handle.flush()
        except OSError as exc:
            LOGGER.error("Failed to flush output: %s", exc)

    def _write(self, handle: BinaryIO, document: str) -> None:
        payload = document.encode("utf-8") + b"\n"
        handle.write(payload)
        with self._counter_lock:
            self._lines += 1
            self._bytes += len(payload)

    def increment_corrupted(self, count: int = 1) -> None:
        with self._counter_lock:
            self._corrupted += count

    def increment_corrupted_lines(self, count: int = 1) -> None:
        with self._counter_lock:
            self._corrupted_lines += count

    def increment_failed(self, count: int = 1) -> None:
        with self._counter_lock:
            self._failed_files += count

    def stats(self) -> RunStatistics:
        with self._counter_lock:
            return RunStatistics(
                lines=self._lines,
                bytes=self._bytes,
                corrupted=self._corrupted,
                corrupted_lines=self._corrupted_lines,
                failed_files=self._failed_files,
                elapsed=time.monotonic() - self._start_time,
            )
