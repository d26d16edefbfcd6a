from __future__ import annotations

import queue
import threading
from typing import Generic, Iterator, TypeVar, cast

from glove_corpus.errors import QueueClosed

T = TypeVar("T")

_CLOSED = object()


class ClosableQueue(Generic[T]):
    """Bounded ``queue.Queue`` whose end of input is signalled by :meth:`close`.

    Closing enqueues a sentinel behind the buffered items. A consumer that
    reaches it puts it back for the next consumer and raises
    :class:`QueueClosed`, so iteration stops once the queue is drained.
    Like ``put``, :meth:`close` blocks while the queue is full.
    """

    def __init__(self, maxsize: int) -> None:
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self.maxsize = maxsize
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize)
        self._close_lock = threading.Lock()
        self._closed = False

    def put(self, item: T) -> None:
        if self._closed:
            raise QueueClosed("put on a closed queue")
        self._queue.put(item)

    def get(self, timeout: float | None = None) -> T:
        """Remove and return the next item.

        Raises :class:`QueueClosed` once the queue is closed and drained and
        :class:`TimeoutError` when ``timeout`` elapses with nothing to read.
        """

        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            raise TimeoutError from None
        if item is _CLOSED:
            self._queue.put(_CLOSED)
            raise QueueClosed("queue closed and drained")
        return cast(T, item)

    def close(self) -> None:
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        self._queue.put(_CLOSED)

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> Iterator[T]:
        while True:
            try:
                yield self.get()
            except QueueClosed:
                return
