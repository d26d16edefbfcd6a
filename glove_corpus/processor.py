from __future__ import annotations

import gzip
import logging
import zlib
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional, Tuple

from glove_corpus.cleaning import TextCleaner
from glove_corpus.detector import is_corrupted
from glove_corpus.errors import LemmatizerError, ShardError
from glove_corpus.lemmatizer import Lemmatizer
from glove_corpus.writer import ResultWriter

LOGGER = logging.getLogger(__name__)

MAX_LINE_BYTES = 10 * 1024 * 1024
LINE_SAMPLE_CHARS = 100


def iter_lines(stream: BinaryIO, max_line_bytes: int = MAX_LINE_BYTES) -> Iterator[bytes]:
    """Yield lines without their terminator, refusing lines over ``max_line_bytes``."""

    while True:
        # room for a full line plus its "\r\n" terminator
        line = stream.readline(max_line_bytes + 2)
        if not line:
            return
        if line.endswith(b"\n"):
            line = line[:-1]
            if line.endswith(b"\r"):
                line = line[:-1]
        if len(line) > max_line_bytes:
            raise ShardError(f"line exceeds {max_line_bytes} bytes")
        yield line


class FileProcessor:
    """Turns one compressed shard into one cleaned document.

    With ``drop_corrupted`` set, the raw shard content is checked as a whole
    before anything is lemmatized and a corrupted shard yields an empty
    document.
    """

    def __init__(
        self,
        cleaner: TextCleaner,
        lemmatizer: Lemmatizer | None = None,
        result_writer: Optional[ResultWriter] = None,
        *,
        max_line_bytes: int = MAX_LINE_BYTES,
        drop_corrupted: bool = False,
    ) -> None:
        self.cleaner = cleaner
        self.lemmatizer = lemmatizer
        self.result_writer = result_writer
        self.max_line_bytes = max_line_bytes
        self.drop_corrupted = drop_corrupted

    def process_file(self, path: Path) -> str:
        source = str(path)
        try:
            with gzip.open(path, "rb") as stream:
                content, corrupted_lines, raw_corrupted = self._clean_lines(stream, source)
        except ShardError as exc:
            raise ShardError(f"scanner error: {exc}") from exc
        except (OSError, EOFError, zlib.error) as exc:
            raise ShardError(f"failed to read {path}: {exc}") from exc

        if corrupted_lines or raw_corrupted:
            LOGGER.info("%s: %d corrupted lines", source, corrupted_lines)
            if self.result_writer is not None:
                self.result_writer.increment_corrupted_lines(corrupted_lines)
                self.result_writer.increment_corrupted()

        if raw_corrupted:
            LOGGER.warning("Dropping corrupted document %s", path)
            return ""

        if self.lemmatizer is not None and content:
            try:
                content = self.lemmatizer.lemmatize(content, source)
            except LemmatizerError as exc:
                LOGGER.warning("Lemmatization failed for file %s: %s", path, exc)

        return content

    def _clean_lines(self, stream: BinaryIO, source: str) -> Tuple[str, int, bool]:
        cleaned: List[str] = []
        raw_lines: List[bytes] = []
        corrupted_lines = 0
        for line in iter_lines(stream, self.max_line_bytes):
            if self.drop_corrupted:
                raw_lines.append(line)
            if is_corrupted(line):
                corrupted_lines += 1
                LOGGER.debug(
                    "Corrupted line in %s: %r",
                    source,
                    line[:LINE_SAMPLE_CHARS],
                )
            text = self.cleaner.clean(line, source)
            if text:
                cleaned.append(text)

        raw_corrupted = self.drop_corrupted and is_corrupted(b"\n".join(raw_lines))
        return " ".join(cleaned), corrupted_lines, raw_corrupted
