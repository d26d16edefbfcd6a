from __future__ import annotations

import gzip
import io
from pathlib import Path

import pytest

from conftest import write_shard
from glove_corpus.cleaning import TextCleaner
from glove_corpus.errors import LemmatizerError, ShardError
from glove_corpus.processor import FileProcessor, iter_lines
from glove_corpus.writer import ResultWriter


class UppercaseLemmatizer:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def lemmatize(self, text: str, source: str = "") -> str:
        self.calls.append((text, source))
        return text.upper()


class FailingLemmatizer:
    def lemmatize(self, text: str, source: str = "") -> str:
        raise LemmatizerError("analyzer exited with status 1")


def test_lines_are_joined_into_one_document(shard_dir: Path) -> None:
    shard = shard_dir / "a.gz"
    write_shard(shard, ["Hello, World!", "", "Second line."])

    assert FileProcessor(TextCleaner()).process_file(shard) == "hello world second line"


def test_crlf_terminators_are_stripped() -> None:
    stream = io.BytesIO(b"one\r\ntwo\nthree")

    assert list(iter_lines(stream)) == [b"one", b"two", b"three"]


def test_corrupted_lines_are_counted(shard_dir: Path, tmp_path: Path) -> None:
    shard = shard_dir / "a.gz"
    with gzip.open(shard, "wb") as stream:
        stream.write(b"bad\x00line\nfine\n")
    writer = ResultWriter(tmp_path / "out.txt")

    document = FileProcessor(TextCleaner(), result_writer=writer).process_file(shard)

    assert document == "badline fine"
    stats = writer.stats()
    assert stats.corrupted_lines == 1
    assert stats.corrupted == 1


def test_not_gzip_is_shard_error(shard_dir: Path) -> None:
    shard = shard_dir / "plain.gz"
    shard.write_bytes(b"this is not compressed")

    with pytest.raises(ShardError):
        FileProcessor(TextCleaner()).process_file(shard)


def test_truncated_gzip_is_shard_error(shard_dir: Path) -> None:
    shard = shard_dir / "truncated.gz"
    payload = gzip.compress(("word " * 2000).encode("utf-8"))
    shard.write_bytes(payload[: len(payload) // 2])

    with pytest.raises(ShardError):
        FileProcessor(TextCleaner()).process_file(shard)


def test_missing_file_is_shard_error(shard_dir: Path) -> None:
    with pytest.raises(ShardError):
        FileProcessor(TextCleaner()).process_file(shard_dir / "missing.gz")


def test_overlong_line_is_scanner_error(shard_dir: Path) -> None:
    shard = shard_dir / "long.gz"
    write_shard(shard, ["short", "a" * 50])

    with pytest.raises(ShardError, match="scanner error"):
        FileProcessor(TextCleaner(), max_line_bytes=10).process_file(shard)


def test_lemmatizer_receives_cleaned_document(shard_dir: Path) -> None:
    shard = shard_dir / "a.gz"
    write_shard(shard, ["Cats run."])
    lemmatizer = UppercaseLemmatizer()

    document = FileProcessor(TextCleaner(), lemmatizer).process_file(shard)  # type: ignore[arg-type]

    assert document == "CATS RUN"
    assert lemmatizer.calls == [("cats run", str(shard))]


def test_lemmatizer_skipped_for_empty_document(shard_dir: Path) -> None:
    shard = shard_dir / "a.gz"
    write_shard(shard, ["!!!", "..."])
    lemmatizer = UppercaseLemmatizer()

    assert FileProcessor(TextCleaner(), lemmatizer).process_file(shard) == ""  # type: ignore[arg-type]
    assert lemmatizer.calls == []


def test_lemmatizer_failure_keeps_cleaned_text(
    shard_dir: Path, caplog: pytest.LogCaptureFixture
) -> None:
    shard = shard_dir / "a.gz"
    write_shard(shard, ["Cats run."])

    document = FileProcessor(TextCleaner(), FailingLemmatizer()).process_file(shard)  # type: ignore[arg-type]

    assert document == "cats run"
    assert any("Lemmatization failed" in record.getMessage() for record in caplog.records)


def test_crlf_line_at_the_length_limit_is_accepted() -> None:
    stream = io.BytesIO(b"a" * 10 + b"\r\n" + b"b" * 10 + b"\n" + b"c" * 10)

    assert list(iter_lines(stream, 10)) == [b"a" * 10, b"b" * 10, b"c" * 10]


@pytest.mark.parametrize("payload", [b"a" * 11 + b"\r\n", b"a" * 11 + b"\n", b"a" * 11])
def test_line_over_the_limit_is_rejected(payload: bytes) -> None:
    with pytest.raises(ShardError):
        list(iter_lines(io.BytesIO(payload), 10))


def test_drop_corrupted_discards_whole_document(shard_dir: Path, tmp_path: Path) -> None:
    shard = write_shard(shard_dir / "a.gz", [b"fine line", b"\x00\x01\x02 abc \xff\xfe"])
    writer = ResultWriter(tmp_path / "out.txt")
    lemmatizer = UppercaseLemmatizer()
    processor = FileProcessor(
        TextCleaner(), lemmatizer, writer, drop_corrupted=True  # type: ignore[arg-type]
    )

    assert processor.process_file(shard) == ""
    assert lemmatizer.calls == []
    stats = writer.stats()
    assert stats.corrupted == 1
    assert stats.corrupted_lines == 1


def test_drop_corrupted_keeps_clean_document(shard_dir: Path) -> None:
    shard = write_shard(shard_dir / "a.gz", ["Clean text", "More clean text"])
    processor = FileProcessor(TextCleaner(), drop_corrupted=True)

    assert processor.process_file(shard) == "clean text more clean text"
