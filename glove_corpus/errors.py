from __future__ import annotations


class CorpusError(Exception):
    """Base class for errors raised by the corpus pipeline."""


class ConfigError(CorpusError):
    """Invalid configuration or a missing external dependency."""


class NoInputFilesError(ConfigError):
    """The input directory holds no shards with the expected extension."""


class OutputError(CorpusError):
    """The output stream could not be created."""


class ShardError(CorpusError):
    """A single shard could not be opened, decompressed or scanned."""


class LemmatizerError(CorpusError):
    """The morphological analyzer failed on one document."""


class QueueClosed(CorpusError):
    """Raised by a closed queue on put, or on get once drained."""
