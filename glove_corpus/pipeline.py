from __future__ import annotations

import logging
import threading
from contextlib import ExitStack
from pathlib import Path
from typing import List, Optional, Sequence

from tqdm import tqdm

from glove_corpus.channels import ClosableQueue
from glove_corpus.cleaning import TextCleaner
from glove_corpus.config import PipelineConfig
from glove_corpus.errors import ConfigError, CorpusError, NoInputFilesError, QueueClosed, ShardError
from glove_corpus.lemmatizer import Lemmatizer, resolve_analyzer
from glove_corpus.processor import FileProcessor
from glove_corpus.tokenlog import TokenLog
from glove_corpus.types import PipelineState, RunStatistics
from glove_corpus.writer import ResultWriter

LOGGER = logging.getLogger(__name__)


def list_input_files(input_dir: Path, extension: str = ".gz") -> List[Path]:
    """Return the shards in ``input_dir`` whose name ends with ``extension``.

    Matching is case-insensitive and non-recursive. Finding nothing is a
    configuration error.
    """

    if not input_dir.is_dir():
        raise NoInputFilesError(f"Input directory does not exist: {input_dir}")

    suffix = extension.lower()
    try:
        files = sorted(
            path.resolve()
            for path in input_dir.iterdir()
            if path.is_file() and path.name.lower().endswith(suffix)
        )
    except OSError as exc:
        raise ConfigError(f"Cannot list input directory {input_dir}: {exc}") from exc
    if not files:
        raise NoInputFilesError(f"No {extension} files found in directory {input_dir}")

    LOGGER.info("Found %d files to process", len(files))
    return files


def log_summary(stats: RunStatistics) -> None:
    LOGGER.info("=== Processing completed ===")
    LOGGER.info("  Time:      %.1fs", stats.elapsed)
    LOGGER.info("  Lines:     %d", stats.lines)
    LOGGER.info("  Corrupted: %d (%d lines)", stats.corrupted, stats.corrupted_lines)
    LOGGER.info("  Failed:    %d", stats.failed_files)
    LOGGER.info("  Data:      %.1f MB", stats.megabytes)
    LOGGER.info("  Speed:     %.1f KB/s", stats.throughput)


class CorpusPipeline:
    """Fans shards out to a pool of worker threads and funnels documents to one writer.

    ``run`` walks through ``IDLE -> LISTING -> RUNNING -> DRAINING -> DONE``.
    Configuration problems found before any thread starts move the pipeline
    to ``FAILED`` and are re-raised; per-file and per-document failures are
    logged and counted without stopping the run.
    """

    def __init__(self, config: PipelineConfig, files: Optional[Sequence[Path]] = None) -> None:
        self.config = config
        self.state = PipelineState.IDLE
        self.files: List[Path] = list(files) if files is not None else []
        self._explicit_files = files is not None

    def _transition(self, state: PipelineState) -> None:
        LOGGER.debug("Pipeline %s -> %s", self.state.value, state.value)
        self.state = state

    def run(self) -> RunStatistics:
        config = self.config
        try:
            self._transition(PipelineState.LISTING)
            if not self._explicit_files:
                self.files = list_input_files(config.input_dir, config.extension)
            elif not self.files:
                raise NoInputFilesError("No input files given")

            analyzer = None
            if config.lemmatization.enable:
                analyzer = resolve_analyzer(config.lemmatization.mystem_path)

            with ExitStack() as stack:
                token_log = None
                if config.logger.enabled:
                    token_log = stack.enter_context(TokenLog(config.logger.long_words_log))

                lemmatizer = None
                if analyzer is not None:
                    lemmatizer = Lemmatizer(
                        analyzer,
                        config.lemmatization.mystem_flags,
                        token_log=token_log,
                        timeout=config.lemmatization.timeout,
                    )

                writer = stack.enter_context(ResultWriter(config.output_path, config.buffer_size))
                processor = FileProcessor(
                    TextCleaner(config.cleaner, token_log),
                    lemmatizer,
                    writer,
                    drop_corrupted=config.drop_corrupted_documents,
                )
                progress = stack.enter_context(
                    tqdm(
                        total=len(self.files),
                        desc="Processing",
                        unit="file",
                        disable=not config.show_progress,
                    )
                )
                stats = self._execute(processor, writer, progress)
        except CorpusError:
            self._transition(PipelineState.FAILED)
            raise

        self._transition(PipelineState.DONE)
        return stats

    def _execute(self, processor: FileProcessor, writer: ResultWriter, progress: tqdm) -> RunStatistics:
        workers = self.config.workers
        paths: ClosableQueue[Path] = ClosableQueue(workers * 2)
        documents: ClosableQueue[str] = ClosableQueue(workers * 2)
        increments: ClosableQueue[int] = ClosableQueue(workers)

        self._transition(PipelineState.RUNNING)
        writer_thread = threading.Thread(target=writer.run, args=(documents,), name="writer")
        reporter = threading.Thread(
            target=self._report_progress, args=(increments, writer, progress), name="progress"
        )
        worker_threads = [
            threading.Thread(
                target=self._work,
                args=(worker_id, processor, writer, paths, documents, increments),
                name=f"worker-{worker_id}",
            )
            for worker_id in range(1, workers + 1)
        ]
        feeder = threading.Thread(target=self._feed, args=(paths,), name="feeder")

        writer_thread.start()
        reporter.start()
        for thread in worker_threads:
            thread.start()
        feeder.start()

        for thread in worker_threads:
            thread.join()
        feeder.join()

        self._transition(PipelineState.DRAINING)
        documents.close()
        increments.close()
        writer_thread.join()
        reporter.join()

        stats = writer.stats()
        self._refresh(progress, stats)
        log_summary(stats)
        return stats

    def _feed(self, paths: ClosableQueue[Path]) -> None:
        for path in self.files:
            paths.put(path)
        paths.close()

    def _work(
        self,
        worker_id: int,
        processor: FileProcessor,
        writer: ResultWriter,
        paths: ClosableQueue[Path],
        documents: ClosableQueue[str],
        increments: ClosableQueue[int],
    ) -> None:
        report_every = self.config.report_every
        processed = 0

        for path in paths:
            try:
                document = processor.process_file(path)
            except ShardError as exc:
                LOGGER.error("Error: %s: %s", path, exc)
                writer.increment_failed()
                document = ""
            except Exception:
                LOGGER.exception("Worker %d: unexpected failure on %s", worker_id, path)
                writer.increment_failed()
                document = ""

            if document:
                documents.put(document)

            processed += 1
            if processed % report_every == 0:
                increments.put(report_every)

        if processed % report_every:
            increments.put(processed % report_every)

    def _report_progress(
        self, increments: ClosableQueue[int], writer: ResultWriter, progress: tqdm
    ) -> None:
        while True:
            try:
                progress.update(increments.get(timeout=self.config.progress_interval))
            except TimeoutError:
                pass
            except QueueClosed:
                return
            self._refresh(progress, writer.stats())

    @staticmethod
    def _refresh(progress: tqdm, stats: RunStatistics) -> None:
        progress.set_postfix(
            lines=stats.lines,
            speed=f"{stats.throughput:.1f} KB/s",
            refresh=True,
        )


def run_pipeline(config: PipelineConfig, files: Optional[Sequence[Path]] = None) -> RunStatistics:
    return CorpusPipeline(config, files).run()
