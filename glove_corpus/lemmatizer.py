from __future__ import annotations

import logging
import re
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional

from glove_corpus.errors import ConfigError, LemmatizerError
from glove_corpus.tokenlog import TokenLog
from glove_corpus.types import LogLevel

LOGGER = logging.getLogger(__name__)

DEFAULT_ANALYZER = "mystem"
DEFAULT_FLAGS = ["-l", "-d"]
LONG_TOKEN_LENGTH = 30
DANGER_TOKEN_LENGTH = 100

# surface{lemma|alt1|alt2} or surface{lemma??}; the surface form may be absent
ANALYSIS_PATTERN = re.compile(r"[^\s{}]*\{([^|{}]*)[^}]*\}")


def parse_flags(flags: str) -> List[str]:
    """Expand a compact flag string such as ``-ld`` into ``["-l", "-d"]``."""

    if not flags:
        return list(DEFAULT_FLAGS)
    return [f"-{flag}" for flag in flags if flag != "-" and not flag.isspace()]


def resolve_analyzer(path: str | Path | None) -> Path:
    """Locate the analyzer binary, searching ``PATH`` when no path is configured."""

    candidate = str(path) if path else DEFAULT_ANALYZER
    resolved = shutil.which(candidate)
    if resolved is None:
        raise ConfigError(f"Analyzer '{candidate}' not found. Please specify --mystem-path")
    return Path(resolved)


def _first_candidate(match: re.Match[str]) -> str:
    return " " + match.group(1).rstrip("?") + " "


def reassemble_analysis(output: str) -> str:
    """Turn bracketed analyzer output into plain lemma text.

    Each ``word{lemma|alt...}`` group is replaced by its first candidate with
    trailing ``?`` markers removed. Text outside the groups is kept as is and
    all lines are joined with single spaces.
    """

    pieces: List[str] = []
    for line in output.split("\n"):
        while ANALYSIS_PATTERN.search(line):
            line = ANALYSIS_PATTERN.sub(_first_candidate, line)
        pieces.append(line)
    return " ".join(" ".join(pieces).split())


class Lemmatizer:
    """Runs the external morphological analyzer once per document."""

    def __init__(
        self,
        analyzer_path: str | Path,
        flags: str = "",
        *,
        token_log: TokenLog | None = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.analyzer_path = Path(analyzer_path)
        self.flags = parse_flags(flags)
        self.token_log = token_log
        self.timeout = timeout

    @property
    def command(self) -> List[str]:
        return [str(self.analyzer_path), *self.flags, "-"]

    def filter_tokens(self, text: str, source: str) -> List[str]:
        valid: List[str] = []
        for token in text.split():
            length = len(token)
            if length > DANGER_TOKEN_LENGTH:
                self._log_token(LogLevel.DANGER, source, token)
                continue
            if length > LONG_TOKEN_LENGTH:
                self._log_token(LogLevel.LONG, source, token)
            valid.append(token)
        return valid

    def lemmatize(self, text: str, source: str = "") -> str:
        tokens = self.filter_tokens(text, source)
        if not tokens:
            return ""

        LOGGER.debug("Lemmatizing %d tokens from %s", len(tokens), source)
        try:
            completed = subprocess.run(
                self.command,
                input=" ".join(tokens).encode("utf-8"),
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise LemmatizerError(f"analyzer failed to run: {exc}") from exc

        stderr = completed.stderr.decode("utf-8", errors="replace").strip()
        if completed.returncode != 0:
            raise LemmatizerError(
                f"analyzer exited with status {completed.returncode}, stderr: {stderr}"
            )

        return reassemble_analysis(completed.stdout.decode("utf-8", errors="replace"))

    def _log_token(self, level: LogLevel, source: str, token: str) -> None:
        if self.token_log is not None:
            self.token_log.record(level, source, token)
