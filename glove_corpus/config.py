from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from glove_corpus.cleaning import CleanerMode, CleaningOptions
from glove_corpus.errors import ConfigError
from glove_corpus.writer import DEFAULT_BUFFER_SIZE

LOGGER = logging.getLogger(__name__)

ENV_INPUT_DIR = "GLOVE_INPUT_DIR"
ENV_OUTPUT = "GLOVE_OUTPUT"

TOP_LEVEL_KEYS = {
    "input": "input_dir",
    "output": "output_path",
    "workers": "workers",
    "buffer_size": "buffer_size",
    "report_every": "report_every",
    "progress_interval": "progress_interval",
    "extension": "extension",
    "drop_corrupted_documents": "drop_corrupted_documents",
    "show_progress": "show_progress",
}
CLEANER_KEYS = {
    "mode": "mode",
    "keep_numbers": "keep_numbers",
    "keep_roman_numbers": "keep_roman_numerals",
    "keep_roman_numerals": "keep_roman_numerals",
    "replace_yo": "replace_yo",
    "normalize": "normalize",
    "strip_urls": "strip_urls",
    "fix_mojibake": "fix_mojibake",
    "preserve_dates": "preserve_dates",
    "preserve_fractions": "preserve_fractions",
    "preserve_decimals": "preserve_decimals",
}
LEMMATIZATION_KEYS = {"enable", "mystem_path", "mystem_flags", "timeout"}
LOGGER_KEYS = {"enabled", "long_words_log"}
SECTIONS = ("cleaner", "lemmatization", "logger")
BOOL_SETTINGS = {
    "enable",
    "enabled",
    "keep_numbers",
    "keep_roman_numerals",
    "replace_yo",
    "normalize",
    "strip_urls",
    "fix_mojibake",
    "preserve_dates",
    "preserve_fractions",
    "preserve_decimals",
    "drop_corrupted_documents",
    "show_progress",
}


def default_workers() -> int:
    return os.cpu_count() or 1


def env_path(var_name: str, default: str) -> Path:
    return Path(os.getenv(var_name, default))


@dataclass(frozen=True)
class LemmatizationConfig:
    enable: bool = False
    mystem_path: str = ""
    mystem_flags: str = "-ld"
    timeout: Optional[float] = None


@dataclass(frozen=True)
class TokenLogConfig:
    """Where long and dangerous tokens are recorded."""

    enabled: bool = False
    long_words_log: Path = Path("logs/long_words.log")


@dataclass(frozen=True)
class PipelineConfig:
    """Validated, read-only settings for one pipeline run."""

    input_dir: Path = Path("./data")
    output_path: Path = Path("./output.txt")
    workers: int = field(default_factory=default_workers)
    buffer_size: int = DEFAULT_BUFFER_SIZE
    report_every: int = 100
    progress_interval: float = 0.5
    extension: str = ".gz"
    drop_corrupted_documents: bool = False
    show_progress: bool = True
    cleaner: CleaningOptions = field(default_factory=CleaningOptions)
    lemmatization: LemmatizationConfig = field(default_factory=LemmatizationConfig)
    logger: TokenLogConfig = field(default_factory=TokenLogConfig)

    def __post_init__(self) -> None:
        if self.workers < 1:
            raise ConfigError(f"workers must be at least 1, got {self.workers}")
        if self.buffer_size < 1:
            raise ConfigError(f"buffer_size must be positive, got {self.buffer_size}")
        if self.report_every < 1:
            raise ConfigError(f"report_every must be at least 1, got {self.report_every}")
        if self.progress_interval <= 0:
            raise ConfigError(f"progress_interval must be positive, got {self.progress_interval}")
        if not self.extension:
            raise ConfigError("extension must not be empty")


def load_config_file(path: Path) -> Dict[str, Any]:
    """Read a YAML config file into a plain mapping."""

    if not path.exists():
        raise ConfigError(f"Config file does not exist: {path}")
    LOGGER.debug("Loading config from %s", path)
    try:
        with path.open("r", encoding="utf-8") as infile:
            loaded = yaml.safe_load(infile)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Error reading config file {path}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")
    return loaded


def settings_from_env() -> Dict[str, Any]:
    settings: Dict[str, Any] = {}
    if os.getenv(ENV_INPUT_DIR):
        settings["input"] = str(env_path(ENV_INPUT_DIR, "./data"))
    if os.getenv(ENV_OUTPUT):
        settings["output"] = str(env_path(ENV_OUTPUT, "./output.txt"))
    return settings


def merge_settings(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge ``overrides`` onto ``base``; nested sections are merged key by key."""

    merged: Dict[str, Any] = {key: value for key, value in base.items()}
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = merge_settings(current, value)
        else:
            merged[key] = value
    return merged


def _section(settings: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = settings.get(name) or {}
    if not isinstance(section, Mapping):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    return section


def _translate(section: Mapping[str, Any], keys: Mapping[str, str], name: str) -> Dict[str, Any]:
    translated: Dict[str, Any] = {}
    for key, value in section.items():
        if key not in keys:
            LOGGER.warning("Ignoring unknown %s setting '%s'", name, key)
            continue
        translated[keys[key]] = value
    return translated


def _require_bools(values: Mapping[str, Any], name: str) -> None:
    for key, value in values.items():
        if key in BOOL_SETTINGS and not isinstance(value, bool):
            raise ConfigError(f"{name} setting '{key}' must be true or false, got {value!r}")


def build_config(settings: Mapping[str, Any]) -> PipelineConfig:
    """Build a validated :class:`PipelineConfig` from a nested mapping.

    The mapping uses the config file layout: top-level ``input``, ``output``,
    ``workers`` and friends plus ``cleaner``, ``lemmatization`` and
    ``logger`` sections.
    """

    top = _translate(
        {key: value for key, value in settings.items() if key not in SECTIONS},
        TOP_LEVEL_KEYS,
        "top-level",
    )
    _require_bools(top, "top-level")

    cleaner_settings = _translate(_section(settings, "cleaner"), CLEANER_KEYS, "cleaner")
    _require_bools(cleaner_settings, "cleaner")
    if "mode" in cleaner_settings:
        try:
            cleaner_settings["mode"] = CleanerMode(cleaner_settings["mode"])
        except ValueError as exc:
            choices = ", ".join(mode.value for mode in CleanerMode)
            raise ConfigError(
                f"Unknown cleaner mode '{cleaner_settings['mode']}'. Expected one of: {choices}"
            ) from exc

    lemmatization = _translate(
        _section(settings, "lemmatization"),
        {key: key for key in LEMMATIZATION_KEYS},
        "lemmatization",
    )
    _require_bools(lemmatization, "lemmatization")
    if lemmatization.get("mystem_path") is None:
        lemmatization.pop("mystem_path", None)
    if lemmatization.get("timeout") is not None:
        lemmatization["timeout"] = float(lemmatization["timeout"])

    token_log = _translate(
        _section(settings, "logger"), {key: key for key in LOGGER_KEYS}, "logger"
    )
    _require_bools(token_log, "logger")
    if "long_words_log" in token_log:
        token_log["long_words_log"] = Path(token_log["long_words_log"])

    for key in ("input_dir", "output_path"):
        if key in top:
            top[key] = Path(top[key])
    try:
        for key in ("workers", "buffer_size", "report_every"):
            if key in top:
                top[key] = int(top[key])
        if "progress_interval" in top:
            top["progress_interval"] = float(top["progress_interval"])
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid numeric setting: {exc}") from exc

    return PipelineConfig(
        cleaner=CleaningOptions(**cleaner_settings),
        lemmatization=LemmatizationConfig(**lemmatization),
        logger=TokenLogConfig(**token_log),
        **top,
    )


def load_config(
    config_path: Path | None = None, overrides: Mapping[str, Any] | None = None
) -> PipelineConfig:
    """Defaults, then the config file, then environment, then ``overrides``."""

    settings: Dict[str, Any] = {}
    if config_path is not None:
        settings = load_config_file(config_path)
    settings = merge_settings(settings, settings_from_env())
    if overrides:
        settings = merge_settings(settings, overrides)
    return build_config(settings)
