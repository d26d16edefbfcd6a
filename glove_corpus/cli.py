from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict

from .cleaning import CleanerMode
from .config import ENV_INPUT_DIR, ENV_OUTPUT, PipelineConfig, load_config
from .errors import CorpusError
from .pipeline import run_pipeline

logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Build a cleaned, newline-delimited training corpus from compressed text shards",
        argument_default=argparse.SUPPRESS,
    )
    parser.add_argument("-c", "--config", type=Path, help="Path to a YAML config file")
    parser.add_argument(
        "--input",
        dest="input",
        help=f"Input directory with .gz shards (default: ./data or {ENV_INPUT_DIR})",
    )
    parser.add_argument(
        "--output",
        dest="output",
        help=f"Output corpus path (default: ./output.txt or {ENV_OUTPUT})",
    )
    parser.add_argument("--workers", type=int, help="Number of worker threads (default: CPU count)")
    parser.add_argument("--buffer-size", dest="buffer_size", type=int, help="Writer buffer size in bytes")
    parser.add_argument(
        "--report-every",
        dest="report_every",
        type=int,
        help="Send a progress update every N files per worker",
    )
    parser.add_argument("--extension", help="Shard file extension to look for (default: .gz)")
    parser.add_argument(
        "--drop-corrupted",
        dest="drop_corrupted_documents",
        action="store_true",
        help="Drop whole documents that still look corrupted after cleaning",
    )
    parser.add_argument(
        "--no-progress",
        dest="show_progress",
        action="store_false",
        help="Disable the progress bar",
    )

    cleaner = parser.add_argument_group("cleaner")
    cleaner.add_argument(
        "--cleaner-mode",
        dest="cleaner.mode",
        choices=[mode.value for mode in CleanerMode],
        help="Which characters survive cleaning (default: unicode_letters_and_numbers)",
    )
    cleaner.add_argument(
        "--strip-numbers",
        dest="cleaner.keep_numbers",
        action="store_false",
        help="Remove digit runs",
    )
    cleaner.add_argument(
        "--strip-roman-numerals",
        dest="cleaner.keep_roman_numerals",
        action="store_false",
        help="Remove Roman numerals written as whole words",
    )
    cleaner.add_argument(
        "--replace-yo",
        dest="cleaner.replace_yo",
        action="store_true",
        help="Replace the letter ё with е",
    )
    cleaner.add_argument(
        "--no-normalize",
        dest="cleaner.normalize",
        action="store_false",
        help="Skip NFKC Unicode normalization",
    )
    cleaner.add_argument(
        "--keep-urls",
        dest="cleaner.strip_urls",
        action="store_false",
        help="Keep URLs and e-mail addresses instead of removing them",
    )
    cleaner.add_argument(
        "--fix-mojibake",
        dest="cleaner.fix_mojibake",
        action="store_true",
        help="Repair mis-decoded text with ftfy before cleaning",
    )
    cleaner.add_argument(
        "--preserve-dates",
        dest="cleaner.preserve_dates",
        action="store_true",
        help="Keep ISO, US and EU dates as single tokens",
    )
    cleaner.add_argument(
        "--preserve-fractions",
        dest="cleaner.preserve_fractions",
        action="store_true",
        help="Keep N/M fractions as single tokens",
    )
    cleaner.add_argument(
        "--preserve-decimals",
        dest="cleaner.preserve_decimals",
        action="store_true",
        help="Keep decimals as single tokens, normalising the comma to a dot",
    )

    lemmatization = parser.add_argument_group("lemmatization")
    lemmatization.add_argument(
        "--lemmatize",
        dest="lemmatization.enable",
        action="store_true",
        help="Enable lemmatization with mystem",
    )
    lemmatization.add_argument(
        "--mystem-path",
        dest="lemmatization.mystem_path",
        help="Path to the mystem binary (default: look it up in PATH)",
    )
    lemmatization.add_argument(
        "--mystem-flags",
        dest="lemmatization.mystem_flags",
        help="Mystem flags (default: -ld)",
    )
    lemmatization.add_argument(
        "--mystem-timeout",
        dest="lemmatization.timeout",
        type=float,
        help="Seconds to wait for mystem on one document",
    )

    token_log = parser.add_argument_group("token log")
    token_log.add_argument(
        "--long-words-log",
        dest="logger.long_words_log",
        help="Record elided long words and dangerous tokens in this file",
    )

    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def overrides_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    """Turn the explicitly given flags into a nested settings mapping."""

    overrides: Dict[str, Any] = {}
    for key, value in vars(args).items():
        if key in {"config", "verbose"}:
            continue
        if "." in key:
            section, name = key.split(".", 1)
            overrides.setdefault(section, {})[name] = value
        else:
            overrides[key] = value

    if "long_words_log" in overrides.get("logger", {}):
        overrides["logger"]["enabled"] = True
    return overrides


def log_config(config: PipelineConfig) -> None:
    LOGGER.info("=== Starting corpus build ===")
    LOGGER.info("Input directory: %s", config.input_dir)
    LOGGER.info("Output file: %s", config.output_path)
    LOGGER.info("Number of workers: %d", config.workers)
    LOGGER.info("Cleaner mode: %s", config.cleaner.mode.value)
    LOGGER.info("Unicode normalization: %s", config.cleaner.normalize)
    LOGGER.info("Lemmatization enabled: %s", config.lemmatization.enable)
    if config.lemmatization.enable:
        LOGGER.info("Mystem path: %s", config.lemmatization.mystem_path or "(PATH lookup)")
        LOGGER.info("Mystem flags: %s", config.lemmatization.mystem_flags)
    LOGGER.info("Token log: %s", config.logger.long_words_log if config.logger.enabled else "disabled")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if getattr(args, "verbose", False):
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = load_config(getattr(args, "config", None), overrides_from_args(args))
        log_config(config)
        run_pipeline(config)
    except CorpusError as exc:
        LOGGER.error("%s", exc)
        return 1
    return 0


def cli() -> None:
    sys.exit(main(sys.argv[1:]))


if __name__ == "__main__":
    cli()
