from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Callable, FrozenSet, Iterable, List, Optional, Sequence, Tuple, Union

import ftfy

from glove_corpus.tokenlog import TokenLog
from glove_corpus.types import LogLevel

LOGGER = logging.getLogger(__name__)

LONG_WORD_THRESHOLD = 30
SPACE = ord(" ")

URL_PATTERN = re.compile(
    r"https?://\S+|www\.\S+|[\w.+-]+@[\w-]+(?:\.[\w-]+)+",
    re.IGNORECASE,
)
SURROGATE_RUN_PATTERN = re.compile("[\ud800-\udfff]+")
CONTROL_PATTERN = re.compile(r"[\ufffd\x01-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
DIGIT_RUN_PATTERN = re.compile(r"\d+")
ROMAN_NUMERAL_PATTERN = re.compile(
    r"\b(?=[mdclxvi]+\b)m{0,4}(?:cm|cd|d?c{0,3})(?:xc|xl|l?x{0,3})(?:ix|iv|v?i{0,3})\b"
)

DATE_PATTERNS = (
    r"\d{4}-\d{1,2}-\d{1,2}",  # ISO
    r"\d{1,2}/\d{1,2}/\d{4}",  # US
    r"\d{1,2}\.\d{1,2}\.\d{4}",  # EU
)
FRACTION_PATTERN = r"\d+/\d+"
DECIMAL_PATTERN = r"\d+[.,]\d+"

Range = Tuple[int, int]

LATIN_RANGES: Sequence[Range] = (
    (0x0041, 0x005A),
    (0x0061, 0x007A),
    (0x00C0, 0x024F),
    (0x1E00, 0x1EFF),
)
MODERN_CYRILLIC_RANGES: Sequence[Range] = (
    (0x0400, 0x045F),
    (0x048A, 0x052F),
)
COMBINING_DIACRITIC_RANGES: Sequence[Range] = ((0x0300, 0x036F),)
CYRILLIC_COMBINING_RANGES: Sequence[Range] = ((0x0483, 0x0489),)
OLD_SLAVONIC_CHARS: FrozenSet[str] = frozenset(
    "ѣѢѵѴіІѳѲѫѪѭѬѧѦѩѨѯѮѱѰѡѠѿѾҌҍꙋꙊꙗꙖꙙꙘꙜꙛꙝꙞꙟꙠꙡꙢꙣꙤꙥꙦꙧꙨꙩꙪꙫꙬꙭꙮ"
    "ѻѺѹѸѷѶѥѤџЏѽѼ"
)
# Logographic and syllabic scripts: Hangul, CJK, Kana, Bopomofo.
FAR_EAST_RANGES: Sequence[Range] = (
    (0x1100, 0x11FF),
    (0x2E80, 0x2FDF),
    (0x2FF0, 0x2FFF),
    (0x3000, 0x303F),
    (0x3040, 0x309F),
    (0x30A0, 0x30FF),
    (0x3100, 0x312F),
    (0x3130, 0x318F),
    (0x3190, 0x31FF),
    (0x3200, 0x33FF),
    (0x3400, 0x4DBF),
    (0x4E00, 0x9FFF),
    (0xA960, 0xA97F),
    (0xAC00, 0xD7FF),
    (0xF900, 0xFAFF),
    (0xFF66, 0xFFDC),
    (0x1AFF0, 0x1B16F),
    (0x20000, 0x323AF),
)


class CleanerMode(str, Enum):
    MODERN = "modern"
    OLD_SLAVONIC = "old_slavonic"
    ALL = "all"
    UNICODE_LETTERS = "unicode_letters"
    UNICODE_LETTERS_AND_NUMBERS = "unicode_letters_and_numbers"


@dataclass(frozen=True)
class CleaningOptions:
    """Configuration for text cleaning."""

    mode: CleanerMode = CleanerMode.UNICODE_LETTERS_AND_NUMBERS
    keep_numbers: bool = True
    keep_roman_numerals: bool = True
    replace_yo: bool = False
    normalize: bool = True
    strip_urls: bool = True
    fix_mojibake: bool = False
    preserve_dates: bool = False
    preserve_fractions: bool = False
    preserve_decimals: bool = False

    @property
    def preserves_numbers(self) -> bool:
        return self.preserve_dates or self.preserve_fractions or self.preserve_decimals


def _in_ranges(codepoint: int, ranges: Iterable[Range]) -> bool:
    return any(low <= codepoint <= high for low, high in ranges)


def _is_letter(char: str) -> bool:
    return unicodedata.category(char).startswith("L")


def _is_digit(char: str) -> bool:
    return unicodedata.category(char) == "Nd"


def _is_mark(char: str) -> bool:
    return unicodedata.category(char).startswith("M")


def _is_modern_letter(char: str) -> bool:
    codepoint = ord(char)
    return _is_letter(char) and (
        _in_ranges(codepoint, LATIN_RANGES) or _in_ranges(codepoint, MODERN_CYRILLIC_RANGES)
    )


def _is_far_east(char: str) -> bool:
    return _in_ranges(ord(char), FAR_EAST_RANGES)


def build_allowed_predicate(
    mode: CleanerMode, extra_chars: FrozenSet[str] = frozenset()
) -> Callable[[str], bool]:
    """Return the character filter for ``mode``.

    Whitespace and ``extra_chars`` always pass. Every other character passes
    only when the mode admits it.
    """

    if mode is CleanerMode.MODERN:

        def admits(char: str) -> bool:
            return (
                _is_modern_letter(char)
                or _is_digit(char)
                or _in_ranges(ord(char), COMBINING_DIACRITIC_RANGES)
            )

    elif mode is CleanerMode.OLD_SLAVONIC:

        def admits(char: str) -> bool:
            return (
                _is_modern_letter(char)
                or char in OLD_SLAVONIC_CHARS
                or _is_digit(char)
                or _in_ranges(ord(char), COMBINING_DIACRITIC_RANGES)
                or _in_ranges(ord(char), CYRILLIC_COMBINING_RANGES)
            )

    elif mode is CleanerMode.ALL:

        def admits(char: str) -> bool:
            return _is_letter(char) or _is_digit(char) or _is_mark(char)

    elif mode is CleanerMode.UNICODE_LETTERS:

        def admits(char: str) -> bool:
            return _is_letter(char) or _is_mark(char)

    elif mode is CleanerMode.UNICODE_LETTERS_AND_NUMBERS:

        def admits(char: str) -> bool:
            if _is_far_east(char):
                return False
            return _is_letter(char) or _is_digit(char) or _is_mark(char)

    else:  # pragma: no cover - exhaustive over CleanerMode
        raise ValueError(f"Unknown cleaner mode '{mode}'")

    def allowed(char: str) -> bool:
        return char.isspace() or char in extra_chars or admits(char)

    return allowed


class _FilterTable(dict):
    """``str.translate`` table that classifies code points on first sight."""

    def __init__(self, allowed: Callable[[str], bool]) -> None:
        super().__init__()
        self._allowed = allowed

    def __missing__(self, codepoint: int) -> int:
        value = codepoint if self._allowed(chr(codepoint)) else SPACE
        self[codepoint] = value
        return value


def repair_encoding(raw: Union[str, bytes]) -> str:
    """Decode ``raw`` as UTF-8, turning each run of undecodable bytes into one space."""

    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="surrogateescape")
    return SURROGATE_RUN_PATTERN.sub(" ", raw)


def _build_preservation(options: CleaningOptions) -> tuple[Optional[re.Pattern[str]], FrozenSet[str]]:
    alternatives: List[str] = []
    punctuation = set()
    if options.preserve_dates:
        alternatives.extend(DATE_PATTERNS)
        punctuation.update("-/.")
    if options.preserve_fractions:
        alternatives.append(FRACTION_PATTERN)
        punctuation.add("/")
    if options.preserve_decimals:
        alternatives.append(DECIMAL_PATTERN)
        punctuation.update(".,")
    if not alternatives:
        return None, frozenset()
    pattern = re.compile(r"(?<!\d)(?:" + "|".join(alternatives) + r")(?!\d)")
    return pattern, frozenset(punctuation)


class TextCleaner:
    """Multi-stage normalizer applied to every line of every shard.

    The character filter for the configured mode is built once here and
    reused for every call; instances are safe to share between threads.
    """

    def __init__(self, options: CleaningOptions | None = None, token_log: TokenLog | None = None) -> None:
        self.options = options or CleaningOptions()
        self.mode = CleanerMode(self.options.mode)
        self.token_log = token_log

        keeps_digits = self.options.keep_numbers and self.mode is not CleanerMode.UNICODE_LETTERS
        if self.options.preserves_numbers and not keeps_digits:
            LOGGER.warning("Number preservation has no effect when digits are removed; ignoring it")
            self._preserved, punctuation = None, frozenset()
        else:
            self._preserved, punctuation = _build_preservation(self.options)

        self._filter = _FilterTable(build_allowed_predicate(self.mode, punctuation))
        self._punctuation_to_space = {ord(char): SPACE for char in punctuation}

    def clean(self, raw: Union[str, bytes], source: str = "") -> str:
        options = self.options

        text = repair_encoding(raw)
        if options.fix_mojibake:
            text = ftfy.fix_encoding(text)
        text = text.replace("\x00", "")
        if options.normalize:
            text = unicodedata.normalize("NFKC", text)
        text = CONTROL_PATTERN.sub(" ", text)
        if options.strip_urls:
            text = URL_PATTERN.sub(" ", text)

        text = text.lower()
        if options.replace_yo:
            text = text.replace("ё", "е")

        if not options.keep_numbers:
            text = DIGIT_RUN_PATTERN.sub(" ", text)
        if not options.keep_roman_numerals:
            text = ROMAN_NUMERAL_PATTERN.sub(" ", text)

        text = text.translate(self._filter)

        if self._preserved is not None:
            text = self._isolate_numbers(text, self._preserved)

        return self._drop_long_words(text, source)

    def _isolate_numbers(self, text: str, preserved: re.Pattern[str]) -> str:
        pieces: List[str] = []
        last = 0
        for match in preserved.finditer(text):
            pieces.append(text[last : match.start()].translate(self._punctuation_to_space))
            pieces.append(" " + match.group(0).replace(",", ".") + " ")
            last = match.end()
        pieces.append(text[last:].translate(self._punctuation_to_space))
        return "".join(pieces)

    def _drop_long_words(self, text: str, source: str) -> str:
        kept: List[str] = []
        for word in text.split():
            if len(word) < LONG_WORD_THRESHOLD:
                kept.append(word)
            elif self.token_log is not None:
                self.token_log.record(LogLevel.LONG, source, word)
        return " ".join(kept)
