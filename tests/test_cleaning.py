from __future__ import annotations

from pathlib import Path

import pytest

from glove_corpus.cleaning import (
    LONG_WORD_THRESHOLD,
    CleanerMode,
    CleaningOptions,
    TextCleaner,
    repair_encoding,
)
from glove_corpus.tokenlog import TokenLog


def test_filtered_characters_never_fuse_words() -> None:
    cleaner = TextCleaner(CleaningOptions(mode=CleanerMode.MODERN))

    assert cleaner.clean("hello@world") == "hello world"
    assert cleaner.clean("one,two;three") == "one two three"


def test_far_east_scripts_removed_in_letters_and_numbers_mode() -> None:
    cleaner = TextCleaner(CleaningOptions(mode=CleanerMode.UNICODE_LETTERS_AND_NUMBERS))

    assert cleaner.clean("abc北京123") == "abc 123"
    assert cleaner.clean("tokyo 東京タワー seoul 서울 привет") == "tokyo seoul привет"


@pytest.mark.parametrize("mode", list(CleanerMode))
def test_long_words_never_survive(mode: CleanerMode) -> None:
    cleaner = TextCleaner(CleaningOptions(mode=mode))
    long_word = "x" * LONG_WORD_THRESHOLD
    almost_long = "y" * (LONG_WORD_THRESHOLD - 1)

    cleaned = cleaner.clean(f"short {long_word} {almost_long} tail")

    assert cleaned == f"short {almost_long} tail"


def test_long_words_are_recorded_in_token_log(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "long_words.log"
    long_word = "z" * 35

    with TokenLog(log_path) as token_log:
        cleaner = TextCleaner(token_log=token_log)
        assert cleaner.clean(f"ok {long_word}", source="shard.gz") == "ok"

    assert log_path.read_text(encoding="utf-8") == f"[LONG] shard.gz: {long_word}\n"


def test_dates_are_preserved_as_tokens() -> None:
    cleaner = TextCleaner(CleaningOptions(preserve_dates=True))

    assert cleaner.clean("the date 2024-01-05 matters") == "the date 2024-01-05 matters"
    assert cleaner.clean("on 12/25/2024, or 05.01.2024!") == "on 12/25/2024 or 05.01.2024"


def test_dates_split_without_preservation() -> None:
    cleaner = TextCleaner()

    assert cleaner.clean("the date 2024-01-05 matters") == "the date 2024 01 05 matters"


def test_decimals_and_fractions_preserved() -> None:
    cleaner = TextCleaner(CleaningOptions(preserve_decimals=True, preserve_fractions=True))

    assert cleaner.clean("pi is 3,14. add 1/2 cup and/or salt") == "pi is 3.14 add 1/2 cup and or salt"


def test_preservation_ignored_without_digits() -> None:
    cleaner = TextCleaner(CleaningOptions(keep_numbers=False, preserve_dates=True))

    assert cleaner.clean("due 2024-01-05 sharp") == "due sharp"


@pytest.mark.parametrize(
    "sample",
    [
        "Hello, World!",
        "Привет, мир! Ёлка 2024 года",
        "visit https://example.com/page now",
        "tab\tseparated\x07bell",
        "ＦＵＬＬＷＩＤＴＨ ｔｅｘｔ",
        "x" * 40 + " end",
        "mixed 北京 text 123",
    ],
)
def test_clean_is_idempotent(sample: str) -> None:
    cleaner = TextCleaner()

    once = cleaner.clean(sample)

    assert cleaner.clean(once) == once


def test_invalid_bytes_become_single_space() -> None:
    assert repair_encoding(b"good\xff\xfe\xfdbad") == "good bad"
    assert TextCleaner().clean(b"good\xff\xfebad") == "good bad"


def test_nulls_controls_and_replacement_chars() -> None:
    cleaner = TextCleaner()

    assert cleaner.clean("nu\x00ll") == "null"
    assert cleaner.clean("bell\x07ring") == "bell ring"
    assert cleaner.clean("a\ufffdb") == "a b"


def test_normalization_and_case_folding() -> None:
    cleaner = TextCleaner()

    assert cleaner.clean("ＦＵＬＬＷＩＤＴＨ Text") == "fullwidth text"


def test_urls_and_emails_removed() -> None:
    cleaner = TextCleaner()

    cleaned = cleaner.clean("see https://example.com/page and mail me@example.org today")

    assert cleaned == "see and mail today"


def test_urls_kept_when_disabled() -> None:
    cleaner = TextCleaner(CleaningOptions(mode=CleanerMode.MODERN, strip_urls=False))

    assert cleaner.clean("https://example.com") == "https example com"


def test_numbers_and_roman_numerals_stripped() -> None:
    cleaner = TextCleaner(CleaningOptions(keep_numbers=False, keep_roman_numerals=False))

    assert cleaner.clean("room 101 is here") == "room is here"
    assert cleaner.clean("Chapter XIV begins") == "chapter begins"


def test_replace_yo() -> None:
    assert TextCleaner(CleaningOptions(replace_yo=True)).clean("Ёлка") == "елка"
    assert TextCleaner().clean("Ёлка") == "ёлка"


def test_modern_mode_keeps_latin_and_cyrillic_only() -> None:
    cleaner = TextCleaner(CleaningOptions(mode=CleanerMode.MODERN))

    assert cleaner.clean("Ελληνικά hello мир 42") == "hello мир 42"
    assert cleaner.clean("ѣсть") == "сть"


def test_old_slavonic_mode_keeps_historical_letters() -> None:
    cleaner = TextCleaner(CleaningOptions(mode=CleanerMode.OLD_SLAVONIC))

    assert cleaner.clean("ѣсть хлѣбъ") == "ѣсть хлѣбъ"


def test_unicode_letters_mode_drops_digits() -> None:
    cleaner = TextCleaner(CleaningOptions(mode=CleanerMode.UNICODE_LETTERS))

    assert cleaner.clean("abc 123 def") == "abc def"


def test_all_mode_keeps_every_script() -> None:
    cleaner = TextCleaner(CleaningOptions(mode=CleanerMode.ALL))

    assert cleaner.clean("北京 123 Ελλάδα!") == "北京 123 ελλάδα"


def test_mode_accepts_plain_string() -> None:
    cleaner = TextCleaner(CleaningOptions(mode="modern"))  # type: ignore[arg-type]

    assert cleaner.mode is CleanerMode.MODERN
