from __future__ import annotations

import gzip
from pathlib import Path
from typing import Iterable

import pytest


def write_shard(path: Path, lines: Iterable[bytes | str]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with gzip.open(path, "wb") as outfile:
        for line in lines:
            if isinstance(line, str):
                line = line.encode("utf-8")
            outfile.write(line + b"\n")
    return path


@pytest.fixture
def shard_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "shards"
    directory.mkdir()
    return directory


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GLOVE_INPUT_DIR", raising=False)
    monkeypatch.delenv("GLOVE_OUTPUT", raising=False)
