"""Shared test fixtures for the vocab_merger test suite.

WHY: Most test modules need small vocabularies with known words and
captions, either in memory or written to disk as the JSON files the
merger loads.

HOW: Plain helper functions build Word/Vocabulary objects; the
write_vocabulary fixture serializes one into tmp_path. An autouse fixture
points the data directory (recent list) at a temporary directory so no
test touches the real home directory.

RULES:
- Vocabulary files are written with Vocabulary.to_dict(), the same shape
  the desktop app saves
- Caption times are subtitle timestamp strings
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

import pytest

from vocab_merger import config
from vocab_merger.core.models import (
    Caption,
    ExternalCaption,
    Vocabulary,
    VocabularyType,
    Word,
)


def make_captions(count: int, prefix: str = "line") -> List[Caption]:
    return [
        Caption(
            start="00:00:{:02d}.000".format(i),
            end="00:00:{:02d}.500".format(i),
            content="{} {}".format(prefix, i),
        )
        for i in range(count)
    ]


def make_external_captions(count: int, video: str = "ext.mp4", track: int = 0) -> List[ExternalCaption]:
    return [
        ExternalCaption(
            relate_video_path=video,
            subtitles_track_id=track,
            subtitles_name="external",
            start="00:01:{:02d}.000".format(i),
            end="00:01:{:02d}.500".format(i),
            content="external {}".format(i),
        )
        for i in range(count)
    ]


def make_vocabulary(
    name: str,
    words: List[Word],
    video: str = "",
    track: int = 0,
    vocab_type: Optional[VocabularyType] = None,
) -> Vocabulary:
    if vocab_type is None:
        vocab_type = VocabularyType.SUBTITLES if video else VocabularyType.DOCUMENT
    return Vocabulary(
        name=name,
        type=vocab_type,
        language="english",
        size=len(words),
        relate_video_path=video,
        subtitles_track_id=track,
        word_list=words,
    )


def make_plain_vocabulary(name: str, values: List[str]) -> Vocabulary:
    return make_vocabulary(name, [Word(value=v) for v in values])


@pytest.fixture(autouse=True)
def _isolated_data_dir(tmp_path, monkeypatch):
    """Keep the recent list out of the real home directory."""
    data_dir = tmp_path / "data"
    monkeypatch.setattr(config, "DATA_DIR", data_dir)
    return data_dir


@pytest.fixture
def write_vocabulary(tmp_path):
    """Write a Vocabulary to ``tmp_path/<file_name>`` and return the path."""

    def _write(vocabulary: Vocabulary, file_name: Optional[str] = None) -> Path:
        path = tmp_path / (file_name or "{}.json".format(vocabulary.name))
        path.write_text(
            json.dumps(vocabulary.to_dict(), ensure_ascii=False), encoding="utf-8"
        )
        return path

    return _write


@pytest.fixture
def scenario_paths(write_vocabulary):
    """Source A: "run" with 2 inline captions from a.mp4 track 0.
    Source B: "run" with 1 inline caption from b.mp4 track 1.
    """
    a = make_vocabulary(
        "A",
        [Word(value="run", captions=make_captions(2, "a")), Word(value="walk")],
        video="a.mp4",
        track=0,
    )
    b = make_vocabulary(
        "B",
        [Word(value="run", captions=make_captions(1, "b")), Word(value="jump")],
        video="b.mp4",
        track=1,
    )
    return [write_vocabulary(a), write_vocabulary(b)]
