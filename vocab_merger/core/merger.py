"""Merge several vocabularies into one deduplicated vocabulary.

WHY: Learners collect words from many documents and videos. Practising
them together needs a single word list in which every word appears once
and still links to the video lines it was found in.

HOW: Sources are processed in order, word by word. The first occurrence
of a word value is copied into the merged list with its inline captions
converted to external captions tagged with the source vocabulary's video,
track and name. Later occurrences only contribute captions: their
external captions if they have any, otherwise their converted inline
captions, each accepted while the merged word is below the cap.

RULES:
- Dedup key is the exact word value (case-sensitive)
- A merged word never carries inline captions
- A merged word keeps at most MAX_EXTERNAL_CAPTIONS external captions;
  captions beyond the cap are dropped in source order
- Source words are never mutated; the merged list holds copies
- More than MAX_SOURCE_FILES paths are rejected before anything is loaded
- merged.size equals len(merged.word_list) after every source
"""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from vocab_merger import config
from vocab_merger.core.models import (
    Caption,
    ExternalCaption,
    Vocabulary,
    VocabularyType,
    Word,
)
from vocab_merger.core.storage import load_vocabulary

logger = logging.getLogger(__name__)

FileStartCallback = Callable[[str], None]
ProgressCallback = Callable[[str, int], None]
Loader = Callable[[Path], Vocabulary]


class TooManySourceFiles(ValueError):
    """Raised when a merge is given more source files than allowed.

    RULES:
    - Raised before any source file is loaded
    - count is the number of files requested, limit the allowed maximum
    """

    def __init__(self, count: int, limit: int = config.MAX_SOURCE_FILES) -> None:
        self.count = count
        self.limit = limit
        super().__init__(
            "Cannot merge {} vocabularies; at most {} are allowed.".format(count, limit)
        )


def new_merged_vocabulary() -> Vocabulary:
    """Create the empty vocabulary a merge accumulates into."""
    return Vocabulary(
        name="",
        type=VocabularyType.DOCUMENT,
        language=config.DEFAULT_LANGUAGE,
        size=0,
        relate_video_path="",
        subtitles_track_id=0,
        word_list=[],
    )


def to_external_captions(
    vocabulary: Vocabulary,
    captions: Iterable[Caption],
) -> List[ExternalCaption]:
    """Tag inline captions with the provenance of their vocabulary."""
    return [
        ExternalCaption(
            relate_video_path=vocabulary.relate_video_path,
            subtitles_track_id=vocabulary.subtitles_track_id,
            subtitles_name=vocabulary.name,
            start=caption.start,
            end=caption.end,
            content=caption.content,
        )
        for caption in captions
    ]


def _append_capped(target: List[ExternalCaption], incoming: Iterable[ExternalCaption]) -> None:
    for caption in incoming:
        if len(target) >= config.MAX_EXTERNAL_CAPTIONS:
            return
        target.append(caption)


class _MergeState:
    """The merged vocabulary plus a value → word index over its word list."""

    def __init__(self, merged: Vocabulary) -> None:
        self.merged = merged
        self.index: Dict[str, Word] = {w.value: w for w in merged.word_list}

    def add(self, source: Vocabulary) -> None:
        for word in source.word_list:
            existing = self.index.get(word.value)
            if existing is None:
                merged_word = replace(word, captions=[], external_captions=[])
                _append_capped(merged_word.external_captions, word.external_captions)
                _append_capped(
                    merged_word.external_captions,
                    to_external_captions(source, word.captions),
                )
                self.merged.word_list.append(merged_word)
                self.index[merged_word.value] = merged_word
            elif word.external_captions:
                _append_capped(existing.external_captions, word.external_captions)
            elif word.captions:
                _append_capped(
                    existing.external_captions,
                    to_external_captions(source, word.captions),
                )
        self.merged.sync_size()


def merge_vocabularies(
    vocabularies: Iterable[Vocabulary],
    on_progress: Optional[ProgressCallback] = None,
    into: Optional[Vocabulary] = None,
) -> Vocabulary:
    """Merge already-loaded vocabularies in order.

    Args:
        vocabularies: Source vocabularies, processed in iteration order.
        on_progress: Called as on_progress(source_name, running_word_count)
            after each source.
        into: Vocabulary to accumulate into; a fresh empty one by default.

    Returns:
        The merged vocabulary.
    """
    state = _MergeState(into if into is not None else new_merged_vocabulary())
    for vocabulary in vocabularies:
        state.add(vocabulary)
        if on_progress is not None:
            on_progress(vocabulary.name, state.merged.size)
    state.merged.sync_size()
    return state.merged


def merge_files(
    paths: Sequence[str | Path],
    on_file_start: Optional[FileStartCallback] = None,
    on_progress: Optional[ProgressCallback] = None,
    loader: Loader = load_vocabulary,
) -> Vocabulary:
    """Load vocabulary files in order and merge them.

    WHY: This is the merge operation every surface runs: validate the
    selection, then load and fold one file at a time so progress can be
    shown after each file.

    HOW: Checks the file count, then for each path reports the file name,
    loads it through ``loader``, folds it into the merged vocabulary and
    reports the running word count.

    RULES:
    - len(paths) > MAX_SOURCE_FILES raises TooManySourceFiles; no callback fires
    - An empty selection raises ValueError
    - File names reported to callbacks are the path stems
    - The first load failure propagates (SourceLoadFailure); no merged
      vocabulary is returned

    Raises:
        TooManySourceFiles: More than MAX_SOURCE_FILES paths.
        ValueError: No paths.
        SourceLoadFailure: A source could not be loaded.
    """
    if len(paths) > config.MAX_SOURCE_FILES:
        raise TooManySourceFiles(len(paths))
    if not paths:
        raise ValueError("No vocabularies selected to merge.")

    state = _MergeState(new_merged_vocabulary())
    for raw_path in paths:
        path = Path(raw_path)
        file_name = path.stem
        if on_file_start is not None:
            on_file_start(file_name)

        source = loader(path)
        state.add(source)
        logger.debug("Merged %s, %d words so far", file_name, state.merged.size)

        if on_progress is not None:
            on_progress(file_name, state.merged.size)

    logger.info("Merged %d vocabularies into %d words", len(paths), state.merged.size)
    return state.merged
