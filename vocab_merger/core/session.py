"""Merge workflow controller: select sources, merge, save.

WHY: The CLI, the desktop dialog and the HTTP API all walk the same
workflow, and each needs the same rules about duplicate selections, the
source cap, and keeping a merged result around when a save fails.
Holding that state in one controller per screen (or job) replaces a
process-wide application state object.

HOW: MergeSession keeps the ordered source selection and the merged
vocabulary. merge() delegates to merger.merge_files(); save() names the
vocabulary after the destination file, writes it and records it in the
recent list.

RULES:
- Adding an already selected path is a no-op
- A selection above MAX_SOURCE_FILES is rejected and left unchanged
- Changing the selection discards the previous merge result
- A failed merge leaves no merged vocabulary
- A failed save keeps the merged vocabulary so save() can be retried
- A successful save drops the merged vocabulary from memory
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from vocab_merger import config
from vocab_merger.core.merger import (
    FileStartCallback,
    Loader,
    ProgressCallback,
    TooManySourceFiles,
    merge_files,
)
from vocab_merger.core.models import Vocabulary
from vocab_merger.core.storage import load_vocabulary, record_recent, save_vocabulary

logger = logging.getLogger(__name__)


class MergeSession:
    """State of one merge workflow.

    Not thread-safe: one thread drives a session at a time. The job store
    hands a session to a single worker and reads it back only after the
    worker has finished.
    """

    def __init__(
        self,
        loader: Loader = load_vocabulary,
        recent_path: Optional[Path] = None,
    ) -> None:
        self._sources: List[Path] = []
        self._loader = loader
        self._recent_path = recent_path
        self.merged: Optional[Vocabulary] = None
        self.saved_path: Optional[Path] = None

    @property
    def sources(self) -> List[Path]:
        return list(self._sources)

    @property
    def can_merge(self) -> bool:
        return bool(self._sources)

    @property
    def word_count(self) -> int:
        return self.merged.size if self.merged is not None else 0

    def add_sources(self, paths: Iterable[str | Path]) -> List[Path]:
        """Append new paths to the selection.

        Returns:
            The paths actually added, in selection order.

        Raises:
            TooManySourceFiles: The selection would exceed MAX_SOURCE_FILES.
        """
        added: List[Path] = []
        for raw in paths:
            path = Path(raw).resolve()
            if path not in self._sources and path not in added:
                added.append(path)

        total = len(self._sources) + len(added)
        if total > config.MAX_SOURCE_FILES:
            raise TooManySourceFiles(total)

        if added:
            self._sources.extend(added)
            self.merged = None
        return added

    def remove_source(self, path: str | Path) -> bool:
        """Remove a path from the selection; False if it was not selected."""
        resolved = Path(path).resolve()
        if resolved not in self._sources:
            return False
        self._sources.remove(resolved)
        self.merged = None
        return True

    def clear(self) -> None:
        self._sources = []
        self.merged = None

    def merge(
        self,
        on_file_start: Optional[FileStartCallback] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Vocabulary:
        """Merge the selected sources and keep the result.

        Raises:
            TooManySourceFiles, ValueError, SourceLoadFailure: see merge_files().
        """
        self.merged = None
        self.saved_path = None
        merged = merge_files(
            self._sources,
            on_file_start=on_file_start,
            on_progress=on_progress,
            loader=self._loader,
        )
        self.merged = merged
        return merged

    def save(self, path: str | Path) -> Path:
        """Save the merged vocabulary under ``path``.

        The vocabulary is named after the destination file stem.

        Raises:
            RuntimeError: Nothing has been merged yet.
            SaveFailure: The write failed; the merged vocabulary is kept.
        """
        if self.merged is None:
            raise RuntimeError("Nothing to save: merge the vocabularies first.")

        path = Path(path)
        self.merged.name = path.stem
        saved = save_vocabulary(self.merged, path)
        record_recent(self.merged.name, saved, recent_path=self._recent_path)

        self.saved_path = saved
        self.merged = None
        return saved
