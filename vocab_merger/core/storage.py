"""Loading, saving and the recent-vocabularies list.

WHY: The merge depends on an all-or-nothing storage contract: a source
either loads completely into a valid Vocabulary or fails with a clear
error, and a save either replaces the destination completely or leaves
it as it was.

HOW: load_vocabulary() reads UTF-8 JSON, validates it with jsonschema
against the packaged vocabulary schema, then builds the dataclasses.
save_vocabulary() writes to a temp file next to the destination and
renames it into place. The recent list is a small JSON file in the data
directory.

RULES:
- Every load problem (missing file, bad JSON, schema or model error)
  raises SourceLoadFailure chained from the original exception
- Every save problem raises SaveFailure; the Vocabulary is not modified
  beyond syncing its size
- Recent-list failures are logged, never raised from record_recent()
"""

from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import jsonschema

from vocab_merger import config
from vocab_merger.core.models import Vocabulary

logger = logging.getLogger(__name__)

_SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schemas" / "vocabulary.schema.json"


class VocabularyError(Exception):
    """Base class for vocabulary storage failures.

    RULES:
    - path: the file the operation was working on
    - reason: short human-readable cause
    """

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(self._describe())

    def _describe(self) -> str:
        return "{}: {}".format(self.path, self.reason)


class SourceLoadFailure(VocabularyError):
    """Raised when a vocabulary file cannot be read or parsed."""

    def _describe(self) -> str:
        return "Failed to load vocabulary {}: {}".format(self.path.name, self.reason)


class SaveFailure(VocabularyError):
    """Raised when a vocabulary cannot be written to its destination."""

    def _describe(self) -> str:
        return "Failed to save vocabulary to {}: {}".format(self.path, self.reason)


def _load_schema() -> Dict[str, Any]:
    """Load the vocabulary JSON schema from the package.

    Cached at module level after first call to avoid repeated I/O.
    """
    with open(_SCHEMA_PATH, encoding="utf-8") as f:
        return json.load(f)


_CACHED_SCHEMA: Optional[Dict[str, Any]] = None


def _get_schema() -> Dict[str, Any]:
    global _CACHED_SCHEMA
    if _CACHED_SCHEMA is None:
        _CACHED_SCHEMA = _load_schema()
    return _CACHED_SCHEMA


def load_vocabulary(path: str | Path) -> Vocabulary:
    """Load and validate a vocabulary file.

    Args:
        path: Path to a vocabulary JSON file.

    Returns:
        The parsed Vocabulary.

    Raises:
        SourceLoadFailure: If the file is missing, unreadable, not JSON,
            or does not match the vocabulary schema.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceLoadFailure(path, str(exc)) from exc
    except json.JSONDecodeError as exc:
        raise SourceLoadFailure(path, "invalid JSON ({})".format(exc.msg)) from exc

    try:
        jsonschema.validate(instance=data, schema=_get_schema())
    except jsonschema.ValidationError as exc:
        location = "/".join(str(p) for p in exc.absolute_path) or "document"
        raise SourceLoadFailure(path, "{} at {}".format(exc.message, location)) from exc

    try:
        vocabulary = Vocabulary.from_dict(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise SourceLoadFailure(path, "malformed vocabulary ({})".format(exc)) from exc

    logger.debug("Loaded %s (%d words)", path, len(vocabulary.word_list))
    return vocabulary


def save_vocabulary(vocabulary: Vocabulary, path: str | Path) -> Path:
    """Write a vocabulary to disk, replacing the destination atomically.

    WHY: A half-written vocabulary cannot be loaded again. Writing to a
    temp file in the same directory and renaming keeps the old file
    intact until the new one is complete.

    RULES:
    - size is synced to len(word_list) before writing
    - Output is UTF-8 JSON, non-ASCII kept as-is
    - The temp file is created with open(), so the saved file gets the
      usual umask permissions
    - The temp file is removed if writing fails

    Returns:
        The destination path.

    Raises:
        SaveFailure: If the directory is missing or the write fails.
    """
    path = Path(path)
    vocabulary.sync_size()
    content = json.dumps(vocabulary.to_dict(), ensure_ascii=False, indent=2)

    tmp_path = path.with_name(".{}.tmp".format(path.name))
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_path, path)
    except OSError as exc:
        if tmp_path.exists():
            tmp_path.unlink()
        raise SaveFailure(path, str(exc)) from exc

    logger.info("Saved vocabulary %r (%d words) to %s", vocabulary.name, vocabulary.size, path)
    return path


# ---------------------------------------------------------------------------
# Recent vocabularies
# ---------------------------------------------------------------------------


def load_recent(recent_path: Optional[Path] = None) -> List[Dict[str, Any]]:
    """Return the recent list, most recent first.

    A missing or unreadable list is treated as empty.
    """
    recent_path = recent_path or config.recent_list_path()
    if not recent_path.is_file():
        return []
    try:
        entries = json.loads(recent_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.warning("Ignoring unreadable recent list: %s", recent_path)
        return []
    if not isinstance(entries, list):
        return []
    return [e for e in entries if isinstance(e, dict) and "path" in e]


def record_recent(
    name: str,
    path: str | Path,
    recent_path: Optional[Path] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Put a saved vocabulary at the top of the recent list.

    RULES:
    - Entries are {"time", "name", "path"}; path is absolute
    - An existing entry for the same path is moved, not duplicated
    - The list is capped at RECENT_LIST_LIMIT entries
    - Write failures are logged and the in-memory list still returned
    """
    recent_path = recent_path or config.recent_list_path()
    limit = config.RECENT_LIST_LIMIT if limit is None else limit
    resolved = str(Path(path).resolve())

    entries = [e for e in load_recent(recent_path) if e.get("path") != resolved]
    entries.insert(0, {"time": time.time(), "name": name, "path": resolved})
    entries = entries[:limit]

    try:
        recent_path.parent.mkdir(parents=True, exist_ok=True)
        recent_path.write_text(
            json.dumps(entries, ensure_ascii=False, indent=2), encoding="utf-8"
        )
    except OSError:
        logger.warning("Failed to update recent list: %s", recent_path)
    return entries
