"""Configuration constants, environment overrides, and logging setup.

WHY: Centralizes the merge caps, data locations and service defaults so
they are easy to find and override. The caps are part of the vocabulary
format contract; everything else is deployment detail.

HOW: python-dotenv loads the .env file on import. Constants are defined
as module-level values. Overridable defaults read os.getenv().

RULES:
- MAX_SOURCE_FILES and MAX_EXTERNAL_CAPTIONS are fixed, never read from env
- The data directory defaults to ~/.vocab_merger (VOCAB_MERGER_HOME)
- setup_logging() is called by entry points only, never on import
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()

# ---------------------------------------------------------------------------
# Merge caps
# ---------------------------------------------------------------------------

MAX_SOURCE_FILES = 100
"""Maximum number of vocabulary files accepted by a single merge."""

MAX_EXTERNAL_CAPTIONS = 3
"""Maximum number of external captions kept per merged word."""

VOCABULARY_EXTENSIONS: set[str] = {".json"}
"""File extensions offered by the file choosers (lowercase, with dot)."""

# ---------------------------------------------------------------------------
# Environment defaults
# ---------------------------------------------------------------------------

DEFAULT_LANGUAGE = os.getenv("VOCAB_MERGER_LANGUAGE", "english")
DATA_DIR = Path(os.getenv("VOCAB_MERGER_HOME", str(Path.home() / ".vocab_merger")))
MERGE_WORKERS = int(os.getenv("VOCAB_MERGER_WORKERS", "2"))
RECENT_LIST_LIMIT = int(os.getenv("RECENT_LIST_LIMIT", "15"))
LOG_LEVEL = os.getenv("VOCAB_MERGER_LOG_LEVEL", "INFO").upper()
API_HOST = os.getenv("VOCAB_MERGER_API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("VOCAB_MERGER_API_PORT", "8000"))

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def recent_list_path() -> Path:
    """Location of the recently saved vocabularies list."""
    return DATA_DIR / "recent.json"


def setup_logging(level: str | None = None) -> None:
    """Configure root logging for an entry point.

    WHY: Library modules only create named loggers; the CLI, GUI and API
    decide where records go and at which level.

    HOW: logging.basicConfig with force=True so repeated calls (tests,
    re-launched GUIs) replace the previous handler instead of stacking.

    RULES:
    - level defaults to VOCAB_MERGER_LOG_LEVEL (INFO)
    - Unknown level names fall back to INFO
    """
    name = (level or LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format=_LOG_FORMAT,
        force=True,
    )
