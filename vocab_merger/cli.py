"""Command-line interface for the Vocabulary Merger.

WHY: Users with many vocabulary files want to merge them from a terminal
or a script without opening the desktop dialog.

HOW: argparse takes the source files and the destination path. The merge
runs through a MergeSession on the main thread (nothing else needs the
terminal), printing "Reading <name>" before each file and the running
word count after it. Status goes to stderr so stdout stays clean.

RULES:
- Positional arguments: source vocabulary files, in merge order
- --output is required; its parent directory must exist
- More than MAX_SOURCE_FILES sources fails before any file is read
- Any load or save failure prints an error and exits with status 1
- Python 3.9 compatible: no match/case, no X | Y unions at runtime
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from vocab_merger import config
from vocab_merger.core.merger import TooManySourceFiles
from vocab_merger.core.session import MergeSession
from vocab_merger.core.storage import SaveFailure, SourceLoadFailure


def _status(msg: str) -> None:
    """Print a status message to stderr and flush."""
    print(msg, file=sys.stderr, flush=True)


def _fail(msg: str) -> None:
    print("Error: {}".format(msg), file=sys.stderr)
    sys.exit(1)


def _run(args: argparse.Namespace) -> None:
    output_path = Path(args.output).resolve()
    if not output_path.parent.is_dir():
        _fail("Output directory does not exist: {}".format(output_path.parent))

    session = MergeSession()
    try:
        session.add_sources(args.sources)
    except TooManySourceFiles as e:
        _fail(str(e))

    missing = [s for s in args.sources if not Path(s).is_file()]
    if missing:
        _fail("File not found: {}".format(missing[0]))

    def on_file_start(file_name: str) -> None:
        _status("Reading {}".format(file_name))

    def on_progress(file_name: str, word_count: int) -> None:
        _status("  Total: {}".format(word_count))

    try:
        merged = session.merge(on_file_start=on_file_start, on_progress=on_progress)
    except (SourceLoadFailure, ValueError) as e:
        _fail(str(e))

    word_count = merged.size
    try:
        saved = session.save(output_path)
    except SaveFailure as e:
        _fail(str(e))

    _status("")
    _status("Done! Merged {} vocabularies into {} words: {}".format(
        len(session.sources), word_count, saved
    ))


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="vocab-merger",
        description="Merge vocabulary files into one deduplicated vocabulary. "
                    "Captions from linked videos are kept as external captions "
                    "(at most {} per word).".format(config.MAX_EXTERNAL_CAPTIONS),
    )

    parser.add_argument(
        "sources",
        nargs="+",
        help="Vocabulary files to merge, in order (at most {}).".format(
            config.MAX_SOURCE_FILES
        ),
    )

    parser.add_argument(
        "-o", "--output",
        required=True,
        help="Path of the merged vocabulary file. Its name becomes the vocabulary name.",
    )

    parser.add_argument(
        "--log-level",
        default=config.LOG_LEVEL,
        help="Logging level (default: %(default)s).",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    config.setup_logging(args.log_level)
    _run(args)


if __name__ == "__main__":
    main()
