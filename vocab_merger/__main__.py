"""``python -m vocab_merger``: merge from the terminal, or open the dialog.

``python -m vocab_merger a.json b.json -o merged.json`` runs the CLI;
``python -m vocab_merger --gui`` opens the desktop merge dialog.
"""

from __future__ import annotations

import sys
from typing import List, Optional


def main(argv: Optional[List[str]] = None) -> None:
    args = sys.argv[1:] if argv is None else list(argv)
    if "--gui" in args:
        from vocab_merger.gui import main as gui_main

        gui_main()
        return

    from vocab_merger.cli import main as cli_main

    cli_main(args)


if __name__ == "__main__":
    main()
