"""Tkinter desktop dialog for merging vocabularies.

WHY: Learners pick vocabulary files in a file chooser, not on a command
line. The dialog lists the chosen files, merges them without freezing the
window, shows which file is being read and the running word count, and
saves the result wherever the user chooses.

HOW: MergeVocabularyApp keeps one MergeSession for the selection. Merge
creates a job in a JobStore and submits run_merge to its worker pool.
The main thread polls the job's progress with .after() and receives the
completion through a queue fed by the job's on_done callback.

RULES:
- tkinter widgets are ONLY touched from the main thread
- The done queue is the only thing worker threads write to
- Merge is enabled with at least two selected vocabularies
- Errors show inline in red; the dialog stays open for correction
- A failed save keeps the merged vocabulary so Save can be retried
"""

from __future__ import annotations

import logging
import queue
import tkinter as tk
from pathlib import Path
from tkinter import filedialog, messagebox, ttk
from typing import Optional

from vocab_merger import config
from vocab_merger.core.merger import TooManySourceFiles
from vocab_merger.core.session import MergeSession
from vocab_merger.core.storage import SaveFailure
from vocab_merger.server.jobs import Job, JobStatus, JobStore, run_merge, save_job

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_WINDOW_TITLE = "Merge Vocabularies"
_WINDOW_MIN_WIDTH = 600
_WINDOW_MIN_HEIGHT = 600
_PAD = 8
_POLL_MS = 100

_FILE_TYPES = [("Vocabulary", " ".join("*" + ext for ext in sorted(config.VOCABULARY_EXTENSIONS)))]


class MergeVocabularyApp:
    """Main window of the merge dialog.

    States: IDLE (choosing files), MERGING (progress shown, buttons
    disabled), MERGED (Save enabled).
    """

    def __init__(self, root: tk.Tk, store: Optional[JobStore] = None) -> None:
        self._root = root
        self._root.title(_WINDOW_TITLE)
        self._root.minsize(_WINDOW_MIN_WIDTH, _WINDOW_MIN_HEIGHT)

        self._store = store or JobStore(max_workers=1)
        self._done_queue: queue.Queue = queue.Queue()
        self._session = MergeSession()
        self._job_id: Optional[str] = None

        self._build_ui()
        self._set_idle_state()

    # ------------------------------------------------------------------
    # UI Construction
    # ------------------------------------------------------------------

    def _build_ui(self) -> None:
        main = ttk.Frame(self._root, padding=_PAD)
        main.pack(fill=tk.BOTH, expand=True)

        list_frame = ttk.LabelFrame(main, text="Vocabularies", padding=_PAD)
        list_frame.pack(fill=tk.BOTH, expand=True, pady=(0, _PAD))

        self._file_list = tk.Listbox(list_frame, selectmode=tk.EXTENDED, height=15)
        scrollbar = ttk.Scrollbar(
            list_frame, orient=tk.VERTICAL, command=self._file_list.yview
        )
        self._file_list.configure(yscrollcommand=scrollbar.set)
        scrollbar.pack(side=tk.RIGHT, fill=tk.Y)
        self._file_list.pack(fill=tk.BOTH, expand=True)

        self._message_label = ttk.Label(main, text="", foreground="red")
        self._message_label.pack(fill=tk.X)

        self._reading_label = ttk.Label(main, text="", anchor=tk.CENTER)
        self._reading_label.pack(fill=tk.X)

        self._total_label = ttk.Label(main, text="", anchor=tk.CENTER)
        self._total_label.pack(fill=tk.X, pady=(0, _PAD))

        self._progress = ttk.Progressbar(main, mode="indeterminate")
        self._progress.pack(fill=tk.X, pady=(0, _PAD))

        btn_frame = ttk.Frame(main)
        btn_frame.pack(fill=tk.X)

        self._add_btn = ttk.Button(btn_frame, text="Add vocabulary...", command=self._add_files)
        self._add_btn.pack(side=tk.LEFT)

        self._remove_btn = ttk.Button(btn_frame, text="Remove", command=self._remove_selected)
        self._remove_btn.pack(side=tk.LEFT, padx=(_PAD, 0))

        self._save_btn = ttk.Button(btn_frame, text="Save...", command=self._save)
        self._save_btn.pack(side=tk.RIGHT)

        self._merge_btn = ttk.Button(btn_frame, text="Merge", command=self._start_merge)
        self._merge_btn.pack(side=tk.RIGHT, padx=(0, _PAD))

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def _add_files(self) -> None:
        names = filedialog.askopenfilenames(
            title="Choose vocabularies", filetypes=_FILE_TYPES
        )
        if not names:
            return
        try:
            added = self._session.add_sources(names)
        except TooManySourceFiles:
            self._show_message(
                "No more than {} vocabularies can be merged.".format(config.MAX_SOURCE_FILES)
            )
            return
        self._show_message("")
        for path in added:
            self._file_list.insert(tk.END, path.stem)
        if added:
            self._forget_job()
        self._set_idle_state()

    def _remove_selected(self) -> None:
        selected = self._file_list.curselection()
        if not selected:
            return
        sources = self._session.sources
        for index in reversed(selected):
            self._session.remove_source(sources[index])
            self._file_list.delete(index)
        self._forget_job()
        self._set_idle_state()

    # ------------------------------------------------------------------
    # Merge
    # ------------------------------------------------------------------

    def _start_merge(self) -> None:
        self._forget_job()
        try:
            job = self._store.create_job(self._session.sources, session=self._session)
        except ValueError as e:
            self._show_message(str(e))
            return

        self._job_id = job.id
        self._show_message("")
        self._set_merging_state()
        self._store.submit(job.id, run_merge, on_done=self._done_queue.put)
        self._poll()

    def _poll(self) -> None:
        """Refresh progress from the job and handle completion."""
        job = self._store.get_job(self._job_id) if self._job_id else None
        if job is not None:
            self._show_progress(job)

        try:
            finished: Job = self._done_queue.get_nowait()
        except queue.Empty:
            self._root.after(_POLL_MS, self._poll)
            return

        if finished.id != self._job_id:
            self._root.after(_POLL_MS, self._poll)
            return

        if finished.status == JobStatus.MERGED:
            self._reading_label.configure(text="")
            self._set_merged_state()
        else:
            self._show_message(finished.error or "Merge failed.")
            self._forget_job()
            self._set_idle_state()

    def _show_progress(self, job: Job) -> None:
        file_name = job.progress.get("file", "")
        if job.status == JobStatus.MERGING and file_name:
            self._reading_label.configure(text="Reading {}".format(file_name))
        if job.word_count > 0:
            self._total_label.configure(text="Total: {}".format(job.word_count))

    def _forget_job(self) -> None:
        if self._job_id is not None:
            self._store.delete_job(self._job_id)
            self._job_id = None
        self._total_label.configure(text="")
        self._reading_label.configure(text="")

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def _save(self) -> None:
        if self._job_id is None:
            return
        name = filedialog.asksaveasfilename(
            title="Save vocabulary",
            defaultextension=".json",
            filetypes=_FILE_TYPES,
            initialfile="merged.json",
        )
        if not name:
            return

        try:
            job = save_job(self._store, self._job_id, Path(name))
        except SaveFailure as e:
            self._show_message(str(e))
            return

        messagebox.showinfo(
            _WINDOW_TITLE,
            "Saved {} words to {}".format(job.word_count, job.saved_path),
        )
        self._reset()

    def close(self) -> None:
        """Release the worker pool; a running merge is abandoned."""
        self._store.shutdown(wait=False)

    def _reset(self) -> None:
        self._forget_job()
        self._session.clear()
        self._file_list.delete(0, tk.END)
        self._show_message("")
        self._set_idle_state()

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def _show_message(self, text: str) -> None:
        self._message_label.configure(text=text)

    def _set_idle_state(self) -> None:
        self._progress.stop()
        self._add_btn.configure(state=tk.NORMAL)
        self._remove_btn.configure(state=tk.NORMAL)
        merge_state = tk.NORMAL if len(self._session.sources) > 1 else tk.DISABLED
        self._merge_btn.configure(state=merge_state)
        self._save_btn.configure(state=tk.DISABLED)

    def _set_merging_state(self) -> None:
        self._add_btn.configure(state=tk.DISABLED)
        self._remove_btn.configure(state=tk.DISABLED)
        self._merge_btn.configure(state=tk.DISABLED)
        self._save_btn.configure(state=tk.DISABLED)
        self._progress.start(10)

    def _set_merged_state(self) -> None:
        self._progress.stop()
        self._add_btn.configure(state=tk.NORMAL)
        self._remove_btn.configure(state=tk.NORMAL)
        self._merge_btn.configure(state=tk.DISABLED)
        self._save_btn.configure(state=tk.NORMAL)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    """Launch the merge dialog. Blocks until the window is closed."""
    config.setup_logging()
    root = tk.Tk()
    app = MergeVocabularyApp(root)
    try:
        root.mainloop()
    finally:
        app.close()


if __name__ == "__main__":
    main()
