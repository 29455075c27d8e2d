"""In-memory merge job store with a bounded worker pool and TTL cleanup.

WHY: Merges must not run on the thread that draws the UI or serves HTTP
requests. Each merge request becomes a tracked job that runs on a small
worker pool, reports progress after every source file, and keeps its
merged vocabulary until it has been saved.

HOW: Three components work together:
  JobStatus  : enum of valid job states
  Job        : dataclass holding the job's session, status and progress
  JobStore   : thread-safe dict-based store with create/update/get/list/delete,
               task submission to a ThreadPoolExecutor, and TTL cleanup

RULES:
- All store mutations are protected by threading.Lock
- Each job owns one MergeSession, driven by exactly one worker at a time
- The runner marks a job 'failed' on any exception from its task
- on_done callbacks run on the worker thread after the job settles;
  UI callers must marshal back to their own thread
- TTL-based expiry removes finished jobs (merged, saved, failed)
- Job IDs are UUID4 hex strings generated at creation time
"""

from __future__ import annotations

import enum
import logging
import threading
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from vocab_merger import config
from vocab_merger.core.session import MergeSession
from vocab_merger.core.storage import SaveFailure

logger = logging.getLogger(__name__)

# Default time-to-live for finished jobs (seconds)
DEFAULT_TTL_SECONDS = 3600


class JobStatus(str, enum.Enum):
    """Valid states for a merge job.

    RULES:
    - pending: job created, not yet picked up by a worker
    - merging: a worker is loading and folding the source files
    - merged: merged vocabulary ready, not yet saved
    - saved: merged vocabulary written to disk
    - failed: a source failed to load (or the task crashed)
    """

    PENDING = "pending"
    MERGING = "merging"
    MERGED = "merged"
    SAVED = "saved"
    FAILED = "failed"


FINISHED_STATUSES = (JobStatus.MERGED, JobStatus.SAVED, JobStatus.FAILED)


@dataclass
class Job:
    """Metadata and state for a single merge job.

    RULES:
    - id: UUID4 hex string, unique and immutable after creation
    - session: the MergeSession holding the sources and merged vocabulary
    - progress: {"file": current file name, "word_count": running total}
    - error: message of the last failure (merge or save), else None
    - completed_at: epoch timestamp when the job first finished, or None
    - saved_path: destination of the last successful save, or None
    """

    id: str
    status: JobStatus
    session: MergeSession
    created_at: float
    updated_at: float
    completed_at: Optional[float] = None
    error: Optional[str] = None
    progress: Dict[str, Any] = field(default_factory=dict)
    saved_path: Optional[Path] = None

    @property
    def sources(self) -> List[Path]:
        return self.session.sources

    @property
    def word_count(self) -> int:
        return int(self.progress.get("word_count", 0))


JobTask = Callable[[str, "JobStore"], None]
DoneCallback = Callable[[Job], None]


class JobStore:
    """Thread-safe in-memory store for merge jobs.

    WHY: HTTP handlers, the GUI and pool workers all touch job state. A
    single store with a lock gives them one consistent view, and owning the
    executor here keeps the pool bounded for the whole process.

    HOW: Jobs live in a dict keyed by job ID. submit() schedules
    run_in_background() on the executor and remembers the future so
    callers can wait() on it.

    RULES:
    - All public methods that mutate state acquire self._lock
    - create_job() raises ValueError when max_jobs is reached
    - get_job() returns None for missing job IDs (no exceptions)
    - update_job() only applies non-None arguments
    - Worker threads are created lazily and released by shutdown()
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_jobs: int = 100,
        max_workers: int = config.MERGE_WORKERS,
    ) -> None:
        self._jobs: Dict[str, Job] = {}
        self._futures: Dict[str, Future] = {}
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds
        self.max_jobs = max_jobs
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers),
            thread_name_prefix="vocab-merge",
        )

    def create_job(
        self,
        sources: Sequence[str | Path],
        session: Optional[MergeSession] = None,
    ) -> Job:
        """Create a PENDING job for the given source files.

        Raises:
            TooManySourceFiles: More than MAX_SOURCE_FILES sources.
            ValueError: The store already holds max_jobs jobs.
        """
        session = session or MergeSession()
        session.add_sources(sources)

        with self._lock:
            if len(self._jobs) >= self.max_jobs:
                raise ValueError(
                    "Maximum number of concurrent jobs ({}) reached".format(
                        self.max_jobs
                    )
                )

            job_id = uuid.uuid4().hex
            now = time.time()
            job = Job(
                id=job_id,
                status=JobStatus.PENDING,
                session=session,
                created_at=now,
                updated_at=now,
            )
            self._jobs[job_id] = job

        logger.info("Created merge job %s for %d source(s)", job_id, len(job.sources))
        return job

    def get_job(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def list_jobs(self) -> List[Job]:
        """Snapshot of all jobs, oldest first."""
        with self._lock:
            return sorted(self._jobs.values(), key=lambda j: j.created_at)

    def update_job(
        self,
        job_id: str,
        status: Optional[JobStatus] = None,
        error: Optional[str] = None,
        progress: Optional[Dict[str, Any]] = None,
        saved_path: Optional[Path] = None,
        clear_error: bool = False,
    ) -> Optional[Job]:
        """Update a job's mutable fields.

        RULES:
        - Returns the updated Job, or None if job_id not found
        - clear_error resets error to None (applied before error)
        - updated_at is always bumped
        - completed_at is set the first time the job reaches a finished status
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None

            now = time.time()

            if clear_error:
                job.error = None
            if status is not None:
                job.status = status
            if error is not None:
                job.error = error
            if progress is not None:
                job.progress = progress
            if saved_path is not None:
                job.saved_path = saved_path

            job.updated_at = now

            if job.status in FINISHED_STATUSES and job.completed_at is None:
                job.completed_at = now

            return job

    def delete_job(self, job_id: str) -> bool:
        """Forget a job. A job still running keeps running but is no longer tracked."""
        with self._lock:
            job = self._jobs.pop(job_id, None)
            self._futures.pop(job_id, None)

        if job is None:
            return False

        logger.info("Deleted job %s", job_id)
        return True

    def cleanup_expired(self) -> int:
        """Remove finished jobs whose completed_at is older than the TTL.

        Returns:
            The number of removed jobs.
        """
        now = time.time()
        expired_jobs: List[Job] = []

        with self._lock:
            for job_id, job in list(self._jobs.items()):
                if job.status not in FINISHED_STATUSES:
                    continue
                if job.completed_at is None:
                    continue
                if now - job.completed_at > self._ttl_seconds:
                    expired_jobs.append(self._jobs.pop(job_id))
                    self._futures.pop(job_id, None)

        for job in expired_jobs:
            logger.info("Expired job %s (finished %.0fs ago)", job.id, now - job.completed_at)

        return len(expired_jobs)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run_in_background(self, job_id: str, task: JobTask) -> None:
        """Run ``task(job_id, store)`` and mark the job failed if it raises.

        WHY: Worker exceptions would otherwise vanish inside a future. The
        job record is the only place callers look for errors.
        """
        try:
            task(job_id, self)
        except Exception as exc:
            logger.exception("Merge job %s failed", job_id)
            self.update_job(job_id, status=JobStatus.FAILED, error=str(exc))

    def submit(
        self,
        job_id: str,
        task: JobTask,
        on_done: Optional[DoneCallback] = None,
    ) -> Future:
        """Schedule a task for a job on the worker pool.

        on_done(job) is called on the worker thread once the task has
        settled, with the job's final state.
        """

        def _run() -> None:
            self.run_in_background(job_id, task)
            if on_done is not None:
                job = self.get_job(job_id)
                if job is not None:
                    on_done(job)

        future = self._executor.submit(_run)
        with self._lock:
            self._futures[job_id] = future
        return future

    def wait(self, job_id: str, timeout: Optional[float] = None) -> Optional[Job]:
        """Block until the job's submitted task has settled.

        Returns the job, or None if it is unknown. Raises
        concurrent.futures.TimeoutError if the timeout expires first.
        """
        with self._lock:
            future = self._futures.get(job_id)
        if future is not None:
            future.result(timeout=timeout)
        return self.get_job(job_id)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


def run_merge(job_id: str, store: JobStore) -> None:
    """Merge task: fold the job's sources and publish progress per file.

    RULES:
    - Status goes pending → merging → merged
    - progress is replaced after each file with the running word count
    - Exceptions propagate so run_in_background() marks the job failed
    """
    job = store.get_job(job_id)
    if job is None:
        return

    store.update_job(job_id, status=JobStatus.MERGING, progress={"file": "", "word_count": 0})

    def on_file_start(file_name: str) -> None:
        store.update_job(job_id, progress={"file": file_name, "word_count": job.word_count})

    def on_progress(file_name: str, word_count: int) -> None:
        store.update_job(job_id, progress={"file": file_name, "word_count": word_count})

    merged = job.session.merge(on_file_start=on_file_start, on_progress=on_progress)
    store.update_job(
        job_id,
        status=JobStatus.MERGED,
        progress={"file": "", "word_count": merged.size},
    )


def save_job(store: JobStore, job_id: str, path: str | Path) -> Job:
    """Save a merged job's vocabulary on the calling thread.

    RULES:
    - Only MERGED jobs can be saved (RuntimeError otherwise)
    - On SaveFailure the job stays MERGED with error set, and the
      exception propagates so the caller can report it and retry
    - On success the job becomes SAVED with saved_path set

    Raises:
        KeyError: Unknown job.
        RuntimeError: The job is not in the MERGED state.
        SaveFailure: The write failed.
    """
    job = store.get_job(job_id)
    if job is None:
        raise KeyError(job_id)
    if job.status != JobStatus.MERGED:
        raise RuntimeError(
            "Job is not ready to save (current status: {}).".format(job.status.value)
        )

    try:
        saved = job.session.save(path)
    except SaveFailure as exc:
        store.update_job(job_id, error=str(exc))
        raise

    store.update_job(job_id, status=JobStatus.SAVED, saved_path=saved, clear_error=True)
    return job
