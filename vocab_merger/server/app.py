"""FastAPI application exposing vocabulary merges as background jobs.

WHY: Companion tools on the same machine (a local web front end, scripts,
the practice app) need to start merges, watch their progress, and save
the result without blocking on the merge itself.

HOW: A single FastAPI app over a module-level JobStore. POST /merges
creates a job and submits the merge task to the store's worker pool;
the other endpoints poll, fetch, save and delete jobs. A lifespan task
expires finished jobs every five minutes.

RULES:
- Error responses use the ErrorResponse schema
- More than MAX_SOURCE_FILES sources → 400 before any job is created
- Saving a job that is not 'merged' → 409
- A failed save → 500; the job stays 'merged' so the save can be retried
- Sources and save paths are files on the server, so the API only listens
  on a loopback address; run_api() refuses any other host
- Python 3.9+ compatible (no match/case, no PEP 604 unions)
"""

from __future__ import annotations

import asyncio
import ipaddress
import logging
from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI, HTTPException
from fastapi.responses import Response

from vocab_merger import __version__, config
from vocab_merger.core.merger import TooManySourceFiles
from vocab_merger.core.storage import SaveFailure
from vocab_merger.server.jobs import Job, JobStatus, JobStore, run_merge, save_job
from vocab_merger.server.models import (
    ErrorResponse,
    HealthResponse,
    JobCreatedResponse,
    JobResponse,
    MergeProgress,
    MergeRequest,
    SaveRequest,
    VocabularyResponse,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App and store setup
# ---------------------------------------------------------------------------

job_store = JobStore()


async def _periodic_cleanup() -> None:
    """Run job cleanup every 5 minutes."""
    while True:
        await asyncio.sleep(300)
        job_store.cleanup_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start periodic cleanup on startup, cancel on shutdown."""
    task = asyncio.create_task(_periodic_cleanup())
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


app = FastAPI(
    lifespan=lifespan,
    title="Vocabulary Merger API",
    description=(
        "Merge vocabulary files into one deduplicated vocabulary. Submit the "
        "source paths, poll the job for progress, then save the result."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _job_to_response(job: Job) -> JobResponse:
    """Convert an internal Job dataclass to a JobResponse Pydantic model."""
    return JobResponse(
        id=job.id,
        status=job.status.value,
        sources=[str(p) for p in job.sources],
        created_at=job.created_at,
        progress=MergeProgress(
            file=job.progress.get("file", ""),
            word_count=job.progress.get("word_count", 0),
        ),
        error=job.error,
        saved_path=str(job.saved_path) if job.saved_path else None,
    )


def _get_job_or_404(job_id: str) -> Job:
    job = job_store.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found: {}".format(job_id))
    return job


def _start_merge(job_id: str) -> None:
    """Submit the merge task for a job to the worker pool."""
    job_store.submit(job_id, run_merge)


# ---------------------------------------------------------------------------
# Endpoints: Merges
# ---------------------------------------------------------------------------


@app.post(
    "/merges",
    response_model=JobCreatedResponse,
    status_code=201,
    tags=["merges"],
    summary="Start a merge job",
    description=(
        "Submit vocabulary file paths in merge order. Returns a job ID "
        "immediately; the merge runs in the background. Poll "
        "GET /merges/{id} for progress."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Too many source files"},
        429: {"model": ErrorResponse, "description": "Too many jobs"},
    },
)
async def create_merge(request: MergeRequest) -> JobCreatedResponse:
    try:
        job = job_store.create_job(request.sources)
    except TooManySourceFiles as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=429, detail=str(exc))

    _start_merge(job.id)

    return JobCreatedResponse(
        id=job.id,
        status=job.status.value,
        sources=[str(p) for p in job.sources],
    )


@app.get(
    "/merges",
    response_model=List[JobResponse],
    tags=["merges"],
    summary="List merge jobs",
    description="All tracked merge jobs, oldest first.",
)
async def list_merges() -> List[JobResponse]:
    return [_job_to_response(job) for job in job_store.list_jobs()]


@app.get(
    "/merges/{job_id}",
    response_model=JobResponse,
    tags=["merges"],
    summary="Get merge job status",
    description="Current status, file being read, and running word count.",
    responses={
        404: {"model": ErrorResponse, "description": "Job not found"},
    },
)
async def get_merge(job_id: str) -> JobResponse:
    return _job_to_response(_get_job_or_404(job_id))


@app.get(
    "/merges/{job_id}/vocabulary",
    response_model=VocabularyResponse,
    tags=["merges"],
    summary="Get the merged vocabulary",
    description="The merged vocabulary of a job that has finished merging and is not yet saved.",
    responses={
        404: {"model": ErrorResponse, "description": "Job not found"},
        409: {"model": ErrorResponse, "description": "Job not merged"},
    },
)
async def get_merged_vocabulary(job_id: str) -> VocabularyResponse:
    job = _get_job_or_404(job_id)
    merged = job.session.merged
    if job.status != JobStatus.MERGED or merged is None:
        raise HTTPException(
            status_code=409,
            detail="Job has no merged vocabulary (current status: {}).".format(
                job.status.value
            ),
        )
    return VocabularyResponse(**merged.to_dict())


@app.post(
    "/merges/{job_id}/save",
    response_model=JobResponse,
    tags=["merges"],
    summary="Save the merged vocabulary",
    description=(
        "Write the merged vocabulary to a file on the server. The file stem "
        "becomes the vocabulary name. A failed save can be retried."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Job not found"},
        409: {"model": ErrorResponse, "description": "Job not merged"},
        500: {"model": ErrorResponse, "description": "Save failed"},
    },
)
def save_merge(job_id: str, request: SaveRequest) -> JobResponse:
    _get_job_or_404(job_id)
    try:
        job = save_job(job_store, job_id, request.path)
    except KeyError:
        raise HTTPException(status_code=404, detail="Job not found: {}".format(job_id))
    except RuntimeError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except SaveFailure as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    return _job_to_response(job)


@app.delete(
    "/merges/{job_id}",
    status_code=204,
    tags=["merges"],
    summary="Delete a merge job",
    description="Forget a merge job and its merged vocabulary.",
    responses={
        404: {"model": ErrorResponse, "description": "Job not found"},
    },
)
async def delete_merge(job_id: str) -> Response:
    if not job_store.delete_job(job_id):
        raise HTTPException(status_code=404, detail="Job not found: {}".format(job_id))
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Endpoints: Health
# ---------------------------------------------------------------------------


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


def require_loopback(host: str) -> None:
    """Raise ValueError unless host is localhost or a loopback address."""
    if host == "localhost":
        return
    try:
        loopback = ipaddress.ip_address(host).is_loopback
    except ValueError:
        loopback = False
    if not loopback:
        raise ValueError(
            "Refusing to serve on {}: the API reads and writes server files "
            "and only listens on a loopback address.".format(host)
        )


def run_api():
    """Entry point for the vocab-merger-api console script."""
    import uvicorn

    config.setup_logging()
    require_loopback(config.API_HOST)
    uvicorn.run(app, host=config.API_HOST, port=config.API_PORT)
