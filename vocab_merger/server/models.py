"""Pydantic request/response models for the merge HTTP API.

WHY: The FastAPI endpoints need typed schemas for request validation,
response serialization, and automatic OpenAPI documentation.

HOW: Each endpoint pair (request + response) has its own model. All
models include Field descriptions for the /docs UI.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Response models never expose the MergeSession or other internals
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
- Status strings are JobStatus values from server.jobs
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from vocab_merger.config import MAX_SOURCE_FILES


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class MergeRequest(BaseModel):
    """Source files for a new merge job.

    RULES:
    - sources are paths on the server's filesystem, merged in list order
    - At least one source; more than MAX_SOURCE_FILES is rejected with 400
    """

    sources: List[str] = Field(
        min_length=1,
        description="Vocabulary file paths, in merge order (at most {}).".format(
            MAX_SOURCE_FILES
        ),
    )


class SaveRequest(BaseModel):
    """Destination for a merged vocabulary."""

    path: str = Field(
        min_length=1,
        description="Destination file path. Its stem becomes the vocabulary name.",
    )


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class MergeProgress(BaseModel):
    """Progress of a running merge."""

    file: str = Field(default="", description="Name of the file being read.")
    word_count: int = Field(default=0, description="Distinct words merged so far.")


class JobResponse(BaseModel):
    """Merge job status response.

    RULES:
    - error is set when status is 'failed', or after a failed save
    - saved_path is only set when status is 'saved'
    """

    id: str = Field(description="Unique job identifier (UUID).")
    status: str = Field(description="Current job status.")
    sources: List[str] = Field(description="Source file paths, in merge order.")
    created_at: float = Field(description="Job creation timestamp (Unix epoch seconds).")
    progress: MergeProgress = Field(description="Current file and running word count.")
    error: Optional[str] = Field(default=None, description="Last error message, if any.")
    saved_path: Optional[str] = Field(
        default=None,
        description="Where the merged vocabulary was saved.",
    )

    model_config = {"json_schema_extra": {
        "examples": [
            {
                "id": "550e8400e29b41d4a716446655440000",
                "status": "merging",
                "sources": ["/data/friends-s01e01.json", "/data/cet4.json"],
                "created_at": 1739959200.0,
                "progress": {"file": "cet4", "word_count": 812},
                "error": None,
                "saved_path": None,
            }
        ]
    }}


class JobCreatedResponse(BaseModel):
    """Response returned when a new merge job is submitted."""

    id: str = Field(description="Unique job identifier (UUID) for polling status.")
    status: str = Field(description="Initial job status (always 'pending').")
    sources: List[str] = Field(description="Accepted source file paths.")


class VocabularyResponse(BaseModel):
    """A merged vocabulary in its on-disk JSON shape."""

    name: str = Field(description="Vocabulary name (empty until saved).")
    type: str = Field(description="Vocabulary type: DOCUMENT, SUBTITLES or MKV.")
    language: str = Field(description="Vocabulary language.")
    size: int = Field(description="Number of words.")
    relateVideoPath: str = Field(description="Linked video path (empty for merged vocabularies).")
    subtitlesTrackId: int = Field(description="Linked subtitle track id.")
    wordList: List[Dict[str, Any]] = Field(description="Words with their external captions.")


class ErrorResponse(BaseModel):
    """Standard error response body."""

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
