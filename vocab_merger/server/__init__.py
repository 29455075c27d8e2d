"""Background merge jobs and the HTTP API over them.

WHY: Merging up to a hundred vocabulary files takes long enough to freeze
an interactive caller. Jobs run merges on a bounded worker pool and
publish progress that the GUI and the HTTP API read.

HOW: jobs.py holds the thread-safe JobStore and the merge task, models.py
the pydantic request/response schemas, app.py the FastAPI routes.

RULES:
- Only the worker running a job mutates its MergeSession
- Callers read merge results after the job's future has resolved
"""
