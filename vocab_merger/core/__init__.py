"""Core models, storage and merge logic.

WHY: The core package holds the stable heart of the merger: the
vocabulary dataclasses, the JSON storage collaborator, the merge
algorithm, and the per-screen merge session. Every surface (CLI, GUI,
HTTP API) consumes these and nothing else.

HOW: models.py defines the data structures, storage.py loads and saves
them, merger.py combines them, session.py wraps the merge workflow
(select sources → merge → save) for a single caller.

RULES:
- Models are the contract with the on-disk format, change with care
- merger.py performs no I/O beyond calling the injected loader
- Exceptions live in the module that raises them
"""
