"""Vocabulary Merger: combine video-linked vocabulary files into one.

WHY: Learners build vocabularies from documents, subtitle files and MKV
tracks. Practising across several of them means merging the files into a
single word list without losing the captions that make each word playable
against its source video.

HOW: Three layers: core (models, JSON storage, merge algorithm, merge
session controller), jobs (a bounded worker pool that runs merges off the
interactive thread), and surfaces (CLI, tkinter dialog, HTTP API). Each
layer is independently testable.

RULES:
- All surfaces drive merges through core.session.MergeSession
- Word values are unique in a merged vocabulary (exact, case-sensitive)
- A merged word carries at most 3 external captions and no inline captions
- The on-disk JSON format keeps the original camelCase keys
"""

__version__ = "0.1.0"
