"""
Storage Module.

Data store interface for exams and submissions with two implementations:
- InMemoryStore: in-process, lock guarded
- JsonFileStore: JSON document shared between processes via file locks
"""

from exam_grader.store.base import SubmissionStore, can_claim
from exam_grader.store.json_store import JsonFileStore
from exam_grader.store.memory import InMemoryStore

__all__ = [
    "InMemoryStore",
    "JsonFileStore",
    "SubmissionStore",
    "can_claim",
]
