"""
Question Import Module.

Loads question banks from:
- JSON (.json)
- Excel (.xlsx)
- CSV (.csv)
"""

from exam_grader.importers.base import QuestionImporter, QuestionImportError
from exam_grader.importers.factory import create_importer, get_supported_extensions, load_questions

__all__ = [
    "QuestionImportError",
    "QuestionImporter",
    "create_importer",
    "get_supported_extensions",
    "load_questions",
]
