"""
JSON file store.

Keeps exams and submissions in one JSON document:

    {"exams": {id: {...}}, "submissions": {id: {...}}}

Every write is a read-modify-write under an exclusive portalocker lock, so
separate processes (a CLI regrade and a web trigger, say) can share the
file without losing updates or double-claiming a submission.
"""

import json
import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Generator, Iterable, TypeVar

import portalocker
from pydantic import ValidationError

from exam_grader.errors import RecordNotFoundError, StoreError
from exam_grader.models import Exam, GradingStatus, Submission
from exam_grader.store.base import SubmissionStore, can_claim

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _empty_document() -> dict[str, Any]:
    return {"exams": {}, "submissions": {}}


class JsonFileStore(SubmissionStore):
    """File-backed store safe for use from several processes."""

    def __init__(self, path: Path | str):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Locked file access
    # ------------------------------------------------------------------

    @contextmanager
    def _locked(self, lock_type: int) -> Generator[Any, None, None]:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            if not self._path.exists():
                self._path.write_text(json.dumps(_empty_document(), indent=2), encoding="utf-8")
            f = open(self._path, "r+", encoding="utf-8")
        except OSError as e:
            raise StoreError(f"Cannot open store {self._path}: {e}", cause=e) from e

        with f:
            portalocker.lock(f, lock_type)
            try:
                yield f
            finally:
                portalocker.unlock(f)

    @staticmethod
    def _load(f: Any, path: Path) -> dict[str, Any]:
        f.seek(0)
        content = f.read()
        if not content.strip():
            return _empty_document()
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise StoreError(f"Store file {path} is not valid JSON: {e}", cause=e) from e
        data.setdefault("exams", {})
        data.setdefault("submissions", {})
        return data

    def _read(self, reader: Callable[[dict[str, Any]], T]) -> T:
        with self._locked(portalocker.LOCK_SH) as f:
            return reader(self._load(f, self._path))

    def _modify(self, modifier: Callable[[dict[str, Any]], T]) -> T:
        """
        Read the document, let ``modifier`` change it in place, write it back.

        The lock is held for the whole sequence. Nothing is written if the
        modifier raises.
        """
        with self._locked(portalocker.LOCK_EX) as f:
            data = self._load(f, self._path)
            result = modifier(data)
            try:
                f.seek(0)
                f.truncate()
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.flush()
            except OSError as e:
                raise StoreError(f"Failed to write store {self._path}: {e}", cause=e) from e
            return result

    # ------------------------------------------------------------------
    # Record conversion
    # ------------------------------------------------------------------

    def _to_exam(self, raw: dict[str, Any]) -> Exam:
        try:
            return Exam.model_validate(raw)
        except ValidationError as e:
            raise StoreError(f"Invalid exam record {raw.get('id')!r}: {e}", cause=e) from e

    def _to_submission(self, raw: dict[str, Any]) -> Submission:
        try:
            return Submission.model_validate(raw)
        except ValidationError as e:
            raise StoreError(f"Invalid submission record {raw.get('id')!r}: {e}", cause=e) from e

    @staticmethod
    def _dump(model: Exam | Submission) -> dict[str, Any]:
        return model.model_dump(mode="json", exclude={"total_marks", "is_graded"})

    # ------------------------------------------------------------------
    # SubmissionStore
    # ------------------------------------------------------------------

    def save_exam(self, exam: Exam) -> None:
        def modifier(data: dict[str, Any]) -> None:
            data["exams"][exam.id] = self._dump(exam)

        self._modify(modifier)
        logger.info("Saved exam %s with %d questions", exam.id, len(exam.questions))

    def get_exam(self, exam_id: str) -> Exam:
        raw = self._read(lambda data: data["exams"].get(exam_id))
        if raw is None:
            raise RecordNotFoundError("Exam", exam_id)
        return self._to_exam(raw)

    def add_submission(self, submission: Submission) -> None:
        def modifier(data: dict[str, Any]) -> None:
            if submission.id in data["submissions"]:
                raise StoreError(f"Submission already exists: {submission.id}")
            data["submissions"][submission.id] = self._dump(submission)

        self._modify(modifier)

    def get_submission(self, submission_id: str) -> Submission:
        raw = self._read(lambda data: data["submissions"].get(submission_id))
        if raw is None:
            raise RecordNotFoundError("Submission", submission_id)
        return self._to_submission(raw)

    def find_submissions(self, statuses: Iterable[GradingStatus]) -> list[Submission]:
        wanted = {GradingStatus(s).value for s in statuses}
        raws = self._read(
            lambda data: [
                raw
                for raw in data["submissions"].values()
                if raw.get("grading_status", GradingStatus.UNGRADED.value) in wanted
            ]
        )
        submissions = [self._to_submission(raw) for raw in raws]
        return sorted(submissions, key=lambda s: s.submitted_at, reverse=True)

    def claim_submission(
        self, submission_id: str, now: datetime, stale_after: timedelta
    ) -> Submission | None:
        def modifier(data: dict[str, Any]) -> Submission | None:
            raw = data["submissions"].get(submission_id)
            if raw is None:
                raise RecordNotFoundError("Submission", submission_id)
            submission = self._to_submission(raw)
            if not can_claim(submission, now, stale_after):
                return None
            claimed = self._apply_claim(submission, now)
            data["submissions"][submission_id] = self._dump(claimed)
            return claimed

        claimed = self._modify(modifier)
        if claimed is not None:
            logger.debug("Claimed submission %s", submission_id)
        return claimed

    def update_submission(
        self, submission_id: str, *, claimed_at: datetime | None = None, **fields: Any
    ) -> Submission:
        self._check_fields(fields)

        def modifier(data: dict[str, Any]) -> Submission:
            raw = data["submissions"].get(submission_id)
            if raw is None:
                raise RecordNotFoundError("Submission", submission_id)
            submission = self._to_submission(raw)
            self._check_claim(submission, claimed_at)
            updated = self._apply_update(submission, fields)
            data["submissions"][submission_id] = self._dump(updated)
            return updated

        return self._modify(modifier)
