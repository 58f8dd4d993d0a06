"""
Regrade sweeper.

Finds submissions that never finished grading (never started, crashed
mid-run, or failed) and runs the orchestrator on each one in turn. One bad
submission never stops the sweep; its reason is kept in the report.
"""

import logging
import time
from typing import Callable

from exam_grader.config import Settings, get_settings
from exam_grader.grading.engine import GradingOrchestrator
from exam_grader.models import GradingStatus, RegradeFailure, RegradeReport
from exam_grader.store.base import SubmissionStore

logger = logging.getLogger(__name__)

STUCK_STATUSES: tuple[GradingStatus, ...] = (
    GradingStatus.UNGRADED,
    GradingStatus.PROCESSING,
    GradingStatus.FAILED,
)


class RegradeSweeper:
    """Batch job that retries grading for submissions not cleanly graded."""

    def __init__(
        self,
        store: SubmissionStore,
        orchestrator: GradingOrchestrator,
        settings: Settings | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._settings = settings or get_settings()
        self._store = store
        self._orchestrator = orchestrator
        self._sleep = sleep

    def run(self, progress: Callable[[int, int, str], None] | None = None) -> RegradeReport:
        """
        Regrade every stuck submission, most recent first.

        Args:
            progress: Optional callback receiving (index, total, submission_id)
                before each submission is processed.

        Returns:
            RegradeReport with success/failed/skipped counts.
        """
        candidates = self._store.find_submissions(STUCK_STATUSES)
        total = len(candidates)
        if total == 0:
            logger.info("No stuck submissions found")
            return RegradeReport()

        logger.info("Found %d submissions to regrade", total)
        delay = self._settings.regrade_delay_seconds

        success = 0
        skipped = 0
        failures: list[RegradeFailure] = []

        for index, submission in enumerate(candidates, start=1):
            if progress is not None:
                progress(index, total, submission.id)

            outcome = self._orchestrator.grade_submission(submission.id, submission.exam_id)

            if outcome.skipped:
                skipped += 1
                logger.info("Skipped submission %s (%s)", submission.id, outcome.status.value)
            elif outcome.status == GradingStatus.GRADED:
                success += 1
                logger.info("Successfully regraded submission %s", submission.id)
            else:
                reason = outcome.error or "grading failed"
                failures.append(RegradeFailure(submission_id=submission.id, reason=reason))
                logger.warning("Failed to regrade submission %s: %s", submission.id, reason)

            # Throttle between submissions, not after the last one
            if delay > 0 and index < total:
                self._sleep(delay)

        report = RegradeReport(
            success=success,
            failed=len(failures),
            skipped=skipped,
            total=total,
            failures=tuple(failures),
        )
        logger.info(
            "Regrade finished: %d graded, %d failed, %d skipped of %d",
            report.success,
            report.failed,
            report.skipped,
            report.total,
        )
        return report
