"""
Grade notifications.

Once a submission is graded the learner can be sent their result. This
module builds the payload, checks it is internally consistent, and hands
it to a Notifier.
"""

import logging
import smtplib
from email.message import EmailMessage
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from exam_grader.config import Settings
from exam_grader.models import QuestionGrade

logger = logging.getLogger(__name__)

# (minimum percentage, letter, message)
_GRADE_BANDS: tuple[tuple[int, str, str], ...] = (
    (90, "A", "Outstanding performance!"),
    (80, "B", "Excellent work!"),
    (70, "C", "Good job!"),
    (60, "D", "Satisfactory performance."),
    (50, "E", "You passed!"),
)


class GradeNotification(BaseModel):
    """Everything a downstream email or messaging service needs."""

    model_config = ConfigDict(frozen=True)

    student_name: str = Field(default="")
    student_email: str = Field(..., min_length=3)
    exam_title: str = Field(default="")
    total_score: int = Field(..., ge=0)
    max_score: int = Field(..., ge=0)
    grade_details: dict[str, QuestionGrade] = Field(default_factory=dict)

    @model_validator(mode="after")
    def validate_consistency(self) -> "GradeNotification":
        """Totals must agree with the per-question details."""
        if self.total_score > self.max_score:
            raise ValueError(
                f"total_score ({self.total_score}) exceeds max_score ({self.max_score})"
            )
        detail_total = sum(g.score for g in self.grade_details.values())
        if detail_total != self.total_score:
            raise ValueError(
                f"grade_details sum to {detail_total}, not total_score ({self.total_score})"
            )
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def percentage(self) -> int:
        if self.max_score == 0:
            return 0
        return round(self.total_score / self.max_score * 100)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def letter_grade(self) -> str:
        for minimum, letter, _ in _GRADE_BANDS:
            if self.percentage >= minimum:
                return letter
        return "F"

    @property
    def grade_message(self) -> str:
        for minimum, _, message in _GRADE_BANDS:
            if self.percentage >= minimum:
                return message
        return "Keep working hard!"

    def render_text(self) -> str:
        """Plain-text email body."""
        greeting = f"Hi {self.student_name}," if self.student_name else "Hi,"
        lines = [
            greeting,
            "",
            f"Your exam '{self.exam_title}' has been graded.",
            "",
            f"Score: {self.total_score} / {self.max_score} ({self.percentage}%)",
            f"Grade: {self.letter_grade} - {self.grade_message}",
            "",
            "Question breakdown:",
        ]
        for number, grade in enumerate(self.grade_details.values(), start=1):
            lines.append(f"  Q{number}: {grade.score}/{grade.max_score} - {grade.feedback}")
        return "\n".join(lines)


class Notifier(Protocol):
    """Delivers a grade notification."""

    def send(self, notification: GradeNotification) -> None:
        ...


class LoggingNotifier:
    """Records the notification in the log instead of sending it."""

    def send(self, notification: GradeNotification) -> None:
        logger.info(
            "Grade ready for %s: %s %d/%d (%s)",
            notification.student_email,
            notification.exam_title,
            notification.total_score,
            notification.max_score,
            notification.letter_grade,
        )


class SmtpNotifier:
    """Sends the notification as a plain-text email."""

    def __init__(self, settings: Settings):
        if not settings.smtp_host or not settings.smtp_sender:
            raise ValueError("SMTP notifications need smtp_host and smtp_sender")
        self._settings = settings

    def build_message(self, notification: GradeNotification) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = (
            f"Exam Results: {notification.exam_title} - {notification.percentage}%"
        )
        message["From"] = self._settings.smtp_sender
        message["To"] = notification.student_email
        message.set_content(notification.render_text())
        return message

    def send(self, notification: GradeNotification) -> None:
        message = self.build_message(notification)
        settings = self._settings
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as server:  # type: ignore[arg-type]
            if settings.smtp_use_tls:
                server.starttls()
            if settings.smtp_username and settings.smtp_password:
                server.login(settings.smtp_username, settings.smtp_password)
            server.send_message(message)
        logger.info("Sent grade email to %s", notification.student_email)


def build_notifier(settings: Settings) -> Notifier | None:
    """Pick the notifier the settings ask for, or None when disabled."""
    if not settings.notifications_enabled:
        return None
    if settings.smtp_host:
        return SmtpNotifier(settings)
    return LoggingNotifier()
