"""
Tests for grade notifications.
"""

from unittest.mock import MagicMock, patch

import pytest
from pydantic import ValidationError

from exam_grader.config import Settings
from exam_grader.models import QuestionGrade
from exam_grader.notify import (
    GradeNotification,
    LoggingNotifier,
    SmtpNotifier,
    build_notifier,
)


@pytest.fixture
def notification() -> GradeNotification:
    return GradeNotification(
        student_name="Ada Lovelace",
        student_email="ada@example.com",
        exam_title="Programming Basics",
        total_score=18,
        max_score=20,
        grade_details={
            "q1": QuestionGrade(score=10, max_score=10, feedback="Correct answer!"),
            "q2": QuestionGrade(score=8, max_score=10, feedback="Good coding attempt with proper structure"),
        },
    )


class TestGradeNotification:
    """Tests for the notification payload."""

    def test_percentage_and_letter(self, notification: GradeNotification) -> None:
        assert notification.percentage == 90
        assert notification.letter_grade == "A"
        assert notification.grade_message == "Outstanding performance!"

    @pytest.mark.parametrize(
        "total,letter",
        [(0, "F"), (9, "F"), (10, "E"), (12, "D"), (14, "C"), (16, "B")],
    )
    def test_letter_bands(self, total: int, letter: str) -> None:
        details = {"q": QuestionGrade(score=total, max_score=20)} if total else {}

        notification = GradeNotification(
            student_email="a@b.c", total_score=total, max_score=20, grade_details=details
        )

        assert notification.letter_grade == letter

    def test_total_above_max_rejected(self) -> None:
        with pytest.raises(ValidationError, match="exceeds max_score"):
            GradeNotification(student_email="a@b.c", total_score=30, max_score=20)

    def test_details_must_sum_to_total(self) -> None:
        with pytest.raises(ValidationError, match="grade_details sum to 10"):
            GradeNotification(
                student_email="a@b.c",
                total_score=15,
                max_score=20,
                grade_details={"q": QuestionGrade(score=10, max_score=20)},
            )

    def test_render_text(self, notification: GradeNotification) -> None:
        text = notification.render_text()

        assert text.startswith("Hi Ada Lovelace,")
        assert "Score: 18 / 20 (90%)" in text
        assert "Q2: 8/10 - Good coding attempt with proper structure" in text


class TestNotifiers:
    """Tests for notifier selection and delivery."""

    def test_disabled(self) -> None:
        assert build_notifier(Settings(notifications_enabled=False)) is None

    def test_logging_notifier_without_smtp(self) -> None:
        settings = Settings(notifications_enabled=True, smtp_host=None)

        assert isinstance(build_notifier(settings), LoggingNotifier)

    def test_smtp_notifier(self) -> None:
        settings = Settings(
            notifications_enabled=True, smtp_host="smtp.local", smtp_sender="grades@example.com"
        )

        assert isinstance(build_notifier(settings), SmtpNotifier)

    def test_smtp_requires_sender(self) -> None:
        with pytest.raises(ValueError, match="smtp_sender"):
            SmtpNotifier(Settings(smtp_host="smtp.local", smtp_sender=None))

    def test_build_message(self, notification: GradeNotification) -> None:
        notifier = SmtpNotifier(Settings(smtp_host="smtp.local", smtp_sender="grades@example.com"))

        message = notifier.build_message(notification)

        assert message["Subject"] == "Exam Results: Programming Basics - 90%"
        assert message["To"] == "ada@example.com"
        assert "Grade: A" in message.get_content()

    def test_send(self, notification: GradeNotification) -> None:
        settings = Settings(
            smtp_host="smtp.local",
            smtp_port=2525,
            smtp_sender="grades@example.com",
            smtp_username="user",
            smtp_password="secret",
        )

        with patch("exam_grader.notify.smtplib.SMTP") as mock_smtp:
            server = MagicMock()
            mock_smtp.return_value.__enter__.return_value = server

            SmtpNotifier(settings).send(notification)

        mock_smtp.assert_called_once_with("smtp.local", 2525, timeout=30)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("user", "secret")
        server.send_message.assert_called_once()

    def test_logging_notifier(self, notification: GradeNotification) -> None:
        LoggingNotifier().send(notification)
