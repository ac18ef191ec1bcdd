"""
Tests for the notification dispatcher, SMTP wrapper and reminder job
"""

import smtplib
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from upskill.assessments.assessment_schemas import AssessmentCreate
from upskill.assessments.assessment_service import AssessmentService
from upskill.core.clock import utcnow
from upskill.enrollments.enrollment_service import EnrollmentService
from upskill.notifications.email_service import EmailDeliveryError, EmailService
from upskill.notifications.notification_service import NotificationService
from upskill.notifications.scheduler import REMINDER_JOB_ID, ReminderScheduler

pytestmark = [pytest.mark.asyncio]

USER = {"user_id": "USR_1", "name": "Ana", "mail": "ana@mail.test"}
COURSE = {"course_id": "CRS_1", "name": "Python Fundamentals"}
ASSESSMENT = {"assessment_id": "ASM_1", "title": "Midterm", "available_until": None}


@pytest.fixture
def email():
    return AsyncMock(spec=EmailService)


@pytest.fixture
def dispatcher(email, config):
    return NotificationService(email=email, config=config)


# ============================================
# NotificationService
# ============================================

async def test_password_reset_is_awaited_and_raises(dispatcher, email):
    await dispatcher.send_password_reset(USER, "http://frontend.test/reset-password?token=abc")

    to, subject, html = email.send_email.call_args.args
    assert to == "ana@mail.test"
    assert "token=abc" in html

    email.send_email.side_effect = EmailDeliveryError("down")
    with pytest.raises(EmailDeliveryError):
        await dispatcher.send_password_reset(USER, "http://frontend.test/reset-password?token=abc")


async def test_enrollment_mail_runs_in_background(dispatcher, email):
    await dispatcher.notify_course_enrollment(USER, COURSE)
    await dispatcher.drain()

    email.send_email.assert_awaited_once()
    to, subject, html = email.send_email.call_args.args
    assert subject == "Enrolled in Python Fundamentals"
    assert "http://frontend.test/courses/CRS_1" in html
    assert dispatcher.pending == 0


async def test_background_failure_is_swallowed(dispatcher, email):
    email.send_email.side_effect = EmailDeliveryError("down")

    await dispatcher.notify_course_enrollment(USER, COURSE)
    await dispatcher.drain()

    assert dispatcher.pending == 0


async def test_new_assessment_keeps_going_after_one_failure(dispatcher, email):
    recipients = [
        {"user_id": "USR_1", "name": "Ana", "mail": "ana@mail.test"},
        {"user_id": "USR_2", "name": "Leo", "mail": "leo@mail.test"},
    ]
    email.send_email.side_effect = [EmailDeliveryError("bounced"), None]

    await dispatcher.notify_new_assessment(recipients, COURSE, ASSESSMENT)
    await dispatcher.drain()

    assert [c.args[0] for c in email.send_email.call_args_list] == ["ana@mail.test", "leo@mail.test"]


async def test_new_assessment_without_recipients(dispatcher, email):
    await dispatcher.notify_new_assessment([], COURSE, ASSESSMENT)
    assert dispatcher.pending == 0
    email.send_email.assert_not_awaited()


# ============================================
# EmailService
# ============================================

async def test_unconfigured_smtp_raises(config):
    config.EMAIL_HOST = ""
    with pytest.raises(EmailDeliveryError):
        await EmailService(config).send_email("ana@mail.test", "Hi", "<p>Hi</p>")


async def test_smtp_starttls_delivery(config):
    config.EMAIL_HOST, config.EMAIL_PORT = "smtp.mail.test", 587
    config.EMAIL_USER, config.EMAIL_PASS, config.EMAIL_FROM = "noreply@mail.test", "pw", "noreply@mail.test"
    server = MagicMock()

    with patch("upskill.notifications.email_service.smtplib.SMTP") as smtp:
        smtp.return_value.__enter__.return_value = server
        await EmailService(config).send_email("ana@mail.test", "Hi", "<p>Hi</p>")

    smtp.assert_called_once_with("smtp.mail.test", 587, timeout=10)
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("noreply@mail.test", "pw")
    assert server.sendmail.call_args.args[:2] == ("noreply@mail.test", "ana@mail.test")


async def test_smtp_errors_become_delivery_errors(config):
    config.EMAIL_HOST, config.EMAIL_PORT, config.EMAIL_USER = "smtp.mail.test", 587, "noreply@mail.test"

    with patch("upskill.notifications.email_service.smtplib.SMTP") as smtp:
        smtp.return_value.__enter__.return_value.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad")
        with pytest.raises(EmailDeliveryError):
            await EmailService(config).send_email("ana@mail.test", "Hi", "<p>Hi</p>")


# ============================================
# ReminderScheduler
# ============================================

@pytest.fixture
def reminder_setup(uow, make_professor, make_course, make_questions, make_student):
    async def _build():
        professor = await make_professor()
        course = await make_course(professor)
        questions = await make_questions(professor, course.course_id, count=2)
        question_ids = [q.question_id for q in questions]
        service = AssessmentService(uow)
        now = utcnow()
        await service.create(professor, AssessmentCreate(
            course_id=course.course_id, title="Closes tonight", question_ids=question_ids,
            available_until=now + timedelta(hours=6),
        ))
        await service.create(professor, AssessmentCreate(
            course_id=course.course_id, title="Closes next week", question_ids=question_ids,
            available_until=now + timedelta(days=7),
        ))
        student = await make_student(mail="ana@mail.test")
        await EnrollmentService(uow, AsyncMock()).create(student.user_id, course.course_id)
        return student
    return _build


async def test_reminder_job_mails_due_assessments(db, notifier, config, reminder_setup):
    await reminder_setup()

    sent = await ReminderScheduler(db, notifier, config).send_pending_reminders()

    assert sent == 1
    user, items = notifier.send_pending_reminder.call_args.args
    assert user["mail"] == "ana@mail.test"
    assert [item["title"] for item in items] == ["Closes tonight"]
    assert items[0]["course_name"] == "Python Fundamentals"


async def test_reminder_job_survives_delivery_errors(db, config, reminder_setup):
    await reminder_setup()
    failing = AsyncMock()
    failing.send_pending_reminder.side_effect = EmailDeliveryError("down")

    assert await ReminderScheduler(db, failing, config).send_pending_reminders() == 0


async def test_reminder_job_with_nothing_due(db, notifier, config):
    assert await ReminderScheduler(db, notifier, config).send_pending_reminders() == 0
    notifier.send_pending_reminder.assert_not_awaited()


async def test_scheduler_registers_daily_job(db, notifier, config):
    config.REMINDER_TIME = "07:30"
    scheduler = ReminderScheduler(db, notifier, config)

    scheduler.start()
    try:
        job = scheduler.scheduler.get_job(REMINDER_JOB_ID)
        assert job is not None
        assert "hour='7'" in str(job.trigger)
        assert "minute='30'" in str(job.trigger)
    finally:
        scheduler.shutdown()
