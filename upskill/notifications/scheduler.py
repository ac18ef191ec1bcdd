"""
Scheduled jobs: daily pending-assessment reminder
Only sends mail, so a missed or doubled run is harmless
"""

import logging
from datetime import timedelta
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from motor.motor_asyncio import AsyncIOMotorDatabase

from upskill.assessments.assessment_service import AssessmentService
from upskill.core.clock import utcnow
from upskill.core.config import Config, get_config
from upskill.core.database import UnitOfWork
from upskill.enrollments.enrollment_models import EnrollmentState
from upskill.notifications.email_service import EmailDeliveryError

logger = logging.getLogger(__name__)

REMINDER_JOB_ID = "pending_assessment_reminder"
REMINDER_HORIZON = timedelta(hours=24)


class ReminderScheduler:
    def __init__(self, db: AsyncIOMotorDatabase, notifier, config: Optional[Config] = None):
        self.db = db
        self.notifier = notifier
        self.config = config or get_config()
        self.scheduler = AsyncIOScheduler(timezone="UTC")

    def start(self) -> None:
        hour, minute = self.config.reminder_hour_minute
        self.scheduler.add_job(
            self.send_pending_reminders,
            CronTrigger(hour=hour, minute=minute),
            id=REMINDER_JOB_ID,
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info(f"Scheduler started: pending reminders daily at {hour:02d}:{minute:02d} UTC")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    async def send_pending_reminders(self) -> int:
        """
        Job: mail every enrolled student whose pending assessments close
        within the next 24 hours. Returns the number of mails sent.
        """
        logger.info("Scheduler: checking pending assessments...")
        sent = 0

        try:
            service = AssessmentService(UnitOfWork(self.db))
            horizon = utcnow() + REMINDER_HORIZON
            student_ids = await self.db.enrollments.distinct(
                "student_id", {"state": EnrollmentState.ENROLLED}
            )

            for student_id in student_ids:
                pending = await service.find_pending_for_student(student_id)
                due = [
                    p for p in pending
                    if p.assessment.available_until and p.assessment.available_until <= horizon
                ]
                if not due:
                    continue

                student = await self.db.students.find_one({"student_id": student_id})
                user = await self.db.users.find_one({"user_id": student["user_id"]}) if student else None
                if not user:
                    logger.warning(f"Scheduler: no user for student {student_id}")
                    continue

                items = [
                    {
                        "title": p.assessment.title,
                        "course_name": p.course_name,
                        "available_until": p.assessment.available_until,
                        "attempts_remaining": p.attempts_remaining,
                    }
                    for p in due
                ]
                try:
                    await self.notifier.send_pending_reminder(user, items)
                    sent += 1
                except EmailDeliveryError as e:
                    logger.warning(f"Could not remind student {student_id}: {e}")

            logger.info(f"Scheduler: reminders sent: {sent}")

        except Exception as e:
            logger.error(f"Scheduler: pending reminder job failed: {e}", exc_info=True)

        return sent
