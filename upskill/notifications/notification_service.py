"""
Notification dispatcher
Transactional mail on enrollment, new assessments and password reset.
Everything except password reset is fire-and-forget: failures are logged,
never raised into the operation that triggered them.
"""

import asyncio
import logging
from typing import Awaitable, List, Optional, Set

from upskill.core.config import Config, get_config
from upskill.notifications import email_templates as templates
from upskill.notifications.email_service import EmailDeliveryError, EmailService

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, email: Optional[EmailService] = None, config: Optional[Config] = None):
        self.config = config or get_config()
        self.email = email or EmailService(self.config)
        self._tasks: Set[asyncio.Task] = set()

    # ==================== BACKGROUND DISPATCH ====================

    def _spawn(self, coro: Awaitable, label: str) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)

        def _done(t: asyncio.Task) -> None:
            self._tasks.discard(t)
            if t.cancelled():
                return
            exc = t.exception()
            if exc is not None:
                logger.error(f"Notification '{label}' failed: {exc}")

        task.add_done_callback(_done)
        return task

    async def drain(self) -> None:
        """Wait for in-flight notifications (shutdown and tests)"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    # ==================== AWAITED ====================

    async def send_password_reset(self, user: dict, reset_url: str) -> None:
        """Raises EmailDeliveryError; the caller rolls back the reset token"""
        html = templates.password_reset_email(
            user.get("name", ""), reset_url, self.config.RESET_TOKEN_EXPIRE_MINUTES
        )
        await self.email.send_email(user["mail"], "Reset your password", html)

    async def send_pending_reminder(self, user: dict, items: List[dict]) -> None:
        html = templates.pending_reminder_email(
            user.get("name", ""), items, f"{self.config.FRONTEND_URL}/assessments/pending"
        )
        await self.email.send_email(user["mail"], "You have pending assessments", html)

    # ==================== FIRE AND FORGET ====================

    async def notify_course_enrollment(self, user: dict, course: dict) -> None:
        html = templates.course_enrollment_email(
            user.get("name", ""),
            course.get("name", ""),
            f"{self.config.FRONTEND_URL}/courses/{course['course_id']}",
        )
        self._spawn(
            self.email.send_email(user["mail"], f"Enrolled in {course.get('name', '')}", html),
            "course_enrollment",
        )

    async def notify_new_assessment(self, recipients: List[dict], course: dict, assessment: dict) -> None:
        if not recipients:
            return
        self._spawn(
            self._send_new_assessment(recipients, course, assessment),
            "new_assessment",
        )

    async def _send_new_assessment(self, recipients: List[dict], course: dict, assessment: dict) -> None:
        url = f"{self.config.FRONTEND_URL}/assessments/{assessment['assessment_id']}"
        sent = 0
        for user in recipients:
            html = templates.new_assessment_email(
                user.get("name", ""),
                course.get("name", ""),
                assessment.get("title", ""),
                assessment.get("available_until"),
                url,
            )
            try:
                await self.email.send_email(user["mail"], f"New assessment: {assessment.get('title', '')}", html)
                sent += 1
            except EmailDeliveryError as e:
                logger.warning(f"New assessment mail to {user.get('user_id')} failed: {e}")
        logger.info(f"New assessment {assessment['assessment_id']}: notified {sent}/{len(recipients)} students")
