from datetime import datetime
from html import escape
from typing import List, Optional


def _layout(title: str, body: str) -> str:
    return (
        "<div style=\"font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;\">"
        f"<h2 style=\"color: #2b6cb0;\">{escape(title)}</h2>"
        f"{body}"
        "<p style=\"color: #718096; font-size: 12px;\">UpSkill</p>"
        "</div>"
    )


def _button(url: str, label: str) -> str:
    return (
        f"<p><a href=\"{escape(url, quote=True)}\" "
        "style=\"background: #2b6cb0; color: #fff; padding: 10px 18px; "
        f"text-decoration: none; border-radius: 4px;\">{escape(label)}</a></p>"
    )


def _fmt(value: Optional[datetime]) -> str:
    return value.strftime("%d/%m/%Y %H:%M UTC") if value else "no deadline"


def password_reset_email(name: str, reset_url: str, minutes: int) -> str:
    body = (
        f"<p>Hi {escape(name)},</p>"
        "<p>We received a request to reset your password.</p>"
        f"{_button(reset_url, 'Reset password')}"
        f"<p>This link expires in {minutes} minutes. "
        "If you did not ask for it, ignore this mail.</p>"
    )
    return _layout("Password reset", body)


def course_enrollment_email(name: str, course_name: str, course_url: str) -> str:
    body = (
        f"<p>Hi {escape(name)},</p>"
        f"<p>You are now enrolled in <strong>{escape(course_name)}</strong>.</p>"
        f"{_button(course_url, 'Go to course')}"
    )
    return _layout("Enrollment confirmed", body)


def new_assessment_email(
    name: str,
    course_name: str,
    assessment_title: str,
    available_until: Optional[datetime],
    assessment_url: str,
) -> str:
    body = (
        f"<p>Hi {escape(name)},</p>"
        f"<p>A new assessment <strong>{escape(assessment_title)}</strong> was published "
        f"in <strong>{escape(course_name)}</strong>.</p>"
        f"<p>Available until: {_fmt(available_until)}</p>"
        f"{_button(assessment_url, 'Open assessment')}"
    )
    return _layout("New assessment", body)


def pending_reminder_email(name: str, items: List[dict], dashboard_url: str) -> str:
    rows = "".join(
        f"<li><strong>{escape(item['title'])}</strong> ({escape(item.get('course_name') or '')}), "
        f"closes {_fmt(item.get('available_until'))}, "
        f"{item['attempts_remaining'] if item.get('attempts_remaining') is not None else 'unlimited'} "
        "attempts left</li>"
        for item in items
    )
    body = (
        f"<p>Hi {escape(name)},</p>"
        "<p>These assessments are still waiting for you:</p>"
        f"<ul>{rows}</ul>"
        f"{_button(dashboard_url, 'View pending assessments')}"
    )
    return _layout("Pending assessments", body)
