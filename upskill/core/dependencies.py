from fastapi import Request

from upskill.core.config import Config


def get_settings(request: Request) -> Config:
    return request.app.state.config


def get_notifier(request: Request):
    """Shared NotificationService created at startup"""
    return request.app.state.notifier
