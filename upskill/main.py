import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from upskill.assessments.assessment_router import router as assessment_router
from upskill.auth.auth_router import router as auth_router
from upskill.core.clock import utcnow
from upskill.core.config import Config, get_config
from upskill.core.database import create_client, create_indexes
from upskill.core.logger import setup_logging
from upskill.core.responses import ok, register_exception_handlers
from upskill.courses.course_router import router as course_router
from upskill.enrollments.enrollment_router import router as enrollment_router
from upskill.institutions.institution_router import router as institution_router
from upskill.notifications.notification_service import NotificationService
from upskill.notifications.scheduler import ReminderScheduler
from upskill.users.user_router import router as user_router

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[Config] = None,
    db: Optional[AsyncIOMotorDatabase] = None,
    client: Optional[AsyncIOMotorClient] = None,
    notifier=None,
    enable_scheduler: bool = True,
) -> FastAPI:
    config = config or get_config()
    setup_logging(config.LOG_LEVEL)

    app = FastAPI(title="UpSkill API")
    app.state.config = config
    app.state.mongo_client = client
    app.state.db = db
    app.state.notifier = notifier or NotificationService(config=config)
    app.state.scheduler = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(auth_router)
    app.include_router(user_router)
    app.include_router(course_router)
    app.include_router(enrollment_router)
    app.include_router(assessment_router)
    app.include_router(institution_router)

    @app.on_event("startup")
    async def startup_event():
        if app.state.db is None:
            app.state.mongo_client = create_client(config)
            app.state.db = app.state.mongo_client[config.MONGO_DB_NAME]
        await create_indexes(app.state.db)

        if enable_scheduler:
            app.state.scheduler = ReminderScheduler(app.state.db, app.state.notifier, config)
            app.state.scheduler.start()
        logger.info(f"UpSkill API started ({config.APP_ENV})")

    @app.on_event("shutdown")
    async def shutdown_event():
        if app.state.scheduler is not None:
            app.state.scheduler.shutdown()
        await app.state.notifier.drain()
        if app.state.mongo_client is not None:
            app.state.mongo_client.close()

    @app.get("/health")
    async def health():
        return ok({"status": "ok", "time": utcnow()})

    return app


app = create_app()
