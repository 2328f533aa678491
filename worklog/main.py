import os
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
import structlog

from .config import settings
from .db import Base, engine, SessionLocal
from .errors import install_error_handlers
from .logging import setup_logging, RequestIdMiddleware
from .auth.router import router as auth_router
from .routes.employees import router as employees_router
from .routes.logs import router as logs_router
from .routes.notifications import router as notifications_router
from .services.scheduler import ReminderScheduler


logger = structlog.get_logger(__name__)


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.app_name)

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    install_error_handlers(app)

    # Routers
    app.include_router(auth_router)
    app.include_router(employees_router)
    app.include_router(logs_router)
    app.include_router(notifications_router)

    # Metrics
    Instrumentator().instrument(app).expose(app)

    app.state.scheduler = None

    @app.on_event("startup")
    def _startup():
        logger.info("startup", environment=settings.environment)
        # Ensure local SQLite directory exists
        if settings.database_url.startswith("sqlite:///./"):
            os.makedirs("var", exist_ok=True)
        if settings.auto_create_db:
            Base.metadata.create_all(bind=engine)
            logger.info("tables_verified", count=len(Base.metadata.tables))
        if settings.enable_scheduler:
            scheduler = ReminderScheduler(
                SessionLocal,
                interval_s=settings.reminder_interval_s,
                reminder_hour=settings.reminder_hour,
                tz=settings.tz_default,
            )
            scheduler.start()
            app.state.scheduler = scheduler

    @app.on_event("shutdown")
    def _shutdown():
        if app.state.scheduler is not None:
            app.state.scheduler.stop()
            app.state.scheduler = None

    @app.get("/")
    def root():
        return {"message": f"Welcome to the {settings.app_name}"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("worklog.main:app", host=settings.host, port=settings.port)
