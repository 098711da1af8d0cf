from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator, List

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.monitor import build_default_monitor
from services.scheduler import PeriodicJob


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    monitor = build_default_monitor()
    jobs: List[PeriodicJob] = []
    if monitor.settings.scheduler_enabled:
        jobs = [
            PeriodicJob("poll", monitor.poll_devices, monitor.settings.poll_interval_seconds),
            PeriodicJob(
                "evaluate", monitor.evaluate_devices, monitor.settings.evaluation_interval_seconds
            ),
        ]
        for job in jobs:
            job.start()
    try:
        yield
    finally:
        for job in jobs:
            job.stop(timeout=5)
        monitor.shutdown()
        build_default_monitor.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Thermostat Comfort Monitor",
        description="Polls thermostats, watches comfort ranges and sends deduplicated alerts.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
