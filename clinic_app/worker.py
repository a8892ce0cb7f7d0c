"""
ARQ Background Worker for scheduled jobs
Runs the daily session auto-completion
"""

import logging
import os

from arq.connections import RedisSettings
from arq.cron import cron

from . import models  # noqa: F401 - register tables with Base
from .cache import build_cache
from .database import SessionLocal
from .domain.sessions.completion import auto_complete_sessions

logger = logging.getLogger(__name__)


def get_redis_settings() -> RedisSettings:
    """Same Redis the cache uses: REDIS_URL (redis:// or rediss://) or REDIS_* parts"""
    redis_url = os.getenv("REDIS_URL")
    if redis_url:
        settings = RedisSettings.from_dsn(redis_url)
    else:
        settings = RedisSettings(
            host=os.getenv("REDIS_HOST", "localhost"),
            port=int(os.getenv("REDIS_PORT", "6379")),
            password=os.getenv("REDIS_PASSWORD"),
            ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
        )
    settings.conn_timeout = 15
    return settings


async def startup(ctx):
    ctx["cache"] = build_cache()


async def auto_complete_sessions_task(ctx):
    """
    Daily cron job that marks overdue sessions as completed.
    Only sessions scheduled within the last AUTO_COMPLETE_MAX_AGE_DAYS are touched.
    """
    logger.info("Starting daily session auto-completion")

    db = SessionLocal()
    try:
        summary = auto_complete_sessions(db, cache=ctx.get("cache"))
        logger.info(f"Session auto-completion complete: {summary}")
        return summary
    except Exception as e:
        logger.error(f"❌ Session auto-completion failed: {str(e)}")
        raise
    finally:
        db.close()


class WorkerSettings:
    """ARQ Worker Settings"""

    functions = [auto_complete_sessions_task]
    on_startup = startup
    redis_settings = get_redis_settings()

    max_jobs = int(os.getenv("ARQ_MAX_JOBS", "10"))
    job_timeout = int(os.getenv("ARQ_JOB_TIMEOUT", "600"))
    keep_result = int(os.getenv("ARQ_KEEP_RESULT", "3600"))

    health_check_interval = 60
    max_tries = 3

    cron_jobs = [
        cron(auto_complete_sessions_task, hour=0, minute=15),  # 12:15 AM UTC
    ]
