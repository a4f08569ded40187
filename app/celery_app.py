from celery import Celery
import os
import logging

logger = logging.getLogger(__name__)


def make_celery(app_name=__name__):
    redis_url = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
    celery = Celery(app_name, broker=redis_url, backend=redis_url, include=["tasks"])

    celery.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,
        # Pack content jobs are never retried automatically
        task_acks_late=False,
        task_always_eager=os.environ.get("CELERY_ALWAYS_EAGER", "false").lower() == "true",
    )
    logger.debug(f"Celery configured with broker {redis_url}")

    return celery


celery = make_celery("smartexam")
