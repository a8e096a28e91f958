"""
Celery应用：TBO预订状态刷新与酒店数据同步的定时任务
"""

import platform

from celery import Celery

from app.core.config import settings
from app.core.logging_config import setup_logging

celery_app = Celery(
    "trippat",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["app.tasks.tbo_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="Asia/Riyadh",
    enable_utc=True,
    task_acks_late=True,
    task_time_limit=10 * 60,
    result_expires=6 * 3600,
    worker_prefetch_multiplier=settings.CELERY_PREFETCH_MULTIPLIER,
    worker_max_tasks_per_child=500,
    broker_connection_retry_on_startup=True,
    beat_schedule={
        "refresh-tbo-booking-statuses": {
            "task": "app.tasks.tbo_tasks.refresh_tbo_booking_statuses_task",
            "schedule": float(settings.TBO_STATUS_REFRESH_INTERVAL),
        },
        "sync-linked-hotels": {
            "task": "app.tasks.tbo_tasks.sync_linked_hotels_task",
            "schedule": float(settings.HOTEL_SYNC_INTERVAL),
        },
    },
)

setup_logging()

if settings.CELERY_WORKER_POOL:
    celery_app.conf.worker_pool = settings.CELERY_WORKER_POOL
elif platform.system().lower().startswith("win"):
    # prefork在Windows上不可用
    celery_app.conf.worker_pool = "solo"
if settings.CELERY_WORKER_CONCURRENCY:
    celery_app.conf.worker_concurrency = settings.CELERY_WORKER_CONCURRENCY
