"""
TBO 相关定时任务
"""

import time

from loguru import logger

from app.core.async_loop import run_coro
from app.core.celery import celery_app
from app.core.database import async_session
from app.core.logging_config import log_task_execution
from app.services.booking_service import BookingService
from app.services.hotel_service import HotelService
from app.services.hotel_sync_service import HotelSyncService
from app.services.tbo_service import TBOServiceError


@celery_app.task
def refresh_tbo_booking_statuses_task():
    """刷新未结束TBO预订的上游状态"""
    started = time.time()
    log_task_execution("refresh_tbo_booking_statuses", "started")

    async def _run():
        async with async_session() as db:
            return await BookingService(db).refresh_open_tbo_bookings()

    try:
        result = run_coro(_run())
    except Exception as e:
        logger.error(f"刷新TBO预订状态失败: {e}")
        log_task_execution("refresh_tbo_booking_statuses", "error", time.time() - started)
        raise

    log_task_execution("refresh_tbo_booking_statuses", "success", time.time() - started)
    return {"status": "success", **result}


@celery_app.task
def sync_linked_hotels_task():
    """同步所有已关联TBO的酒店信息"""
    started = time.time()
    log_task_execution("sync_linked_hotels", "started")

    async def _run():
        synced, failed = 0, 0
        async with async_session() as db:
            sync_service = HotelSyncService()
            for hotel in await HotelService(db).list_linked_hotels():
                try:
                    await sync_service.sync_hotel(hotel)
                    synced += 1
                except TBOServiceError as e:
                    logger.warning(f"⚠️ 酒店 {hotel.id} 同步失败: {e}")
                    failed += 1
                # 失败状态同样需要落库
                await db.commit()
        return {"synced": synced, "failed": failed}

    try:
        result = run_coro(_run())
    except Exception as e:
        logger.error(f"同步TBO酒店失败: {e}")
        log_task_execution("sync_linked_hotels", "error", time.time() - started)
        raise

    log_task_execution("sync_linked_hotels", "success", time.time() - started)
    return {"status": "success", **result}
