"""
Trippat API 入口
旅游套餐预订平台后端：套餐、酒店、预订、TBO对接与管理后台
"""

import time
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.staticfiles import StaticFiles

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.database import close_db, init_db
from app.core.exceptions import register_exception_handlers
from app.core.logging_config import log_api_access, setup_logging
from app.core.rate_limit import RateLimitMiddleware
from app.core.redis import close_redis, init_redis


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = setup_logging()
    logger.info(f"🚀 启动 {settings.APP_NAME} v{settings.VERSION}")
    await init_db()
    await init_redis()

    yield

    await close_redis()
    await close_db()
    logger.info(f"🛑 {settings.APP_NAME} 已关闭")


app = FastAPI(
    title=settings.APP_NAME,
    description="旅游套餐预订平台API",
    version=settings.VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)
app.add_middleware(RateLimitMiddleware)


@app.middleware("http")
async def access_log_middleware(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    log_api_access(request.method, request.url.path, response.status_code, (time.perf_counter() - started) * 1000)
    return response


register_exception_handlers(app)

# 套餐图片等上传文件
upload_root = Path(settings.UPLOAD_DIR)
upload_root.mkdir(parents=True, exist_ok=True)
app.mount(settings.STATIC_URL_PREFIX, StaticFiles(directory=str(upload_root)), name="static")

app.include_router(api_router, prefix="/api/v1")


@app.get("/")
async def root():
    return {"success": True, "message": f"{settings.APP_NAME} is running", "version": settings.VERSION}


@app.get("/health")
async def health_check():
    return {"success": True, "status": "healthy", "service": settings.APP_NAME, "version": settings.VERSION}


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description=settings.APP_NAME)
    parser.add_argument("--host", default=settings.HOST)
    parser.add_argument("--port", type=int, default=int(settings.PORT))
    args = parser.parse_args()
    uvicorn.run("main:app", host=args.host, port=args.port, reload=bool(settings.DEBUG))
