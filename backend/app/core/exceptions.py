"""
统一异常定义与处理器
所有错误均以 {"success": false, "message": ...} 返回
"""

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException


class ServiceError(Exception):
    """业务层错误，携带HTTP状态码"""

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NotFoundError(ServiceError):
    def __init__(self, message: str):
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class PermissionDeniedError(ServiceError):
    def __init__(self, message: str):
        super().__init__(message, status.HTTP_403_FORBIDDEN)


def error_response(status_code: int, message: str, errors=None, headers=None) -> JSONResponse:
    content = {"success": False, "message": message}
    if errors is not None:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content), headers=headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        return error_response(exc.status_code, "Route not found")
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())[1:]) or None,
            "message": err.get("msg"),
        }
        for err in exc.errors()
    ]
    logger.debug(f"请求参数校验失败: {request.method} {request.url.path} -> {errors}")
    return error_response(status.HTTP_400_BAD_REQUEST, "Validation Error", errors)


async def service_error_handler(request: Request, exc: ServiceError):
    return error_response(exc.status_code, exc.message)


async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning(f"⚠️ 唯一约束冲突: {request.method} {request.url.path} -> {exc.orig}")
    return error_response(status.HTTP_409_CONFLICT, "Duplicate field value entered")


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error(f"❌ 未处理异常: {request.method} {request.url.path} -> {exc}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
