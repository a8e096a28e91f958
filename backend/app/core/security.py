"""
安全与认证工具
"""

import secrets
from datetime import datetime, timedelta
from typing import Optional

from jose import jwt, JWTError, ExpiredSignatureError
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.config import settings
from app.core.database import get_async_db
from app.models.user import User

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=int(settings.ACCESS_TOKEN_EXPIRE_MINUTES)))
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


def create_user_token(user: User) -> str:
    """为用户签发访问令牌（sub/email/role）"""
    return create_access_token({"sub": str(user.id), "email": user.email, "role": user.role})


def generate_token_hex(nbytes: int = 32) -> str:
    """重置密码/邮箱验证用的一次性令牌"""
    return secrets.token_hex(nbytes)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _extract_bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise _unauthorized("Access denied. No Authorization header provided.")
    if not auth_header.startswith("Bearer "):
        raise _unauthorized('Access denied. Authorization header must start with "Bearer ".')
    token = auth_header[len("Bearer "):].strip()
    if not token:
        raise _unauthorized("Access denied. No token provided after Bearer.")
    return token


async def _user_from_token(token: str, db: AsyncSession) -> User:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        raise _unauthorized("Token has expired. Please login again.")
    except JWTError:
        raise _unauthorized("Invalid token format or signature.")

    user_id = payload.get("sub")
    if user_id is None:
        raise _unauthorized("Invalid token. User ID not found in token.")

    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token. User ID not found in token.")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise _unauthorized("Invalid token. User not found.")
    if not user.is_active:
        raise _unauthorized("Account is deactivated")
    return user


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_async_db),
) -> User:
    token = _extract_bearer_token(request)
    return await _user_from_token(token, db)


async def get_current_user_optional(
    request: Request,
    db: AsyncSession = Depends(get_async_db),
) -> Optional[User]:
    """可选的身份验证：如果提供了token则验证，否则返回None"""
    try:
        token = _extract_bearer_token(request)
        return await _user_from_token(token, db)
    except HTTPException:
        return None


def require_roles(*roles: str, message: str = "Access denied. Insufficient permissions."):
    """构造角色校验依赖"""

    async def _checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=message,
            )
        return current_user

    return _checker


def is_admin(user: Optional[User]) -> bool:
    return getattr(user, "role", None) == "admin"


def is_expert(user: Optional[User]) -> bool:
    return getattr(user, "role", None) == "expert"
