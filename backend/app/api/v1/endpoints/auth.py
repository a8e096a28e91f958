"""
认证与用户会话API端点
"""
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_async_db
from app.core.responses import success_response
from app.core.security import (
    create_user_token,
    generate_token_hex,
    get_current_user,
    get_password_hash,
    verify_password,
)
from app.models.user import User
from app.schemas.auth import ChangePassword, ForgotPassword, ResetPassword, UserLogin, UserOut, UserRegister, UserUpdate, VerifyEmail
from app.schemas.common import serialize

router = APIRouter()


def _auth_payload(user: User) -> dict:
    return {"user": serialize(UserOut, user), "token": create_user_token(user)}


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(user_in: UserRegister, db: AsyncSession = Depends(get_async_db)):
    email = user_in.email.lower()
    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists with this email")

    user = User(
        name=user_in.name,
        email=email,
        phone=user_in.phone,
        hashed_password=get_password_hash(user_in.password),
        role="customer",
        language=user_in.language,
        country=user_in.country,
        currency=user_in.currency,
        email_verification_token=generate_token_hex(),
        email_verification_expires=datetime.utcnow() + timedelta(hours=settings.EMAIL_VERIFICATION_EXPIRE_HOURS),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info(f"👤 新用户注册: {user.id}")
    return success_response(_auth_payload(user), "User registered successfully")


@router.post("/login")
async def login(form: UserLogin, db: AsyncSession = Depends(get_async_db)):
    result = await db.execute(select(User).where(User.email == form.email.strip().lower()))
    user = result.scalar_one_or_none()
    if not user or not verify_password(form.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is deactivated")

    user.last_login = datetime.utcnow()
    await db.commit()
    await db.refresh(user)
    return success_response(_auth_payload(user), "Login successful")


@router.get("/profile")
async def get_profile(current_user: User = Depends(get_current_user)):
    return success_response({"user": serialize(UserOut, current_user)}, "Profile retrieved successfully")


@router.put("/profile")
async def update_profile(
    data: UserUpdate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
):
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(current_user, field, value.strip() if field == "name" else value)
    await db.commit()
    await db.refresh(current_user)
    return success_response({"user": serialize(UserOut, current_user)}, "Profile updated successfully")


@router.put("/change-password")
async def change_password(
    data: ChangePassword,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
):
    if not verify_password(data.current_password, current_user.hashed_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")

    current_user.hashed_password = get_password_hash(data.new_password)
    await db.commit()
    logger.info(f"🔑 用户 {current_user.id} 修改密码")
    return success_response(message="Password changed successfully")


@router.post("/forgot-password")
async def forgot_password(data: ForgotPassword, db: AsyncSession = Depends(get_async_db)):
    result = await db.execute(select(User).where(User.email == data.email.strip().lower()))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No user found with this email")

    token = generate_token_hex()
    user.password_reset_token = token
    user.password_reset_expires = datetime.utcnow() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
    await db.commit()
    # 未接入邮件发送，令牌直接返回
    return success_response({"resetToken": token}, "Password reset token generated")


@router.post("/reset-password")
async def reset_password(data: ResetPassword, db: AsyncSession = Depends(get_async_db)):
    result = await db.execute(select(User).where(
        User.password_reset_token == data.token,
        User.password_reset_expires > datetime.utcnow(),
    ))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired reset token")

    user.hashed_password = get_password_hash(data.password)
    user.password_reset_token = None
    user.password_reset_expires = None
    await db.commit()
    await db.refresh(user)
    return success_response(_auth_payload(user), "Password reset successful")


@router.post("/refresh")
async def refresh_token(current_user: User = Depends(get_current_user)):
    return success_response({"token": create_user_token(current_user)}, "Token refreshed successfully")


@router.post("/verify-email")
async def verify_email(data: VerifyEmail, db: AsyncSession = Depends(get_async_db)):
    result = await db.execute(select(User).where(
        User.email_verification_token == data.token,
        User.email_verification_expires > datetime.utcnow(),
    ))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired verification token")

    user.is_email_verified = True
    user.email_verification_token = None
    user.email_verification_expires = None
    await db.commit()
    return success_response(message="Email verified successfully")


@router.post("/resend-verification")
async def resend_verification(
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
):
    if current_user.is_email_verified:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is already verified")

    token = generate_token_hex()
    current_user.email_verification_token = token
    current_user.email_verification_expires = datetime.utcnow() + timedelta(
        hours=settings.EMAIL_VERIFICATION_EXPIRE_HOURS
    )
    await db.commit()
    return success_response({"verificationToken": token}, "Verification email sent")
