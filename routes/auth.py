# routes/auth.py
from typing import Optional
from datetime import datetime, timedelta
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select, update
from sqlalchemy.orm import Session
import logging

from config.db import get_db
from config.dependencies import require_user
from config.settings import REFRESH_TTL_DAYS, VERIFICATION_CODE_TTL_MIN, VERIFICATION_RESEND_COOLDOWN_SEC
from model.user import Users, UserCredential, EmailVerification, SessionToken
from schema.auth import (
    RegisterIn, LoginIn, LogoutIn, VerifyCodeIn, ResendCodeIn,
    AuthOut, UserOut, MessageOut,
)
from src.email_service import email_service
from src.id_generator import generate_user_id
from src.utils import gen_token_hex, gen_verification_code, hash_password, verify_password, make_access_token


logger = logging.getLogger(__name__)

router = APIRouter()


def _open_session(db: Session, user: Users, request: Request) -> str:
    refresh = gen_token_hex(32)
    db.add(SessionToken(
        user_id=user.id,
        refresh_token=refresh,
        user_agent=request.headers.get("user-agent"),
        ip_addr=request.client.host if request.client else None,
        expires_at=datetime.utcnow() + timedelta(days=REFRESH_TTL_DAYS),
    ))
    return refresh


def _issue_code(db: Session, user: Users) -> EmailVerification:
    """Invalidate pending codes and store a fresh one."""
    now = datetime.utcnow()
    db.execute(
        update(EmailVerification)
        .where(EmailVerification.user_id == user.id, EmailVerification.used_at.is_(None))
        .values(used_at=now)
    )
    ver = EmailVerification(
        user_id=user.id,
        code=gen_verification_code(),
        created_at=now,
        expires_at=now + timedelta(minutes=VERIFICATION_CODE_TTL_MIN),
    )
    db.add(ver)
    return ver


def _auth_out(user: Users, refresh: str) -> AuthOut:
    return AuthOut(
        user=UserOut.model_validate(user),
        access_token=make_access_token(user.public_id, user.id, user.email),
        refresh_token=refresh,
        requires_email_verification=not user.is_email_verified,
    )


@router.post(
    "/register",
    response_model=AuthOut,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"description": "Conflict - Email already in use"},
        422: {"description": "Unprocessable Entity - Validation error"},
    },
    openapi_extra={"security": []}
)
def register(body: RegisterIn, request: Request, db: Session = Depends(get_db)):
    logger.info("Register endpoint called with email=%s", body.email)
    if db.scalar(select(Users.id).where(Users.email == body.email)):
        logger.warning("Email already in use: %s", body.email)
        raise HTTPException(status_code=409, detail="Email already in use")

    u = Users(
        public_id=generate_user_id(),
        email=body.email,
        first_name=body.first_name,
        last_name=body.last_name,
        role="client",
    )
    db.add(u)
    db.flush()
    logger.info("User created with id=%s, public_id=%s", u.id, u.public_id)

    db.add(UserCredential(
        user_id=u.id,
        password_hash=hash_password(body.password),
        last_password_change=datetime.utcnow(),
    ))
    ver = _issue_code(db, u)
    refresh = _open_session(db, u, request)
    db.commit()
    db.refresh(u)

    # Send after commit so the code is persisted
    email_service.send_verification_code(u.email, ver.code, VERIFICATION_CODE_TTL_MIN)
    return _auth_out(u, refresh)


@router.post("/login", response_model=AuthOut, openapi_extra={"security": []})
def login(body: LoginIn, request: Request, db: Session = Depends(get_db)):
    logger.info("Login attempt for email=%s", body.email)
    u = db.scalar(select(Users).where(Users.email == body.email, Users.status == "active"))
    if not u or not u.creds or not verify_password(body.password, u.creds.password_hash):
        logger.warning("Invalid login attempt for email=%s", body.email)
        raise HTTPException(
            status_code=401,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    refresh = _open_session(db, u, request)
    db.commit()
    logger.info("Login successful for user id=%s", u.id)
    return _auth_out(u, refresh)


@router.post("/logout", response_model=MessageOut)
def logout(body: LogoutIn, user: Users = Depends(require_user), db: Session = Depends(get_db)):
    sess = db.scalar(select(SessionToken).where(
        SessionToken.refresh_token == body.refresh_token,
        SessionToken.user_id == user.id,
    ))
    if sess and sess.revoked_at is None:
        sess.revoked_at = datetime.utcnow()
        db.commit()
        logger.info("Session %s revoked for user id=%s", sess.id, user.id)
    return MessageOut(message="Logged out")


@router.post("/verify-code", response_model=MessageOut, openapi_extra={"security": []})
def verify_code(body: VerifyCodeIn, db: Session = Depends(get_db)):
    """
    Confirm the email address with the six-digit code sent at sign-up.

    **Security:** Codes are single-use and expire after VERIFICATION_CODE_TTL_MIN.
    """
    user = db.scalar(select(Users).where(Users.email == body.email))
    if user and user.is_email_verified:
        return MessageOut(message="Email address is already verified")

    ver: Optional[EmailVerification] = None
    if user:
        ver = db.scalar(
            select(EmailVerification)
            .where(
                EmailVerification.user_id == user.id,
                EmailVerification.code == body.code,
                EmailVerification.used_at.is_(None),
            )
            .order_by(EmailVerification.created_at.desc())
            .limit(1)
        )
    if not ver or ver.expires_at < datetime.utcnow():
        logger.warning("Invalid or expired verification code for email=%s", body.email)
        raise HTTPException(status_code=400, detail="Invalid or expired verification code")

    user.is_email_verified = True
    ver.used_at = datetime.utcnow()
    db.commit()
    logger.info("Email verified for user id=%s", user.id)
    return MessageOut(message="Email address verified successfully")


@router.post("/resend-code", response_model=MessageOut, openapi_extra={"security": []})
def resend_code(body: ResendCodeIn, db: Session = Depends(get_db)):
    """
    Send a new verification code.

    Always returns the same message (prevents email enumeration).
    """
    response = MessageOut(message="If an unverified account exists with that email, a new code has been sent.")

    user = db.scalar(select(Users).where(Users.email == body.email))
    if not user or user.is_email_verified:
        return response

    last = db.scalar(
        select(EmailVerification.created_at)
        .where(EmailVerification.user_id == user.id)
        .order_by(EmailVerification.created_at.desc())
        .limit(1)
    )
    if last and datetime.utcnow() - last < timedelta(seconds=VERIFICATION_RESEND_COOLDOWN_SEC):
        raise HTTPException(status_code=429, detail="Please wait before requesting a new code")

    ver = _issue_code(db, user)
    db.commit()

    if not email_service.send_verification_code(user.email, ver.code, VERIFICATION_CODE_TTL_MIN):
        logger.error("Failed to send verification code to user id=%s", user.id)
    return response


@router.get("/me", response_model=UserOut)
def me(user: Users = Depends(require_user)):
    return UserOut.model_validate(user)
