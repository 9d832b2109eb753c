# config/dependencies.py

from fastapi import Depends, HTTPException, Request, status
import jwt
from sqlalchemy.orm import Session

from config.db import get_db
from model.user import Users
from src.session import UserSession
from src.utils import decode_access_token

_UNAUTHORIZED_HEADERS = {"WWW-Authenticate": "Bearer"}


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers=_UNAUTHORIZED_HEADERS,
    )


def _get_bearer_token(request: Request) -> str:
    auth = request.headers.get("authorization")
    if not auth or not auth.lower().startswith("bearer "):
        raise _unauthorized("Missing or invalid Authorization header")
    return auth.split(" ", 1)[1].strip()


def _decode(token: str) -> dict:
    try:
        return decode_access_token(token)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token expired")
    except jwt.InvalidTokenError:
        raise _unauthorized("Invalid token")


def _load_user_from_claims(payload: dict, db: Session) -> Users:
    uid = payload.get("uid")
    user = db.get(Users, uid) if uid is not None else None

    if not user or user.status != "active" or user.public_id != payload.get("sub"):
        # 401 rather than 404/403 so existence is not leaked
        raise _unauthorized("User not found or inactive")
    return user


def require_user(request: Request, db: Session = Depends(get_db)) -> Users:
    token = _get_bearer_token(request)
    payload = _decode(token)
    return _load_user_from_claims(payload, db)


def require_session(user: Users = Depends(require_user)) -> UserSession:
    """Explicit caller identity handed to the service layer."""
    return UserSession(user_id=user.id, public_id=user.public_id, email=user.email)
