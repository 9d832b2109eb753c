# src/session.py
from dataclasses import dataclass


@dataclass(frozen=True)
class UserSession:
    """Authenticated caller, resolved once per request and handed to every service."""

    user_id: int
    public_id: str
    email: str
