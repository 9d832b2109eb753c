# model/profiles/buyer.py
"""
Buyer profile captured by the purchase funnel.
- One-to-one UserProfile per user (users.id), created on the first
  personal-info submission
- Tri-state flags (has_eu_residency, kyc_verified) are nullable booleans:
  NULL means the question has not been answered yet
"""

from sqlalchemy import (
    Column, String, Integer, Boolean, TIMESTAMP, ForeignKey, DateTime as SADateTime,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from model.base import Base


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)

    # Personal step
    first_name = Column(String(120), nullable=True)
    last_name = Column(String(120), nullable=True)
    country = Column(String(2), nullable=True)       # ISO 3166-1 alpha-2
    phone = Column(String(32), nullable=True)        # E.164, e.g. +22370000000

    # Professional step
    professional_activity = Column(String(120), nullable=True)
    revenue_range = Column(String(120), nullable=True)

    # Residency step (only asked for European phone numbers)
    has_eu_residency = Column(Boolean, nullable=True)

    # KYC: NULL = not started, False = in progress, True = verified
    kyc_verified = Column(Boolean, nullable=True)
    kyc_verified_at = Column(SADateTime, nullable=True)

    created_at = Column(TIMESTAMP, server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(
        TIMESTAMP,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
        nullable=False,
    )

    user = relationship("Users", back_populates="profile", lazy="selectin")

    def __repr__(self):
        return f"<UserProfile(user_id={self.user_id}, name={self.first_name!r} {self.last_name!r}, kyc={self.kyc_verified!r})>"
