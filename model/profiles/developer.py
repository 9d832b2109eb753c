# model/profiles/developer.py
from sqlalchemy import (
    Column, String, Integer, Text, TIMESTAMP, ForeignKey, SmallInteger, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from model.base import Base


class Developer(Base):
    """
    Real-estate promoter selling properties in the catalog.
    Links to:
      - listed properties via properties.developer_id
      - buyer reviews via developer_reviews
    """
    __tablename__ = "developers"

    id = Column(String(50), primary_key=True)     # e.g. DEV-1699564234-X3P8Q1

    company_name = Column(String(255), nullable=False)
    logo_url = Column(String(1024))
    description = Column(Text)
    website = Column(String(1024))
    phone = Column(String(64))
    email = Column(String(255))

    created_at = Column(TIMESTAMP, server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(
        TIMESTAMP,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
        nullable=False,
    )

    properties = relationship("Property", back_populates="developer", lazy="selectin")
    reviews = relationship(
        "DeveloperReview",
        back_populates="developer",
        cascade="all, delete-orphan",
        order_by="DeveloperReview.created_at.desc()",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Developer(id={self.id!r}, company_name={self.company_name!r})>"


class DeveloperReview(Base):
    __tablename__ = "developer_reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    developer_id = Column(String(50), ForeignKey("developers.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    rating = Column(SmallInteger, nullable=False)   # 1-5
    comment = Column(Text)
    created_at = Column(TIMESTAMP, server_default=func.current_timestamp(), nullable=False)

    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_developer_review_rating"),
    )

    developer = relationship("Developer", back_populates="reviews")
