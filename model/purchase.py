# model/purchase.py
"""
Purchase records created when a buyer starts acquiring a property, and the
append-only message thread attached to each of them.
"""

from datetime import datetime

from sqlalchemy import (
    Column, String, Integer, Text, JSON, TIMESTAMP, ForeignKey, Index, DateTime as SADateTime,
    Enum as SAEnum,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from model.base import Base

PurchaseStatusEnum = SAEnum(
    "pending_kyc", "pending_documents", "pending_payment", "processing", "completed", "cancelled",
    name="purchase_status_enum",
)
PaymentMethodEnum = SAEnum("bank", "instant", "card", name="payment_method_enum")


class PropertyPurchase(Base):
    __tablename__ = "property_purchases"

    id = Column(String(50), primary_key=True)    # e.g. PUR-1699564234-A7K9M2
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    property_id = Column(String(50), ForeignKey("properties.id", ondelete="RESTRICT"), nullable=False)

    status = Column(PurchaseStatusEnum, nullable=False, server_default="pending_kyc")
    payment_method = Column(PaymentMethodEnum, nullable=True)

    # {"status": "pending", "documents": [{"id": ..., "name": ..., "url": ...}]}
    loan_application = Column(JSON, nullable=True)

    created_at = Column(SADateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(SADateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_purchases_user_property", "user_id", "property_id"),
    )

    property = relationship("Property", lazy="selectin")
    messages = relationship(
        "PurchaseMessage",
        back_populates="purchase",
        order_by=lambda: [PurchaseMessage.created_at, PurchaseMessage.id],
        lazy="selectin",
    )

    def __repr__(self):
        return f"<PropertyPurchase(id={self.id!r}, property_id={self.property_id!r}, status={self.status!r})>"


class PurchaseMessage(Base):
    __tablename__ = "purchase_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    purchase_id = Column(String(50), ForeignKey("property_purchases.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    message = Column(Text, nullable=False)
    created_at = Column(SADateTime, default=datetime.utcnow, nullable=False)

    purchase = relationship("PropertyPurchase", back_populates="messages")
