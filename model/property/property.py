# model/property/property.py
from sqlalchemy import (
    Column, String, Integer, Float, Text, TIMESTAMP, ForeignKey, UniqueConstraint,
    Enum as SAEnum,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from model.base import Base


PropertyTypeEnum = SAEnum("land", "house", name="property_type_enum")
PropertyStatusEnum = SAEnum("available", "sold", name="property_status_enum")


class Country(Base):
    __tablename__ = "countries"

    code = Column(String(2), primary_key=True)   # ISO 3166-1 alpha-2
    name = Column(String(120), nullable=False)

    created_at = Column(TIMESTAMP, server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(
        TIMESTAMP,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
        nullable=False,
    )


class Property(Base):
    """Catalog listing (land plot or house).

    Pricing, details and required documents live in child tables and are
    merged into one view by src/normalizer.py.
    """

    __tablename__ = "properties"

    id = Column(String(50), primary_key=True)    # e.g. PRP-1699564234-A7K9M2

    title = Column(String(140), nullable=False)
    description = Column(Text)
    type = Column(PropertyTypeEnum, nullable=False)

    price = Column(Float, nullable=False)        # base currency (CFA)
    image_url = Column(String(1024))

    location = Column(String(255), nullable=False)
    country_code = Column(String(2), ForeignKey("countries.code", ondelete="RESTRICT"), nullable=False, index=True)
    coordinates = Column(String(64))             # serialized "(lng,lat)"

    status = Column(PropertyStatusEnum, nullable=False, default="available", server_default="available")

    developer_id = Column(String(50), ForeignKey("developers.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = Column(TIMESTAMP, server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(
        TIMESTAMP,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
        nullable=False,
    )

    # Relationships
    # Using lazy='selectin' to avoid N+1 queries in list endpoints
    country = relationship("Country", lazy="selectin")
    developer = relationship("Developer", back_populates="properties", lazy="selectin")
    payment_schedules = relationship(
        "PropertyPaymentSchedule", back_populates="property", cascade="all, delete-orphan", lazy="selectin",
    )
    details = relationship(
        "PropertyDetails", back_populates="property", uselist=False, cascade="all, delete-orphan", lazy="selectin",
    )
    required_documents = relationship(
        "RequiredDocument",
        back_populates="property",
        cascade="all, delete-orphan",
        order_by="RequiredDocument.position",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Property(title='{self.title}', type='{self.type}', price={self.price})>"


class PropertyPaymentSchedule(Base):
    __tablename__ = "property_payment_schedules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    property_id = Column(String(50), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    initial_payment = Column(Float, nullable=False)
    monthly_payment = Column(Float, nullable=False)
    duration = Column(Integer, nullable=False)   # months

    created_at = Column(TIMESTAMP, server_default=func.current_timestamp(), nullable=False)

    property = relationship("Property", back_populates="payment_schedules")


class PropertyDetails(Base):
    __tablename__ = "property_details"

    id = Column(Integer, primary_key=True, autoincrement=True)
    property_id = Column(String(50), ForeignKey("properties.id", ondelete="CASCADE"), unique=True, nullable=False)
    surface = Column(Float, nullable=False)      # square meters
    bedrooms = Column(Integer, nullable=True)
    bathrooms = Column(Integer, nullable=True)
    matterport_id = Column(String(64), nullable=True)
    floor_plan_url = Column(String(1024), nullable=True)

    created_at = Column(TIMESTAMP, server_default=func.current_timestamp(), nullable=False)

    property = relationship("Property", back_populates="details")


class RequiredDocument(Base):
    __tablename__ = "required_documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    property_id = Column(String(50), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(255), nullable=False)
    description = Column(Text)

    property = relationship("Property", back_populates="required_documents")


class FavoriteProperty(Base):
    __tablename__ = "property_favorites"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    property_id = Column(String(50), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)

    created_at = Column(TIMESTAMP, server_default=func.current_timestamp(), nullable=False)

    __table_args__ = (
        # a user can only favorite a property once
        UniqueConstraint("user_id", "property_id", name="uq_favorite_user_property"),
    )

    property = relationship("Property", lazy="selectin")
