from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, confloat, constr

PropertyType = Literal["land", "house"]
PropertyStatus = Literal["available", "sold"]


# ---------------------------------------------------------------------------
# Canonical property view (output of src/normalizer.py)
# ---------------------------------------------------------------------------
class CountryOut(BaseModel):
    code: str
    name: str

    model_config = ConfigDict(from_attributes=True)


class CoordinatesOut(BaseModel):
    lat: float = 0.0
    lng: float = 0.0


class PaymentScheduleOut(BaseModel):
    initial_payment: float
    monthly_payment: float
    duration: int  # months


class PropertyDetailsOut(BaseModel):
    surface: float
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    matterport_id: Optional[str] = None
    floor_plan_url: Optional[str] = None


class RequiredDocumentOut(BaseModel):
    name: str
    description: Optional[str] = None


class DeveloperSummaryOut(BaseModel):
    id: str
    company_name: Optional[str] = None
    logo_url: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    total_reviews: int = 0


class PropertyOut(BaseModel):
    """Property as served to every view (listing, detail, favorites, purchases).

    payment_schedule and details are always present; land plots never carry
    bedrooms, bathrooms or media identifiers.
    """

    id: str
    title: str
    description: str = ""
    type: PropertyType
    price: float
    image_url: str
    location: Optional[str] = None
    country: CountryOut
    coordinates: CoordinatesOut
    status: PropertyStatus
    payment_schedule: PaymentScheduleOut
    details: PropertyDetailsOut
    required_documents: List[RequiredDocumentOut] = Field(default_factory=list)
    developer: Optional[DeveloperSummaryOut] = None


# ---------------------------------------------------------------------------
# Catalog queries
# ---------------------------------------------------------------------------
class PropertyFilters(BaseModel):
    type: Optional[PropertyType] = None
    country_code: Optional[constr(strip_whitespace=True, min_length=2, max_length=2)] = None
    min_price: Optional[confloat(ge=0)] = None
    max_price: Optional[confloat(ge=0)] = None
    search: Optional[constr(strip_whitespace=True, max_length=120)] = None


class DeveloperStatsOut(BaseModel):
    total_sold: int = 0
    total_available: int = 0


# ---------------------------------------------------------------------------
# Developers
# ---------------------------------------------------------------------------
class DeveloperOut(BaseModel):
    id: str
    company_name: str
    logo_url: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    total_reviews: int = 0
    avg_rating: float = 0.0


class DeveloperReviewOut(BaseModel):
    id: int
    rating: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DeveloperProfileOut(DeveloperOut):
    properties: List[PropertyOut] = Field(default_factory=list)
    reviews: List[DeveloperReviewOut] = Field(default_factory=list)
    total_sales: int = 0


class FavoriteStateOut(BaseModel):
    property_id: str
    is_favorite: bool
    message: Optional[str] = None
