from __future__ import annotations
from typing import List, Optional, Literal
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator, constr

from schema.property import PropertyOut

FunnelStepLiteral = Literal["personal", "professional", "residency", "kyc"]
KycStatusLiteral = Literal["not_started", "in_progress", "verified"]

ACTIVITIES = [
    "Salarié du secteur privé",
    "Fonctionnaire",
    "Entrepreneur",
    "Profession libérale",
    "Commerçant",
    "Retraité",
    "Autre",
]

REVENUE_RANGES = [
    "Moins de 500 000 FCFA",
    "500 000 - 1 000 000 FCFA",
    "1 000 000 - 2 000 000 FCFA",
    "2 000 000 - 5 000 000 FCFA",
    "Plus de 5 000 000 FCFA",
]

# ---------------------------------------------------------------------------
# Funnel step payloads
# ---------------------------------------------------------------------------
NonEmpty = constr(strip_whitespace=True, min_length=1, max_length=120)


class PersonalInfoIn(BaseModel):
    first_name: NonEmpty
    last_name: NonEmpty
    country: constr(strip_whitespace=True, to_upper=True, min_length=2, max_length=2)
    phone: constr(strip_whitespace=True, min_length=4, max_length=32)

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "first_name": "Amadou",
                "last_name": "Diallo",
                "country": "ML",
                "phone": "+22370000000",
            }
        },
    )

    @field_validator("phone")
    @classmethod
    def _phone_shape(cls, v: str) -> str:
        v = v.replace(" ", "")
        if not v.startswith("+") or not v[1:].isdigit():
            raise ValueError("phone must be in international format, e.g. +22370000000")
        return v


class ProfessionalInfoIn(BaseModel):
    professional_activity: NonEmpty
    revenue_range: NonEmpty

    model_config = ConfigDict(extra="ignore")


class ResidencyIn(BaseModel):
    has_eu_residency: bool


class KycSubmittedIn(BaseModel):
    property_id: Optional[str] = None


# ---------------------------------------------------------------------------
# Funnel responses
# ---------------------------------------------------------------------------
class StepNavOut(BaseModel):
    step: FunnelStepLiteral
    path: str
    label: str
    completed: bool
    current: bool
    disabled: bool


class FunnelStateOut(BaseModel):
    current_step: FunnelStepLiteral
    requested_step: FunnelStepLiteral
    editable: bool
    kyc_status: KycStatusLiteral
    redirect_to: Optional[str] = None
    notice: Optional[str] = None
    steps: List[StepNavOut] = Field(default_factory=list)
    purchase_id: Optional[str] = None


class StepResultOut(BaseModel):
    """Returned after a step is saved: where the client goes next."""
    step: FunnelStepLiteral
    redirect_to: str
    purchase_id: Optional[str] = None


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------
class UserProfileOut(BaseModel):
    user_id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    professional_activity: Optional[str] = None
    revenue_range: Optional[str] = None
    has_eu_residency: Optional[bool] = None
    kyc_verified: Optional[bool] = None
    kyc_verified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class LatestPurchaseOut(BaseModel):
    id: str
    status: str
    status_label: str
    property: PropertyOut
    created_at: datetime


class ProfileOverviewOut(BaseModel):
    email: str
    profile: Optional[UserProfileOut] = None
    completion_percent: int = 0
    country_name: Optional[str] = None
    kyc_status: KycStatusLiteral = "not_started"
    kyc_label: str
    latest_purchase: Optional[LatestPurchaseOut] = None
