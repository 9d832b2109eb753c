# src/normalizer.py
"""
Property normalization.

Turns a raw property row, with its related records embedded the way a
relational backend returns them, into the canonical ``PropertyOut`` view.

Related records may arrive as ``None``, ``[]``, ``[record]`` or a bare
mapping; that variance stays inside this module. ``normalize`` is pure: it
never touches the database and never mutates its input.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, List, Optional, TypedDict

from schema.property import (
    CoordinatesOut,
    CountryOut,
    DeveloperSummaryOut,
    PaymentScheduleOut,
    PropertyDetailsOut,
    PropertyOut,
    RequiredDocumentOut,
)

PLACEHOLDER_IMAGE_URL = "https://via.placeholder.com/800x600?text=No+Image"
PLACEHOLDER_MATTERPORT_ID = "YpKmWx9vLs3"
PLACEHOLDER_FLOOR_PLAN_URL = (
    "https://images.unsplash.com/photo-1600607687939-ce8a6c25118c"
    "?auto=format&fit=crop&q=80&w=1200"
)

# Synthesized financing plan: 20% down, remainder over 36 months
DEFAULT_DOWN_PAYMENT_RATIO = 0.2
DEFAULT_DURATION_MONTHS = 36

DETAIL_DEFAULTS = {
    "house": {"surface": 200, "bedrooms": 3, "bathrooms": 2},
    "land": {"surface": 500, "bedrooms": None, "bathrooms": None},
}


class RawPropertyRow(TypedDict, total=False):
    """Input contract for :func:`normalize`.

    Scalar columns come straight from the ``properties`` table; the plural
    keys hold embedded relations (``None``, a list, or a single mapping).
    """

    id: str
    title: str
    description: Optional[str]
    type: str
    price: float
    image_url: Optional[str]
    location: str
    country_code: str
    coordinates: Any            # "(lng,lat)" or a (lng, lat) pair
    status: str
    countries: Any
    property_payment_schedules: Any
    property_details: Any
    required_documents: Any
    developers: Any             # each may embed developer_reviews: [{"count": n}]


def first_related(value: Any) -> Optional[Mapping[str, Any]]:
    """Return the single related record of an embedded relation, if any."""
    if value is None:
        return None
    if isinstance(value, Mapping):
        return value
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        for item in value:
            if isinstance(item, Mapping):
                return item
        return None
    return None


def parse_coordinates(value: Any) -> CoordinatesOut:
    """Parse a stored ``(lng,lat)`` pair into ``{lat, lng}``.

    Anything missing or unparsable yields the origin.
    """
    if value is None:
        return CoordinatesOut(lat=0.0, lng=0.0)

    if isinstance(value, str):
        text = value.strip()
        if text.startswith("(") and text.endswith(")"):
            text = text[1:-1]
        parts = text.split(",")
    elif isinstance(value, Sequence):
        parts = list(value)
    else:
        return CoordinatesOut(lat=0.0, lng=0.0)

    if len(parts) != 2:
        return CoordinatesOut(lat=0.0, lng=0.0)
    try:
        lng, lat = float(parts[0]), float(parts[1])
    except (TypeError, ValueError):
        return CoordinatesOut(lat=0.0, lng=0.0)
    return CoordinatesOut(lat=lat, lng=lng)


def default_payment_schedule(price: float) -> PaymentScheduleOut:
    financed = price * (1 - DEFAULT_DOWN_PAYMENT_RATIO)
    return PaymentScheduleOut(
        initial_payment=price * DEFAULT_DOWN_PAYMENT_RATIO,
        monthly_payment=financed / DEFAULT_DURATION_MONTHS,
        duration=DEFAULT_DURATION_MONTHS,
    )


def normalize_payment_schedule(raw: Mapping[str, Any], price: float) -> PaymentScheduleOut:
    fallback = default_payment_schedule(price)
    record = first_related(raw.get("property_payment_schedules")) or first_related(raw.get("payment_schedule"))
    if record is None:
        return fallback
    # empty or zero fields fall back one by one
    return PaymentScheduleOut(
        initial_payment=record.get("initial_payment") or fallback.initial_payment,
        monthly_payment=record.get("monthly_payment") or fallback.monthly_payment,
        duration=record.get("duration") or fallback.duration,
    )


def normalize_details(raw: Mapping[str, Any], property_type: str) -> PropertyDetailsOut:
    is_house = property_type == "house"
    defaults = DETAIL_DEFAULTS["house" if is_house else "land"]
    record = first_related(raw.get("property_details")) or first_related(raw.get("details"))

    if record is None:
        return PropertyDetailsOut(**defaults, matterport_id=None, floor_plan_url=None)

    if not is_house:
        return PropertyDetailsOut(
            surface=record.get("surface") or defaults["surface"],
            bedrooms=None,
            bathrooms=None,
            matterport_id=None,
            floor_plan_url=None,
        )

    return PropertyDetailsOut(
        surface=record.get("surface") or defaults["surface"],
        bedrooms=record.get("bedrooms") or defaults["bedrooms"],
        bathrooms=record.get("bathrooms") or defaults["bathrooms"],
        matterport_id=record.get("matterport_id") or PLACEHOLDER_MATTERPORT_ID,
        floor_plan_url=record.get("floor_plan_url") or PLACEHOLDER_FLOOR_PLAN_URL,
    )


def normalize_country(raw: Mapping[str, Any]) -> CountryOut:
    record = first_related(raw.get("countries")) or first_related(raw.get("country"))
    if record is not None and record.get("code"):
        return CountryOut(code=record["code"], name=record.get("name") or record["code"])
    code = raw.get("country_code") or ""
    return CountryOut(code=code, name=code)


def normalize_developer(raw: Mapping[str, Any]) -> Optional[DeveloperSummaryOut]:
    record = first_related(raw.get("developers")) or first_related(raw.get("developer"))
    if record is None or not record.get("id"):
        return None

    reviews = first_related(record.get("developer_reviews"))
    total_reviews = (reviews or {}).get("count") or 0

    return DeveloperSummaryOut(
        id=record["id"],
        company_name=record.get("company_name"),
        logo_url=record.get("logo_url"),
        description=record.get("description"),
        website=record.get("website"),
        phone=record.get("phone"),
        email=record.get("email"),
        total_reviews=int(total_reviews),
    )


def normalize_required_documents(raw: Mapping[str, Any]) -> List[RequiredDocumentOut]:
    docs = raw.get("required_documents") or []
    if isinstance(docs, Mapping):
        docs = [docs]
    return [RequiredDocumentOut(name=d.get("name"), description=d.get("description")) for d in docs]


def normalize(raw: Mapping[str, Any]) -> PropertyOut:
    """Build the canonical property view from a raw row."""
    price = float(raw.get("price") or 0)
    property_type = raw.get("type")

    return PropertyOut(
        id=raw["id"],
        title=raw.get("title") or "",
        description=raw.get("description") or "",
        type=property_type,
        price=price,
        image_url=raw.get("image_url") or PLACEHOLDER_IMAGE_URL,
        location=raw.get("location"),
        country=normalize_country(raw),
        coordinates=parse_coordinates(raw.get("coordinates")),
        status=raw.get("status") or "available",
        payment_schedule=normalize_payment_schedule(raw, price),
        details=normalize_details(raw, property_type),
        required_documents=normalize_required_documents(raw),
        developer=normalize_developer(raw),
    )
