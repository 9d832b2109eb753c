# src/catalog.py
"""
Read side of the property catalog.

Queries properties with their relations, reshapes each ORM row into the raw
relation-embedded form accepted by :func:`src.normalizer.normalize`, and
aggregates developer statistics.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from model.profiles.developer import Developer, DeveloperReview
from model.property.property import Country, Property
from schema.property import (
    CountryOut,
    DeveloperOut,
    DeveloperProfileOut,
    DeveloperReviewOut,
    DeveloperStatsOut,
    PropertyFilters,
    PropertyOut,
)
from src.errors import NotFoundError
from src.normalizer import RawPropertyRow, normalize

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------------
# Row shaping
# ----------------------------------------------------------------------------
def _review_counts(db: Session, developer_ids: Iterable[str]) -> Dict[str, int]:
    ids = {d for d in developer_ids if d}
    if not ids:
        return {}
    rows = db.execute(
        select(DeveloperReview.developer_id, func.count(DeveloperReview.id))
        .where(DeveloperReview.developer_id.in_(ids))
        .group_by(DeveloperReview.developer_id)
    ).all()
    return {dev_id: int(count) for dev_id, count in rows}


def property_to_raw(prop: Property, review_counts: Optional[Dict[str, int]] = None) -> RawPropertyRow:
    """Embed a property's relations the way a relational API returns them."""
    review_counts = review_counts or {}
    dev = prop.developer
    details = prop.details

    return {
        "id": prop.id,
        "title": prop.title,
        "description": prop.description,
        "type": prop.type,
        "price": prop.price,
        "image_url": prop.image_url,
        "location": prop.location,
        "country_code": prop.country_code,
        "coordinates": prop.coordinates,
        "status": prop.status,
        "countries": [{"code": prop.country.code, "name": prop.country.name}] if prop.country else [],
        "property_payment_schedules": [
            {
                "initial_payment": s.initial_payment,
                "monthly_payment": s.monthly_payment,
                "duration": s.duration,
            }
            for s in prop.payment_schedules
        ],
        "property_details": (
            {
                "surface": details.surface,
                "bedrooms": details.bedrooms,
                "bathrooms": details.bathrooms,
                "matterport_id": details.matterport_id,
                "floor_plan_url": details.floor_plan_url,
            }
            if details is not None
            else None
        ),
        "required_documents": [
            {"name": d.name, "description": d.description} for d in prop.required_documents
        ],
        "developers": (
            [
                {
                    "id": dev.id,
                    "company_name": dev.company_name,
                    "logo_url": dev.logo_url,
                    "description": dev.description,
                    "website": dev.website,
                    "phone": dev.phone,
                    "email": dev.email,
                    "developer_reviews": [{"count": review_counts.get(dev.id, 0)}],
                }
            ]
            if dev is not None
            else []
        ),
    }


def normalize_rows(db: Session, props: List[Property]) -> List[PropertyOut]:
    counts = _review_counts(db, (p.developer_id for p in props))
    return [normalize(property_to_raw(p, counts)) for p in props]


# ----------------------------------------------------------------------------
# Properties
# ----------------------------------------------------------------------------
def fetch_properties(
    db: Session,
    filters: Optional[PropertyFilters] = None,
    skip: int = 0,
    limit: Optional[int] = None,
) -> List[PropertyOut]:
    """List catalog properties matching the optional filters."""
    stmt = select(Property)
    f = filters or PropertyFilters()

    if f.type:
        stmt = stmt.where(Property.type == f.type)
    if f.country_code:
        stmt = stmt.where(Property.country_code == f.country_code.upper())
    if f.min_price:
        stmt = stmt.where(Property.price >= f.min_price)
    if f.max_price:
        stmt = stmt.where(Property.price <= f.max_price)
    if f.search:
        pattern = f"%{f.search}%"
        stmt = stmt.where(or_(Property.title.ilike(pattern), Property.location.ilike(pattern)))

    stmt = stmt.order_by(Property.created_at.desc(), Property.id).offset(skip)
    if limit is not None:
        stmt = stmt.limit(limit)
    props = db.scalars(stmt).all()
    logger.debug("Catalog query returned %d properties (filters=%s)", len(props), f.model_dump(exclude_none=True))
    return normalize_rows(db, list(props))


def get_property_row(db: Session, property_id: str) -> Property:
    prop = db.get(Property, property_id)
    if prop is None:
        raise NotFoundError(f"Property {property_id} not found")
    return prop


def fetch_property(db: Session, property_id: str) -> Optional[PropertyOut]:
    """Return the normalized property, or None when no row matches."""
    prop = db.get(Property, property_id)
    if prop is None:
        return None
    return normalize_rows(db, [prop])[0]


def developer_stats(db: Session, developer_id: str) -> DeveloperStatsOut:
    """Count sold and available listings of one developer."""
    rows = db.execute(
        select(Property.status, func.count(Property.id))
        .where(Property.developer_id == developer_id)
        .group_by(Property.status)
    ).all()
    by_status = {status: int(count) for status, count in rows}
    return DeveloperStatsOut(
        total_sold=by_status.get("sold", 0),
        total_available=by_status.get("available", 0),
    )


def list_countries(db: Session) -> List[CountryOut]:
    rows = db.scalars(select(Country).order_by(Country.name)).all()
    return [CountryOut.model_validate(c) for c in rows]


# ----------------------------------------------------------------------------
# Developers
# ----------------------------------------------------------------------------
def _developer_out(dev: Developer, total_reviews: int, avg_rating: float) -> dict:
    return {
        "id": dev.id,
        "company_name": dev.company_name,
        "logo_url": dev.logo_url,
        "description": dev.description,
        "website": dev.website,
        "phone": dev.phone,
        "email": dev.email,
        "total_reviews": total_reviews,
        "avg_rating": round(avg_rating, 2),
    }


def list_developers(db: Session) -> List[DeveloperOut]:
    stats = {
        dev_id: (int(count), float(avg or 0))
        for dev_id, count, avg in db.execute(
            select(
                DeveloperReview.developer_id,
                func.count(DeveloperReview.id),
                func.avg(DeveloperReview.rating),
            ).group_by(DeveloperReview.developer_id)
        ).all()
    }
    devs = db.scalars(select(Developer).order_by(Developer.company_name)).all()
    return [DeveloperOut(**_developer_out(d, *stats.get(d.id, (0, 0.0)))) for d in devs]


def get_developer_profile(db: Session, developer_id: str) -> DeveloperProfileOut:
    dev = db.get(Developer, developer_id)
    if dev is None:
        raise NotFoundError(f"Developer {developer_id} not found")

    reviews = list(dev.reviews)
    avg_rating = sum(r.rating for r in reviews) / len(reviews) if reviews else 0.0
    properties = normalize_rows(db, list(dev.properties))

    return DeveloperProfileOut(
        **_developer_out(dev, len(reviews), avg_rating),
        properties=properties,
        reviews=[DeveloperReviewOut.model_validate(r) for r in reviews],
        total_sales=sum(1 for p in properties if p.status == "sold"),
    )
