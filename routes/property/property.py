from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_session

# Schemas (Pydantic)
from schema.property import (
    CountryOut,
    DeveloperStatsOut,
    FavoriteStateOut,
    PropertyFilters,
    PropertyOut,
    PropertyType,
)
from schema.purchase import PurchaseInitiatedOut

from src import catalog, favorites
from src.purchase_lifecycle import PurchaseLifecycleManager
from src.session import UserSession

router = APIRouter(prefix="/v1/properties", tags=["Properties"])


# ----------------------------------------------------------------------------
# Read (list with filters)
# ----------------------------------------------------------------------------
@router.get("", response_model=List[PropertyOut])
def list_properties(
    db: Session = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    type: Optional[PropertyType] = None,
    country_code: Optional[str] = Query(None, min_length=2, max_length=2),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    search: Optional[str] = Query(None, max_length=120),
):
    """List catalog properties.

    Filters: property `type` (land/house), `country_code`, price bounds and a
    free-text `search` over title and location.
    """
    filters = PropertyFilters(
        type=type,
        country_code=country_code,
        min_price=min_price,
        max_price=max_price,
        search=search,
    )
    return catalog.fetch_properties(db, filters, skip=skip, limit=limit)


# ----------------------------------------------------------------------------
# Read (by id)
# ----------------------------------------------------------------------------
@router.get("/{property_id}", response_model=PropertyOut)
def get_property(property_id: str, db: Session = Depends(get_db)):
    prop = catalog.fetch_property(db, property_id)
    if prop is None:
        raise HTTPException(status_code=404, detail="Property not found")
    return prop


@router.get("/{property_id}/developer-stats", response_model=DeveloperStatsOut)
def get_developer_stats(property_id: str, db: Session = Depends(get_db)):
    """Sold/available counts for the developer behind this property."""
    prop = catalog.get_property_row(db, property_id)
    if not prop.developer_id:
        return DeveloperStatsOut()
    return catalog.developer_stats(db, prop.developer_id)


# ----------------------------------------------------------------------------
# Favorites
# ----------------------------------------------------------------------------
@router.post("/{property_id}/favorite", response_model=FavoriteStateOut)
def toggle_favorite(
    property_id: str,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_session),
):
    """Toggle favorite for the current user. Returns the new state."""
    now_favorite = favorites.toggle_favorite(db, session, property_id)
    return FavoriteStateOut(
        property_id=property_id,
        is_favorite=now_favorite,
        message="Ajouté aux favoris" if now_favorite else "Retiré des favoris",
    )


@router.get("/{property_id}/favorite", response_model=FavoriteStateOut)
def get_favorite_state(
    property_id: str,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_session),
):
    return FavoriteStateOut(
        property_id=property_id,
        is_favorite=favorites.is_favorite(db, session, property_id),
    )


# ----------------------------------------------------------------------------
# Purchase initiation
# ----------------------------------------------------------------------------
@router.post("/{property_id}/purchase", response_model=PurchaseInitiatedOut, status_code=status.HTTP_201_CREATED)
def initiate_purchase(
    property_id: str,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_session),
):
    """Start acquiring a property.

    Verified buyers go straight to payment; everyone else enters the
    purchase funnel with the property id carried along.
    """
    purchase, redirect_to, reused = PurchaseLifecycleManager(db).initiate(session, property_id)
    return PurchaseInitiatedOut(
        purchase_id=purchase.id,
        status=purchase.status,
        redirect_to=redirect_to,
        reused=reused,
    )


# ----------------------------------------------------------------------------
# Companion routers: favorites listing and countries
# ----------------------------------------------------------------------------
favorites_router = APIRouter(prefix="/v1/favorites", tags=["Favorites"])


@favorites_router.get("", response_model=List[PropertyOut])
def list_my_favorites(
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_session),
):
    return favorites.list_favorites(db, session)


countries_router = APIRouter(prefix="/v1/countries", tags=["Countries"])


@countries_router.get("", response_model=List[CountryOut])
def list_countries(db: Session = Depends(get_db)):
    return catalog.list_countries(db)
