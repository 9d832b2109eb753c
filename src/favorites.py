# src/favorites.py
"""Favorite toggle: a (user, property) bookmark whose existence is its only state."""

import logging
from typing import List

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from model.property.property import FavoriteProperty, Property
from schema.property import PropertyOut
from src.catalog import normalize_rows
from src.errors import NotFoundError
from src.session import UserSession

logger = logging.getLogger(__name__)


def is_favorite(db: Session, session: UserSession, property_id: str) -> bool:
    """Existence check; no row simply means False."""
    found = db.scalar(
        select(FavoriteProperty.id).where(
            FavoriteProperty.user_id == session.user_id,
            FavoriteProperty.property_id == property_id,
        )
    )
    return found is not None


def toggle_favorite(db: Session, session: UserSession, property_id: str) -> bool:
    """
    Flip the favorite relation and return the new state.

    A concurrent toggle that already inserted the pair is treated as
    favorited; a concurrent delete of the same pair deletes nothing.
    """
    if db.get(Property, property_id) is None:
        raise NotFoundError(f"Property {property_id} not found")

    try:
        if is_favorite(db, session, property_id):
            db.execute(
                delete(FavoriteProperty).where(
                    FavoriteProperty.user_id == session.user_id,
                    FavoriteProperty.property_id == property_id,
                )
            )
            db.commit()
            return False

        db.add(FavoriteProperty(user_id=session.user_id, property_id=property_id))
        db.commit()
        return True
    except IntegrityError:
        # unique (user_id, property_id) already present
        db.rollback()
        logger.info(f"Favorite {session.user_id}/{property_id} inserted concurrently")
        return True
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Failed to toggle favorite {session.user_id}/{property_id}")
        raise


def list_favorites(db: Session, session: UserSession) -> List[PropertyOut]:
    props = db.scalars(
        select(Property)
        .join(FavoriteProperty, FavoriteProperty.property_id == Property.id)
        .where(FavoriteProperty.user_id == session.user_id)
        .order_by(FavoriteProperty.created_at.desc(), FavoriteProperty.id.desc())
    ).all()
    return normalize_rows(db, list(props))
