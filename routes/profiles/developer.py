"""Developer directory routes (v1)

- Path prefix: /v1/developers
- Listing carries review counts and average rating
- Profile adds normalized properties, reviews and total sales
"""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from config.db import get_db
from schema.property import DeveloperOut, DeveloperProfileOut
from src import catalog

router = APIRouter(prefix="/v1/developers", tags=["Developers"])


@router.get("", response_model=List[DeveloperOut])
def list_developers(db: Session = Depends(get_db)):
    return catalog.list_developers(db)


@router.get("/{developer_id}", response_model=DeveloperProfileOut)
def get_developer(developer_id: str, db: Session = Depends(get_db)):
    return catalog.get_developer_profile(db, developer_id)
