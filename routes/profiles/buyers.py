# routes/profiles/buyers.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_session
from schema.buyers import LatestPurchaseOut, ProfileOverviewOut, UserProfileOut
from src import profile_service
from src.catalog import normalize_rows
from src.funnel import ProfileSnapshot
from src.purchase_lifecycle import PurchaseLifecycleManager, status_label
from src.session import UserSession

router = APIRouter(prefix="/v1/profile", tags=["Profile"])


@router.get("", response_model=ProfileOverviewOut)
def get_my_profile(
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_session),
):
    """
    Profile overview: stored fields, completion percentage, KYC status and
    the most recent purchase that is still open.
    """
    profile = profile_service.get_profile(db, session)
    kyc_status = ProfileSnapshot.from_row(profile).kyc_status

    latest = PurchaseLifecycleManager(db).latest_open_purchase(session)
    latest_out = None
    if latest is not None:
        latest_out = LatestPurchaseOut(
            id=latest.id,
            status=latest.status,
            status_label=status_label(latest.status),
            property=normalize_rows(db, [latest.property])[0],
            created_at=latest.created_at,
        )

    return ProfileOverviewOut(
        email=session.email,
        profile=UserProfileOut.model_validate(profile) if profile else None,
        completion_percent=profile_service.completion_percent(profile),
        country_name=profile_service.country_name(profile.country) if profile else None,
        kyc_status=kyc_status.value,
        kyc_label=profile_service.KYC_LABELS[kyc_status],
        latest_purchase=latest_out,
    )
