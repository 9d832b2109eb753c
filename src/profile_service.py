# src/profile_service.py
"""
Buyer profile persistence for the purchase funnel.

Each ``save_*`` call checks the step is still editable, writes the fields,
and returns the path of the next step. The KYC "documents submitted" signal
marks the profile verified and moves waiting purchases to payment.
"""

import logging
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from model.profiles.buyer import UserProfile
from schema.buyers import PersonalInfoIn, ProfessionalInfoIn, ResidencyIn
from src.errors import NotFoundError
from src.funnel import (
    PROFILE_PATH,
    FunnelStep,
    KycStatus,
    ProfileSnapshot,
    TriState,
    ensure_editable,
    ensure_kyc_reachable,
    next_step,
    step_url,
)
from src.purchase_lifecycle import PurchaseLifecycleManager
from src.session import UserSession

logger = logging.getLogger(__name__)

COUNTRY_NAMES = {
    "ML": "Mali",
    "SN": "Sénégal",
    "CI": "Côte d'Ivoire",
    "FR": "France",
    "BE": "Belgique",
    "DE": "Allemagne",
}

KYC_LABELS = {
    KycStatus.NOT_STARTED: "Vérification non commencée",
    KycStatus.IN_PROGRESS: "Vérification en cours",
    KycStatus.VERIFIED: "Vérification complétée",
}

COMPLETION_FIELDS = (
    "first_name",
    "last_name",
    "country",
    "phone",
    "professional_activity",
    "revenue_range",
)


def country_name(code: Optional[str]) -> Optional[str]:
    if not code:
        return None
    return COUNTRY_NAMES.get(code.upper(), code)


def completion_percent(profile: Optional[UserProfile]) -> int:
    """Share of the required profile fields that are filled in, rounded."""
    if profile is None:
        return 0
    filled = sum(1 for field in COMPLETION_FIELDS if getattr(profile, field))
    return round(filled / len(COMPLETION_FIELDS) * 100)


def get_profile(db: Session, session: UserSession) -> Optional[UserProfile]:
    return db.scalar(select(UserProfile).where(UserProfile.user_id == session.user_id))


def get_snapshot(db: Session, session: UserSession) -> ProfileSnapshot:
    return ProfileSnapshot.from_row(get_profile(db, session))


def _require_profile(db: Session, session: UserSession) -> UserProfile:
    profile = get_profile(db, session)
    if profile is None:
        raise NotFoundError("Profile not found; complete your personal information first")
    return profile


def _commit(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Profile update failed; rolled back")
        raise


def save_personal_info(
    db: Session, session: UserSession, data: PersonalInfoIn, property_id: Optional[str] = None
) -> str:
    profile = get_profile(db, session)
    ensure_editable(ProfileSnapshot.from_row(profile), FunnelStep.PERSONAL)

    if profile is None:
        profile = UserProfile(user_id=session.user_id)
        db.add(profile)
        logger.info(f"Creating profile for user {session.user_id}")

    for field, value in data.model_dump().items():
        setattr(profile, field, value)
    _commit(db)

    return step_url(FunnelStep.PROFESSIONAL, property_id)


def save_professional_info(
    db: Session, session: UserSession, data: ProfessionalInfoIn, property_id: Optional[str] = None
) -> str:
    profile = _require_profile(db, session)
    ensure_editable(ProfileSnapshot.from_row(profile), FunnelStep.PROFESSIONAL)

    profile.professional_activity = data.professional_activity
    profile.revenue_range = data.revenue_range
    _commit(db)

    following = next_step(FunnelStep.PROFESSIONAL, ProfileSnapshot.from_row(profile))
    return step_url(following, property_id)


def save_residency(
    db: Session, session: UserSession, data: ResidencyIn, property_id: Optional[str] = None
) -> str:
    profile = _require_profile(db, session)
    ensure_editable(ProfileSnapshot.from_row(profile), FunnelStep.RESIDENCY)

    profile.has_eu_residency = TriState.from_db(data.has_eu_residency).to_db()
    _commit(db)

    return step_url(FunnelStep.KYC, property_id)


def enter_kyc(db: Session, session: UserSession, property_id: Optional[str] = None) -> Optional[str]:
    """
    Loading the KYC step for a property binds a pending_kyc purchase to it
    while verification has not started. Returns that purchase id, if any.
    """
    snapshot = get_snapshot(db, session)
    if not property_id or snapshot.kyc_status is not KycStatus.NOT_STARTED:
        return None
    purchase = PurchaseLifecycleManager(db).ensure_for_kyc(session, property_id)
    return purchase.id


def documents_submitted(
    db: Session, session: UserSession, property_id: Optional[str] = None
) -> Tuple[str, Optional[str]]:
    """
    Record the identity-verification completion signal.

    Returns:
        (redirect_to, purchase_id): the purchase page when the funnel was
        entered for a property, the profile page otherwise
    """
    profile = _require_profile(db, session)
    ensure_kyc_reachable(ProfileSnapshot.from_row(profile), property_id)

    if profile.kyc_verified is not True:
        profile.kyc_verified = True
        profile.kyc_verified_at = datetime.utcnow()
        _commit(db)
        logger.info(f"KYC verified for user {session.user_id}")

    purchase = PurchaseLifecycleManager(db).advance_after_kyc(session, property_id)
    if purchase is not None:
        return f"/purchases/{purchase.id}", purchase.id
    return PROFILE_PATH, None
