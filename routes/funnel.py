# routes/funnel.py
"""
Purchase funnel routes: load a step (with redirect/lock decisions) and
submit each step.

Flow: personal -> professional -> [residency] -> kyc
"""
from typing import Optional
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_session
from schema.buyers import (
    FunnelStateOut, StepNavOut, StepResultOut,
    PersonalInfoIn, ProfessionalInfoIn, ResidencyIn, KycSubmittedIn,
)
from src import profile_service
from src.funnel import FunnelState, FunnelStep, resolve_step, step_navigation
from src.session import UserSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/funnel", tags=["Purchase Funnel"])


def _state_out(state: FunnelState, purchase_id: Optional[str] = None) -> FunnelStateOut:
    return FunnelStateOut(
        current_step=state.current_step.value,
        requested_step=state.requested_step.value,
        editable=state.editable,
        kyc_status=state.kyc_status.value,
        redirect_to=state.redirect_to,
        notice=state.notice,
        steps=[
            StepNavOut(
                step=nav.step.value,
                path=nav.path,
                label=nav.label,
                completed=nav.completed,
                current=nav.current,
                disabled=nav.disabled,
            )
            for nav in step_navigation(state.requested_step, state.kyc_status)
        ],
        purchase_id=purchase_id,
    )


# ---------- Load ----------

@router.get("/state", response_model=FunnelStateOut)
def get_funnel_state(
    property_id: Optional[str] = None,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_session),
):
    """Where the caller currently stands in the funnel."""
    snapshot = profile_service.get_snapshot(db, session)
    return _state_out(resolve_step(snapshot, property_id=property_id))


@router.get("/{step}", response_model=FunnelStateOut)
def load_step(
    step: FunnelStep,
    property_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_session),
):
    """
    Resolve a step page load.

    - `redirect_to` set: the step was already answered (or is too far ahead)
    - `editable=false` with `notice`: KYC has started, the step is read-only
    - loading `kyc` with a `property_id` binds a pending purchase to it
    """
    snapshot = profile_service.get_snapshot(db, session)
    state = resolve_step(snapshot, requested=step, property_id=property_id)

    purchase_id = None
    if step is FunnelStep.KYC and state.redirect_to is None:
        purchase_id = profile_service.enter_kyc(db, session, property_id)
    return _state_out(state, purchase_id)


# ---------- Submit ----------

@router.post("/personal", response_model=StepResultOut)
def submit_personal(
    body: PersonalInfoIn,
    property_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_session),
):
    redirect_to = profile_service.save_personal_info(db, session, body, property_id)
    return StepResultOut(step=FunnelStep.PERSONAL.value, redirect_to=redirect_to)


@router.post("/professional", response_model=StepResultOut)
def submit_professional(
    body: ProfessionalInfoIn,
    property_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_session),
):
    redirect_to = profile_service.save_professional_info(db, session, body, property_id)
    return StepResultOut(step=FunnelStep.PROFESSIONAL.value, redirect_to=redirect_to)


@router.post("/residency", response_model=StepResultOut)
def submit_residency(
    body: ResidencyIn,
    property_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_session),
):
    redirect_to = profile_service.save_residency(db, session, body, property_id)
    return StepResultOut(step=FunnelStep.RESIDENCY.value, redirect_to=redirect_to)


@router.post("/kyc/documents-submitted", response_model=StepResultOut)
def kyc_documents_submitted(
    body: Optional[KycSubmittedIn] = None,
    property_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_session),
):
    """Identity-verification widget reported the documents as submitted."""
    bound_property = property_id or (body.property_id if body else None)
    redirect_to, purchase_id = profile_service.documents_submitted(db, session, bound_property)
    return StepResultOut(step=FunnelStep.KYC.value, redirect_to=redirect_to, purchase_id=purchase_id)
