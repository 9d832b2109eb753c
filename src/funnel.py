# src/funnel.py
"""
Purchase Funnel State Resolver

Ordered steps: personal -> professional -> residency -> kyc.

- Residency is only asked to holders of a European phone number
- Once KYC has started (in progress or verified) the profile steps are
  read-only, and ``ensure_editable`` refuses any mutation
- Everything here is pure: callers load the profile and pass a snapshot in
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional
from urllib.parse import urlencode

from config.settings import EUROPEAN_CALLING_CODES
from src.errors import FunnelLockedError

logger = logging.getLogger(__name__)

PROFILE_PATH = "/profile"


class TriState(str, Enum):
    """A yes/no answer that may not have been given yet."""
    UNSET = "unset"
    TRUE = "true"
    FALSE = "false"

    @classmethod
    def from_db(cls, value: Optional[bool]) -> "TriState":
        if value is None:
            return cls.UNSET
        return cls.TRUE if value else cls.FALSE

    def to_db(self) -> Optional[bool]:
        if self is TriState.UNSET:
            return None
        return self is TriState.TRUE


class KycStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    VERIFIED = "verified"

    @classmethod
    def from_tristate(cls, value: TriState) -> "KycStatus":
        return {
            TriState.UNSET: cls.NOT_STARTED,
            TriState.FALSE: cls.IN_PROGRESS,
            TriState.TRUE: cls.VERIFIED,
        }[value]


class FunnelStep(str, Enum):
    PERSONAL = "personal"
    PROFESSIONAL = "professional"
    RESIDENCY = "residency"
    KYC = "kyc"

    @property
    def path(self) -> str:
        return f"/purchase/{self.value}"

    @property
    def label(self) -> str:
        return STEP_LABELS[self]


STEP_ORDER: List[FunnelStep] = [
    FunnelStep.PERSONAL,
    FunnelStep.PROFESSIONAL,
    FunnelStep.RESIDENCY,
    FunnelStep.KYC,
]

STEP_LABELS = {
    FunnelStep.PERSONAL: "Informations Personnelles",
    FunnelStep.PROFESSIONAL: "Informations Professionnelles",
    FunnelStep.RESIDENCY: "Résidence",
    FunnelStep.KYC: "Vérification KYC",
}

LOCKED_NOTICES = {
    KycStatus.IN_PROGRESS: (
        "Vous ne pouvez plus modifier vos informations car votre dossier KYC "
        "est en cours de vérification."
    ),
    KycStatus.VERIFIED: (
        "Vous ne pouvez plus modifier vos informations car votre dossier KYC "
        "est déjà vérifié."
    ),
}

INCOMPLETE_NOTICE = "Veuillez compléter les étapes précédentes avant la vérification d'identité."


@dataclass(frozen=True)
class ProfileSnapshot:
    """Funnel-relevant fields of a user profile (``exists=False`` when no row yet)."""

    exists: bool = False
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    professional_activity: Optional[str] = None
    revenue_range: Optional[str] = None
    has_eu_residency: TriState = TriState.UNSET
    kyc_verified: TriState = TriState.UNSET

    @classmethod
    def from_row(cls, row) -> "ProfileSnapshot":
        if row is None:
            return cls()
        return cls(
            exists=True,
            first_name=row.first_name,
            last_name=row.last_name,
            country=row.country,
            phone=row.phone,
            professional_activity=row.professional_activity,
            revenue_range=row.revenue_range,
            has_eu_residency=TriState.from_db(row.has_eu_residency),
            kyc_verified=TriState.from_db(row.kyc_verified),
        )

    @property
    def kyc_status(self) -> KycStatus:
        return KycStatus.from_tristate(self.kyc_verified)

    @property
    def has_personal_info(self) -> bool:
        return self.exists and all((self.first_name, self.last_name, self.country, self.phone))

    @property
    def has_professional_info(self) -> bool:
        return bool(self.professional_activity and self.revenue_range)


@dataclass(frozen=True)
class FunnelState:
    current_step: FunnelStep
    requested_step: FunnelStep
    editable: bool
    kyc_status: KycStatus
    redirect_to: Optional[str] = None
    notice: Optional[str] = None


@dataclass(frozen=True)
class StepNav:
    step: FunnelStep
    path: str
    label: str
    completed: bool
    current: bool
    disabled: bool


# ----------------------------------------------------------------------------
# Rules
# ----------------------------------------------------------------------------
def is_european_phone(phone: Optional[str], codes: Optional[Iterable[str]] = None) -> bool:
    """True when the phone number starts with a recognized European calling code."""
    if not phone:
        return False
    codes = tuple(codes) if codes is not None else EUROPEAN_CALLING_CODES
    return phone.strip().startswith(codes)


def is_locked(profile: ProfileSnapshot) -> bool:
    return profile.kyc_status is not KycStatus.NOT_STARTED


def step_after_professional(profile: ProfileSnapshot) -> FunnelStep:
    return FunnelStep.RESIDENCY if is_european_phone(profile.phone) else FunnelStep.KYC


def next_step(step: FunnelStep, profile: ProfileSnapshot) -> Optional[FunnelStep]:
    """Step reached after a successful submit of ``step`` (None after KYC)."""
    if step is FunnelStep.PERSONAL:
        return FunnelStep.PROFESSIONAL
    if step is FunnelStep.PROFESSIONAL:
        return step_after_professional(profile)
    if step is FunnelStep.RESIDENCY:
        return FunnelStep.KYC
    return None


def current_step(profile: ProfileSnapshot) -> FunnelStep:
    """First step whose data is still missing."""
    if not profile.has_personal_info:
        return FunnelStep.PERSONAL
    if not profile.has_professional_info:
        return FunnelStep.PROFESSIONAL
    if is_european_phone(profile.phone) and profile.has_eu_residency is TriState.UNSET:
        return FunnelStep.RESIDENCY
    return FunnelStep.KYC


def step_index(path: str) -> int:
    """Position of a step path in the ordered funnel, -1 when unknown."""
    clean = path.split("?", 1)[0].rstrip("/")
    for index, step in enumerate(STEP_ORDER):
        if step.path == clean:
            return index
    return -1


def is_step_disabled(step_path: str, current_path: str, kyc_status: KycStatus) -> bool:
    """Direct navigation rule: no jumping more than one step ahead, nothing once KYC started."""
    if kyc_status in (KycStatus.IN_PROGRESS, KycStatus.VERIFIED):
        return True
    return step_index(step_path) > step_index(current_path) + 1


def step_navigation(viewing: FunnelStep, kyc_status: KycStatus) -> List[StepNav]:
    current_index = STEP_ORDER.index(viewing)
    return [
        StepNav(
            step=step,
            path=step.path,
            label=step.label,
            completed=index < current_index,
            current=step is viewing,
            disabled=is_step_disabled(step.path, viewing.path, kyc_status),
        )
        for index, step in enumerate(STEP_ORDER)
    ]


def step_url(step: FunnelStep, property_id: Optional[str] = None) -> str:
    if property_id:
        return f"{step.path}?{urlencode({'property_id': property_id})}"
    return step.path


# ----------------------------------------------------------------------------
# Resolver
# ----------------------------------------------------------------------------
def resolve_step(
    profile: ProfileSnapshot,
    requested: Optional[FunnelStep] = None,
    property_id: Optional[str] = None,
) -> FunnelState:
    """
    Decide what a user loading a funnel step should see.

    Args:
        profile: Snapshot of the caller's profile
        requested: Step being loaded; defaults to the current step
        property_id: Property the funnel was entered for, kept on redirects

    Returns:
        FunnelState with ``redirect_to`` set when the user must be sent
        elsewhere, or ``editable=False`` plus a notice when the step is locked
    """
    current = current_step(profile)
    requested = requested or current
    kyc_status = profile.kyc_status

    def _state(editable: bool, redirect: Optional[FunnelStep] = None, notice: Optional[str] = None):
        return FunnelState(
            current_step=current,
            requested_step=requested,
            editable=editable,
            kyc_status=kyc_status,
            redirect_to=step_url(redirect, property_id) if redirect else None,
            notice=notice,
        )

    # On-load skips for steps that were already answered
    if requested is FunnelStep.PROFESSIONAL:
        if not profile.exists:
            return _state(False, redirect=FunnelStep.PERSONAL)
        if profile.has_professional_info:
            return _state(False, redirect=step_after_professional(profile))

    if requested is FunnelStep.RESIDENCY and profile.has_eu_residency is not TriState.UNSET:
        return _state(False, redirect=FunnelStep.KYC)

    if requested is FunnelStep.KYC:
        if kyc_status is KycStatus.NOT_STARTED and STEP_ORDER.index(requested) > STEP_ORDER.index(current) + 1:
            return _state(False, redirect=current)
        return _state(kyc_status is not KycStatus.VERIFIED)

    if is_locked(profile):
        return _state(False, notice=LOCKED_NOTICES[kyc_status])

    if STEP_ORDER.index(requested) > STEP_ORDER.index(current) + 1:
        return _state(False, redirect=current)

    return _state(True)


def ensure_kyc_reachable(profile: ProfileSnapshot, property_id: Optional[str] = None) -> None:
    """Refuse the documents-submitted signal while earlier steps are unanswered."""
    if profile.kyc_status is not KycStatus.NOT_STARTED:
        return
    current = current_step(profile)
    if current is not FunnelStep.KYC:
        logger.warning(f"Refused KYC submission: funnel still at {current.value}")
        raise FunnelLockedError(INCOMPLETE_NOTICE, redirect_to=step_url(current, property_id))


def ensure_editable(profile: ProfileSnapshot, step: FunnelStep) -> None:
    """Refuse a profile-step submission once KYC has started."""
    if step is FunnelStep.KYC:
        return
    if is_locked(profile):
        logger.warning(f"Refused {step.value} submission: KYC is {profile.kyc_status.value}")
        raise FunnelLockedError(LOCKED_NOTICES[profile.kyc_status], redirect_to=PROFILE_PATH)
