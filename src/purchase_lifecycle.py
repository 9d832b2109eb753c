# src/purchase_lifecycle.py
"""
Purchase Lifecycle Manager

Status flow:
    pending_kyc -> pending_documents -> pending_payment -> processing -> completed
    (cancelled reachable from any state before completed)

Features:
- State machine validation of every transition
- Guarded conditional updates: a transition only applies while the row is
  still in the expected status, so repeated or concurrent completions are
  no-ops instead of double transitions
- Append-only message thread per purchase
- Deletion limited to the pre-commitment statuses, messages first
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from model.profiles.buyer import UserProfile
from model.property.property import Property
from model.purchase import PropertyPurchase, PurchaseMessage
from schema.purchase import (
    LoanApplicationOut,
    PaymentDetailsOut,
    PaymentMethodOut,
    PurchaseDetailOut,
    PurchaseMessageOut,
    PurchaseOut,
)
from src.catalog import normalize_rows
from src.currency import format_currency
from src.errors import (
    InvalidStatusTransitionError,
    NotFoundError,
    PropertyUnavailableError,
    PurchaseNotDeletableError,
    ValidationFailedError,
)
from src.funnel import FunnelStep, step_url
from src.id_generator import PREFIX_MAP, generate_document_id, generate_purchase_id, validate_public_id
from src.session import UserSession

logger = logging.getLogger(__name__)


class PurchaseStatus(str, Enum):
    """Purchase record status values."""
    PENDING_KYC = "pending_kyc"
    PENDING_DOCUMENTS = "pending_documents"
    PENDING_PAYMENT = "pending_payment"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


STATUS_LABELS: Dict[PurchaseStatus, str] = {
    PurchaseStatus.PENDING_KYC: "En attente de vérification KYC",
    PurchaseStatus.PENDING_DOCUMENTS: "Documents à fournir",
    PurchaseStatus.PENDING_PAYMENT: "En attente de paiement",
    PurchaseStatus.PROCESSING: "En cours de traitement",
    PurchaseStatus.COMPLETED: "Achat finalisé",
    PurchaseStatus.CANCELLED: "Annulé",
}

PAYMENT_METHOD_LABELS = {
    "bank": "Virement bancaire",
    "instant": "Virement SEPA instantané",
    "card": "Carte bancaire",
}

# Statuses in which the buyer may still withdraw (delete) a purchase
DELETABLE_STATUSES = frozenset({
    PurchaseStatus.PENDING_KYC,
    PurchaseStatus.PENDING_DOCUMENTS,
    PurchaseStatus.PENDING_PAYMENT,
})

CLOSED_STATUSES = frozenset({PurchaseStatus.COMPLETED, PurchaseStatus.CANCELLED})


def status_label(status: str) -> str:
    return STATUS_LABELS[PurchaseStatus(status)]


def can_delete(status: str) -> bool:
    return PurchaseStatus(status) in DELETABLE_STATUSES


class PurchaseStateMachine:
    """
    Defines and validates purchase status transitions.

    Transitions only move forward; nothing leaves completed or cancelled.
    """

    TRANSITIONS: Dict[PurchaseStatus, Set[PurchaseStatus]] = {
        PurchaseStatus.PENDING_KYC: {
            PurchaseStatus.PENDING_DOCUMENTS,
            PurchaseStatus.PENDING_PAYMENT,
            PurchaseStatus.CANCELLED,
        },
        PurchaseStatus.PENDING_DOCUMENTS: {
            PurchaseStatus.PENDING_PAYMENT,
            PurchaseStatus.CANCELLED,
        },
        PurchaseStatus.PENDING_PAYMENT: {
            PurchaseStatus.PROCESSING,
            PurchaseStatus.COMPLETED,
            PurchaseStatus.CANCELLED,
        },
        PurchaseStatus.PROCESSING: {
            PurchaseStatus.COMPLETED,
            PurchaseStatus.CANCELLED,
        },
        PurchaseStatus.COMPLETED: set(),  # Terminal state
        PurchaseStatus.CANCELLED: set(),  # Terminal state
    }

    @classmethod
    def can_transition(cls, from_status: PurchaseStatus, to_status: PurchaseStatus) -> bool:
        """Check if purchase status transition is valid."""
        return to_status in cls.TRANSITIONS.get(from_status, set())

    @classmethod
    def validate_transition(cls, from_status: PurchaseStatus, to_status: PurchaseStatus) -> None:
        """Validate purchase transition or raise exception."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidStatusTransitionError(
                f"Invalid purchase status transition: {from_status.value} -> {to_status.value}"
            )


class PurchaseLifecycleManager:
    """
    Creates and advances the caller's purchases.

    Every method takes the caller's ``UserSession``; purchases owned by
    someone else are reported as not found.
    """

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_purchase(self, session: UserSession, purchase_id: str) -> PropertyPurchase:
        if not validate_public_id(purchase_id, PREFIX_MAP["purchase"]):
            raise NotFoundError(f"Purchase {purchase_id} not found")

        purchase = self.db.scalar(
            select(PropertyPurchase).where(
                PropertyPurchase.id == purchase_id,
                PropertyPurchase.user_id == session.user_id,
            )
        )
        if purchase is None:
            raise NotFoundError(f"Purchase {purchase_id} not found")
        return purchase

    def list_purchases(self, session: UserSession) -> List[PropertyPurchase]:
        """Caller's purchases, newest first."""
        return list(self.db.scalars(
            select(PropertyPurchase)
            .where(PropertyPurchase.user_id == session.user_id)
            .order_by(PropertyPurchase.created_at.desc(), PropertyPurchase.id.desc())
        ).all())

    def find_open_purchase(self, session: UserSession, property_id: str) -> Optional[PropertyPurchase]:
        return self.db.scalar(
            select(PropertyPurchase)
            .where(
                PropertyPurchase.user_id == session.user_id,
                PropertyPurchase.property_id == property_id,
                PropertyPurchase.status.notin_([s.value for s in CLOSED_STATUSES]),
            )
            .order_by(PropertyPurchase.created_at.desc())
            .limit(1)
        )

    def latest_open_purchase(self, session: UserSession) -> Optional[PropertyPurchase]:
        return self.db.scalar(
            select(PropertyPurchase)
            .where(
                PropertyPurchase.user_id == session.user_id,
                PropertyPurchase.status.notin_([s.value for s in CLOSED_STATUSES]),
            )
            .order_by(PropertyPurchase.created_at.desc(), PropertyPurchase.id.desc())
            .limit(1)
        )

    def list_messages(self, session: UserSession, purchase_id: str) -> List[PurchaseMessage]:
        purchase = self.get_purchase(session, purchase_id)
        return list(self.db.scalars(
            select(PurchaseMessage)
            .where(PurchaseMessage.purchase_id == purchase.id)
            .order_by(PurchaseMessage.created_at, PurchaseMessage.id)
        ).all())

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------
    def _get_property(self, property_id: str) -> Property:
        prop = self.db.get(Property, property_id)
        if prop is None:
            raise NotFoundError(f"Property {property_id} not found")
        return prop

    def _open_or_create(self, session: UserSession, property_id: str) -> Tuple[PropertyPurchase, bool]:
        """Reuse the caller's open purchase of this property, or insert a pending_kyc one."""
        existing = self.find_open_purchase(session, property_id)
        if existing is not None:
            return existing, True

        prop = self._get_property(property_id)
        if prop.status != "available":
            logger.warning(f"User {session.user_id} tried to acquire sold property {property_id}")
            raise PropertyUnavailableError(f"Property {property_id} is no longer available")

        purchase = PropertyPurchase(
            id=generate_purchase_id(),
            user_id=session.user_id,
            property_id=property_id,
            status=PurchaseStatus.PENDING_KYC.value,
        )
        self.db.add(purchase)
        self._commit()
        self.db.refresh(purchase)
        logger.info(f"Purchase {purchase.id} created for property {property_id} (user {session.user_id})")
        return purchase, False

    def initiate(self, session: UserSession, property_id: str) -> Tuple[PropertyPurchase, str, bool]:
        """
        Start acquiring a property.

        Returns:
            (purchase, redirect_to, reused): the payment page when the buyer
            is already KYC-verified, the start of the funnel otherwise
        """
        purchase, reused = self._open_or_create(session, property_id)

        if self._kyc_verified(session) and purchase.status == PurchaseStatus.PENDING_KYC.value:
            self._transition(purchase, PurchaseStatus.PENDING_KYC, PurchaseStatus.PENDING_PAYMENT)

        status = PurchaseStatus(purchase.status)
        if status is PurchaseStatus.PENDING_PAYMENT:
            redirect_to = f"/payment/{purchase.id}"
        elif status is PurchaseStatus.PENDING_KYC:
            redirect_to = step_url(FunnelStep.PERSONAL, property_id)
        else:
            redirect_to = f"/purchases/{purchase.id}"
        return purchase, redirect_to, reused

    def ensure_for_kyc(self, session: UserSession, property_id: str) -> PropertyPurchase:
        """Bind a pending_kyc purchase to the property the KYC step was opened for."""
        purchase, _ = self._open_or_create(session, property_id)
        return purchase

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def _kyc_verified(self, session: UserSession) -> bool:
        return bool(self.db.scalar(
            select(UserProfile.kyc_verified).where(UserProfile.user_id == session.user_id)
        ))

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Purchase update failed; rolled back")
            raise

    def _transition(
        self,
        purchase: PropertyPurchase,
        expected: PurchaseStatus,
        target: PurchaseStatus,
        **values,
    ) -> bool:
        """
        Move ``purchase`` from ``expected`` to ``target`` with a conditional update.

        Returns:
            True when this call applied the transition, False when the row was
            already at ``target`` (no-op)

        Raises:
            InvalidStatusTransitionError: transition not allowed, or the row
            moved to another status concurrently
        """
        PurchaseStateMachine.validate_transition(expected, target)

        result = self.db.execute(
            update(PropertyPurchase)
            .where(PropertyPurchase.id == purchase.id, PropertyPurchase.status == expected.value)
            .values(status=target.value, updated_at=datetime.utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.rollback()
            self.db.refresh(purchase)
            if purchase.status == target.value:
                logger.info(f"Purchase {purchase.id} already {target.value}; nothing to do")
                return False
            raise InvalidStatusTransitionError(
                f"Purchase {purchase.id} is {purchase.status}, expected {expected.value}"
            )

        self._commit()
        self.db.refresh(purchase)
        logger.info(f"Purchase {purchase.id}: {expected.value} -> {target.value}")
        return True

    def advance_after_kyc(
        self, session: UserSession, property_id: Optional[str] = None
    ) -> Optional[PropertyPurchase]:
        """
        Move every pending_kyc purchase of a newly verified buyer to pending_payment.

        Returns the purchase bound to ``property_id`` when there is one.
        """
        pending = self.db.scalars(
            select(PropertyPurchase).where(
                PropertyPurchase.user_id == session.user_id,
                PropertyPurchase.status == PurchaseStatus.PENDING_KYC.value,
            )
        ).all()
        for purchase in pending:
            self._transition(purchase, PurchaseStatus.PENDING_KYC, PurchaseStatus.PENDING_PAYMENT)

        if property_id is None:
            return None
        return self.find_open_purchase(session, property_id)

    def complete_payment(self, session: UserSession, purchase_id: str, method: str) -> PropertyPurchase:
        """Record a direct payment. Repeating it on a completed purchase is a no-op."""
        if method not in PAYMENT_METHOD_LABELS:
            raise ValidationFailedError(f"Unknown payment method: {method}")

        purchase = self.get_purchase(session, purchase_id)
        if purchase.status == PurchaseStatus.COMPLETED.value:
            return purchase
        if purchase.status != PurchaseStatus.PENDING_PAYMENT.value:
            raise InvalidStatusTransitionError(
                f"Purchase {purchase.id} cannot be paid while {purchase.status}"
            )

        self._transition(
            purchase, PurchaseStatus.PENDING_PAYMENT, PurchaseStatus.COMPLETED, payment_method=method,
        )
        return purchase

    def submit_loan_application(
        self, session: UserSession, purchase_id: str, documents: List[dict]
    ) -> PropertyPurchase:
        """Attach loan documents and hand the purchase over to processing."""
        if not documents:
            raise ValidationFailedError("A loan application needs at least one document")

        purchase = self.get_purchase(session, purchase_id)
        if purchase.status != PurchaseStatus.PENDING_PAYMENT.value:
            raise InvalidStatusTransitionError(
                f"Purchase {purchase.id} cannot take a loan application while {purchase.status}"
            )

        application = {
            "status": "pending",
            "documents": [
                {"id": generate_document_id(), "name": doc["name"], "url": doc.get("url") or "#"}
                for doc in documents
            ],
        }
        applied = self._transition(
            purchase, PurchaseStatus.PENDING_PAYMENT, PurchaseStatus.PROCESSING, loan_application=application,
        )
        if not applied:
            # another application won the race; this one's documents were not stored
            raise InvalidStatusTransitionError(f"Purchase {purchase.id} already has a loan application")
        return purchase

    # ------------------------------------------------------------------
    # Messages & deletion
    # ------------------------------------------------------------------
    def append_message(self, session: UserSession, purchase_id: str, text: str) -> PurchaseMessage:
        body = (text or "").strip()
        if not body:
            raise ValidationFailedError("Message cannot be empty")

        purchase = self.get_purchase(session, purchase_id)
        message = PurchaseMessage(
            purchase_id=purchase.id,
            user_id=session.user_id,
            message=body,
            created_at=datetime.utcnow(),
        )
        self.db.add(message)
        self._commit()
        self.db.refresh(message)
        return message

    def delete_purchase(self, session: UserSession, purchase_id: str) -> None:
        """Withdraw a purchase still in a pre-commitment status, with its messages."""
        purchase = self.get_purchase(session, purchase_id)
        if not can_delete(purchase.status):
            raise PurchaseNotDeletableError(
                f"Purchase {purchase.id} cannot be deleted while {purchase.status}"
            )

        try:
            self.db.execute(
                delete(PurchaseMessage).where(PurchaseMessage.purchase_id == purchase.id)
            )
            result = self.db.execute(
                delete(PropertyPurchase).where(
                    PropertyPurchase.id == purchase.id,
                    PropertyPurchase.status.in_([s.value for s in DELETABLE_STATUSES]),
                )
            )
            if result.rowcount == 0:
                self.db.rollback()
                raise PurchaseNotDeletableError(f"Purchase {purchase.id} changed status; not deleted")
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Failed to delete purchase {purchase.id}")
            raise

        logger.info(f"Purchase {purchase_id} deleted by user {session.user_id}")

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    def to_out(self, purchase: PropertyPurchase, detail: bool = False):
        prop = normalize_rows(self.db, [purchase.property])[0] if purchase.property else None
        base = dict(
            id=purchase.id,
            property_id=purchase.property_id,
            status=purchase.status,
            status_label=status_label(purchase.status),
            can_delete=can_delete(purchase.status),
            payment_method=purchase.payment_method,
            property=prop,
            created_at=purchase.created_at,
            updated_at=purchase.updated_at,
        )
        if not detail:
            return PurchaseOut(**base)

        return PurchaseDetailOut(
            **base,
            messages=[PurchaseMessageOut.model_validate(m) for m in purchase.messages],
            loan_application=(
                LoanApplicationOut(**purchase.loan_application) if purchase.loan_application else None
            ),
        )

    def payment_details(self, session: UserSession, purchase_id: str, currency: str = "CFA") -> PaymentDetailsOut:
        """Amount due now is the initial payment of the property's schedule."""
        purchase = self.get_purchase(session, purchase_id)
        prop = normalize_rows(self.db, [purchase.property])[0]
        amount = prop.payment_schedule.initial_payment
        return PaymentDetailsOut(
            purchase_id=purchase.id,
            status=purchase.status,
            amount=amount,
            amount_display=format_currency(amount, currency),
            currency=currency,
            property=prop,
            methods=[PaymentMethodOut(key=k, label=v) for k, v in PAYMENT_METHOD_LABELS.items()],
        )
