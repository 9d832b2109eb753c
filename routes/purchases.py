# routes/purchases.py
"""
Buyer purchase routes: list, detail, withdrawal, message thread, loan
application and direct payment.
"""
from typing import List, Literal
import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_session
from schema.purchase import (
    LoanApplicationIn,
    PaymentDetailsOut,
    PaymentIn,
    PurchaseDetailOut,
    PurchaseMessageIn,
    PurchaseMessageOut,
    PurchaseOut,
)
from src.purchase_lifecycle import PurchaseLifecycleManager
from src.session import UserSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/purchases", tags=["Purchases"])


@router.get("", response_model=List[PurchaseOut])
def list_purchases(
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_session),
):
    """Caller's purchases, newest first."""
    manager = PurchaseLifecycleManager(db)
    return [manager.to_out(p) for p in manager.list_purchases(session)]


@router.get("/{purchase_id}", response_model=PurchaseDetailOut)
def get_purchase(
    purchase_id: str,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_session),
):
    manager = PurchaseLifecycleManager(db)
    return manager.to_out(manager.get_purchase(session, purchase_id), detail=True)


@router.delete("/{purchase_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_purchase(
    purchase_id: str,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_session),
):
    """Withdraw a purchase that has not reached processing yet."""
    PurchaseLifecycleManager(db).delete_purchase(session, purchase_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------- Messages ----------

@router.get("/{purchase_id}/messages", response_model=List[PurchaseMessageOut])
def list_messages(
    purchase_id: str,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_session),
):
    return PurchaseLifecycleManager(db).list_messages(session, purchase_id)


@router.post("/{purchase_id}/messages", response_model=PurchaseMessageOut, status_code=status.HTTP_201_CREATED)
def post_message(
    purchase_id: str,
    body: PurchaseMessageIn,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_session),
):
    return PurchaseLifecycleManager(db).append_message(session, purchase_id, body.message)


# ---------- Financing & payment ----------

@router.post("/{purchase_id}/loan-application", response_model=PurchaseDetailOut)
def submit_loan_application(
    purchase_id: str,
    body: LoanApplicationIn,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_session),
):
    manager = PurchaseLifecycleManager(db)
    purchase = manager.submit_loan_application(
        session, purchase_id, [doc.model_dump() for doc in body.documents]
    )
    return manager.to_out(purchase, detail=True)


@router.get("/{purchase_id}/payment", response_model=PaymentDetailsOut)
def get_payment_details(
    purchase_id: str,
    currency: Literal["CFA", "EUR"] = "CFA",
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_session),
):
    return PurchaseLifecycleManager(db).payment_details(session, purchase_id, currency)


@router.post("/{purchase_id}/payment", response_model=PurchaseOut)
def complete_payment(
    purchase_id: str,
    body: PaymentIn,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_session),
):
    """Complete the direct payment. Repeating the call on a paid purchase changes nothing."""
    manager = PurchaseLifecycleManager(db)
    purchase = manager.complete_payment(session, purchase_id, body.method)
    logger.info("Payment recorded for purchase %s via %s", purchase.id, body.method)
    return manager.to_out(purchase)
