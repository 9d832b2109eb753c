from __future__ import annotations
from typing import List, Optional, Literal
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, constr

from schema.property import PropertyOut

PurchaseStatusLiteral = Literal[
    "pending_kyc",
    "pending_documents",
    "pending_payment",
    "processing",
    "completed",
    "cancelled",
]
PaymentMethodLiteral = Literal["bank", "instant", "card"]


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------
class PurchaseMessageIn(BaseModel):
    message: constr(strip_whitespace=True, min_length=1, max_length=4000)


class PurchaseMessageOut(BaseModel):
    id: int
    user_id: Optional[int] = None
    message: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Loan application
# ---------------------------------------------------------------------------
class LoanDocumentIn(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=255)
    url: Optional[str] = None


class LoanApplicationIn(BaseModel):
    documents: List[LoanDocumentIn] = Field(..., min_length=1)


class LoanDocumentOut(BaseModel):
    id: str
    name: str
    url: str = "#"


class LoanApplicationOut(BaseModel):
    status: str = "pending"
    documents: List[LoanDocumentOut] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Purchases
# ---------------------------------------------------------------------------
class PurchaseOut(BaseModel):
    id: str
    property_id: str
    status: PurchaseStatusLiteral
    status_label: str
    can_delete: bool
    payment_method: Optional[PaymentMethodLiteral] = None
    property: Optional[PropertyOut] = None
    created_at: datetime
    updated_at: datetime


class PurchaseDetailOut(PurchaseOut):
    messages: List[PurchaseMessageOut] = Field(default_factory=list)
    loan_application: Optional[LoanApplicationOut] = None


class PurchaseInitiatedOut(BaseModel):
    purchase_id: str
    status: PurchaseStatusLiteral
    redirect_to: str
    reused: bool = False


# ---------------------------------------------------------------------------
# Payment
# ---------------------------------------------------------------------------
class PaymentMethodOut(BaseModel):
    key: PaymentMethodLiteral
    label: str


class PaymentDetailsOut(BaseModel):
    purchase_id: str
    status: PurchaseStatusLiteral
    amount: float
    amount_display: str
    currency: Literal["CFA", "EUR"] = "CFA"
    property: PropertyOut
    methods: List[PaymentMethodOut] = Field(default_factory=list)


class PaymentIn(BaseModel):
    method: PaymentMethodLiteral
