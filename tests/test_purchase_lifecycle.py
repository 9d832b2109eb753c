"""
Tests for the purchase lifecycle: state machine, creation and reuse,
KYC-driven advancement, payment idempotence, loan applications, messages
and deletion.
"""
import pytest
from sqlalchemy import func, select

from model.purchase import PropertyPurchase, PurchaseMessage
from src.errors import (
    InvalidStatusTransitionError,
    NotFoundError,
    PropertyUnavailableError,
    PurchaseNotDeletableError,
    ValidationFailedError,
)
from src.id_generator import validate_public_id
from src.purchase_lifecycle import (
    PurchaseLifecycleManager,
    PurchaseStateMachine,
    PurchaseStatus,
    can_delete,
    status_label,
)


@pytest.fixture
def manager(db_session):
    return PurchaseLifecycleManager(db_session)


def set_status(db_session, purchase, status):
    purchase.status = status
    db_session.commit()
    db_session.refresh(purchase)
    return purchase


# ===================================================================
# State Machine Tests
# ===================================================================

class TestStateMachine:
    """Test purchase state machine validation."""

    def test_valid_transitions(self):
        assert PurchaseStateMachine.can_transition(PurchaseStatus.PENDING_KYC, PurchaseStatus.PENDING_PAYMENT)
        assert PurchaseStateMachine.can_transition(PurchaseStatus.PENDING_PAYMENT, PurchaseStatus.COMPLETED)
        assert PurchaseStateMachine.can_transition(PurchaseStatus.PENDING_PAYMENT, PurchaseStatus.PROCESSING)
        assert PurchaseStateMachine.can_transition(PurchaseStatus.PROCESSING, PurchaseStatus.COMPLETED)

    def test_terminal_states(self):
        """Nothing leaves completed or cancelled."""
        for target in PurchaseStatus:
            assert not PurchaseStateMachine.can_transition(PurchaseStatus.COMPLETED, target)
            assert not PurchaseStateMachine.can_transition(PurchaseStatus.CANCELLED, target)

    def test_no_backward_transition(self):
        with pytest.raises(InvalidStatusTransitionError):
            PurchaseStateMachine.validate_transition(PurchaseStatus.PENDING_PAYMENT, PurchaseStatus.PENDING_KYC)

    def test_labels_and_deletability(self):
        assert status_label("pending_kyc") == "En attente de vérification KYC"
        assert can_delete("pending_kyc")
        assert can_delete("pending_documents")
        assert can_delete("pending_payment")
        assert not can_delete("processing")
        assert not can_delete("completed")


# ===================================================================
# Creation
# ===================================================================

class TestInitiate:
    """Starting a purchase."""

    def test_unverified_buyer_enters_funnel(self, manager, buyer_session, house):
        purchase, redirect_to, reused = manager.initiate(buyer_session, house.id)

        assert purchase.status == "pending_kyc"
        assert validate_public_id(purchase.id, "PUR")
        assert redirect_to == f"/purchase/personal?property_id={house.id}"
        assert reused is False

    def test_open_purchase_is_reused(self, manager, buyer_session, house):
        first, _, _ = manager.initiate(buyer_session, house.id)
        second, _, reused = manager.initiate(buyer_session, house.id)

        assert second.id == first.id
        assert reused is True

    def test_verified_buyer_goes_to_payment(self, manager, buyer, buyer_session, make_profile, house):
        make_profile(buyer, kyc_verified=True)

        purchase, redirect_to, _ = manager.initiate(buyer_session, house.id)

        assert purchase.status == "pending_payment"
        assert redirect_to == f"/payment/{purchase.id}"

    def test_sold_property_is_refused(self, manager, buyer_session, sold_house):
        with pytest.raises(PropertyUnavailableError):
            manager.initiate(buyer_session, sold_house.id)

    def test_unknown_property(self, manager, buyer_session, countries):
        with pytest.raises(NotFoundError):
            manager.initiate(buyer_session, "PRP-0000000000-NOPE00")

    def test_ensure_for_kyc_does_not_duplicate(self, db_session, manager, buyer_session, house):
        """Repeated KYC visits for the same property keep a single open purchase."""
        manager.ensure_for_kyc(buyer_session, house.id)
        manager.ensure_for_kyc(buyer_session, house.id)

        count = db_session.scalar(select(func.count(PropertyPurchase.id)))
        assert count == 1


# ===================================================================
# Reads
# ===================================================================

class TestReads:

    def test_other_users_purchase_is_not_found(self, manager, buyer_session, other_session, house):
        purchase, _, _ = manager.initiate(buyer_session, house.id)

        with pytest.raises(NotFoundError):
            manager.get_purchase(other_session, purchase.id)

    @pytest.mark.parametrize("purchase_id", ["42", "PUR-abc", "USR-1700000000-AMD001", "PUR-1700000000-ab"])
    def test_malformed_id_is_not_found(self, manager, buyer_session, purchase_id):
        with pytest.raises(NotFoundError):
            manager.get_purchase(buyer_session, purchase_id)

    def test_list_is_scoped_to_caller(self, manager, buyer_session, other_session, house, land):
        manager.initiate(buyer_session, house.id)
        manager.initiate(buyer_session, land.id)
        manager.initiate(other_session, house.id)

        assert len(manager.list_purchases(buyer_session)) == 2
        assert len(manager.list_purchases(other_session)) == 1

    def test_latest_open_ignores_closed(self, db_session, manager, buyer_session, house):
        purchase, _, _ = manager.initiate(buyer_session, house.id)
        set_status(db_session, purchase, "completed")

        assert manager.latest_open_purchase(buyer_session) is None


# ===================================================================
# KYC advancement
# ===================================================================

class TestAdvanceAfterKyc:

    def test_all_pending_kyc_purchases_advance(self, manager, buyer_session, house, land):
        first, _, _ = manager.initiate(buyer_session, house.id)
        second, _, _ = manager.initiate(buyer_session, land.id)

        bound = manager.advance_after_kyc(buyer_session, house.id)

        assert bound.id == first.id
        assert manager.get_purchase(buyer_session, first.id).status == "pending_payment"
        assert manager.get_purchase(buyer_session, second.id).status == "pending_payment"

    def test_without_property_returns_none(self, manager, buyer_session, house):
        manager.initiate(buyer_session, house.id)

        assert manager.advance_after_kyc(buyer_session) is None

    def test_other_users_are_untouched(self, manager, buyer_session, other_session, house):
        theirs, _, _ = manager.initiate(other_session, house.id)

        manager.advance_after_kyc(buyer_session)

        assert manager.get_purchase(other_session, theirs.id).status == "pending_kyc"


# ===================================================================
# Payment
# ===================================================================

class TestPayment:

    def test_complete_payment(self, db_session, manager, buyer_session, house):
        purchase, _, _ = manager.initiate(buyer_session, house.id)
        set_status(db_session, purchase, "pending_payment")

        paid = manager.complete_payment(buyer_session, purchase.id, "bank")

        assert paid.status == "completed"
        assert paid.payment_method == "bank"

    def test_repeated_payment_is_noop(self, db_session, manager, buyer_session, house):
        """A second completion request does not transition again."""
        purchase, _, _ = manager.initiate(buyer_session, house.id)
        set_status(db_session, purchase, "pending_payment")
        manager.complete_payment(buyer_session, purchase.id, "card")
        first_update = manager.get_purchase(buyer_session, purchase.id).updated_at

        again = manager.complete_payment(buyer_session, purchase.id, "bank")

        assert again.status == "completed"
        assert again.payment_method == "card"
        assert again.updated_at == first_update

    def test_payment_before_kyc_is_refused(self, manager, buyer_session, house):
        purchase, _, _ = manager.initiate(buyer_session, house.id)

        with pytest.raises(InvalidStatusTransitionError):
            manager.complete_payment(buyer_session, purchase.id, "bank")

    def test_unknown_method(self, manager, buyer_session, house):
        purchase, _, _ = manager.initiate(buyer_session, house.id)

        with pytest.raises(ValidationFailedError):
            manager.complete_payment(buyer_session, purchase.id, "cheque")

    def test_stale_expected_status_is_noop_when_already_at_target(self, db_session, manager, buyer_session, house):
        purchase, _, _ = manager.initiate(buyer_session, house.id)
        set_status(db_session, purchase, "completed")

        applied = manager._transition(purchase, PurchaseStatus.PENDING_PAYMENT, PurchaseStatus.COMPLETED)

        assert applied is False

    def test_stale_expected_status_elsewhere_raises(self, db_session, manager, buyer_session, house):
        purchase, _, _ = manager.initiate(buyer_session, house.id)
        set_status(db_session, purchase, "cancelled")

        with pytest.raises(InvalidStatusTransitionError):
            manager._transition(purchase, PurchaseStatus.PENDING_PAYMENT, PurchaseStatus.COMPLETED)

    def test_payment_details_amount_is_initial_payment(self, db_session, manager, buyer_session, house):
        purchase, _, _ = manager.initiate(buyer_session, house.id)
        set_status(db_session, purchase, "pending_payment")

        details = manager.payment_details(buyer_session, purchase.id)

        assert details.amount == 5_000_000
        assert details.amount_display == "5\u202f000\u202f000"
        assert {m.key for m in details.methods} == {"bank", "instant", "card"}

    def test_payment_details_in_euros(self, manager, buyer_session, house):
        purchase, _, _ = manager.initiate(buyer_session, house.id)

        details = manager.payment_details(buyer_session, purchase.id, "EUR")

        assert details.amount_display == "7\u202f622\u00a0€"


# ===================================================================
# Loan application
# ===================================================================

class TestLoanApplication:

    def test_submission_moves_to_processing(self, db_session, manager, buyer_session, house):
        purchase, _, _ = manager.initiate(buyer_session, house.id)
        set_status(db_session, purchase, "pending_payment")

        updated = manager.submit_loan_application(
            buyer_session, purchase.id,
            [{"name": "Bulletin de salaire", "url": None}, {"name": "Avis d'imposition", "url": "https://d.example/a.pdf"}],
        )

        assert updated.status == "processing"
        assert updated.loan_application["status"] == "pending"
        docs = updated.loan_application["documents"]
        assert [d["url"] for d in docs] == ["#", "https://d.example/a.pdf"]
        assert all(validate_public_id(d["id"], "DOC") for d in docs)

    def test_empty_document_list(self, db_session, manager, buyer_session, house):
        purchase, _, _ = manager.initiate(buyer_session, house.id)
        set_status(db_session, purchase, "pending_payment")

        with pytest.raises(ValidationFailedError):
            manager.submit_loan_application(buyer_session, purchase.id, [])

    def test_second_application_is_refused(self, db_session, manager, buyer_session, house):
        purchase, _, _ = manager.initiate(buyer_session, house.id)
        set_status(db_session, purchase, "pending_payment")
        manager.submit_loan_application(buyer_session, purchase.id, [{"name": "a.pdf"}])

        with pytest.raises(InvalidStatusTransitionError):
            manager.submit_loan_application(buyer_session, purchase.id, [{"name": "b.pdf"}])

        db_session.expire_all()
        stored = db_session.get(PropertyPurchase, purchase.id)
        assert stored.status == "processing"
        assert [d["name"] for d in stored.loan_application["documents"]] == ["a.pdf"]

    def test_application_before_kyc_is_refused(self, manager, buyer_session, house):
        purchase, _, _ = manager.initiate(buyer_session, house.id)

        with pytest.raises(InvalidStatusTransitionError):
            manager.submit_loan_application(buyer_session, purchase.id, [{"name": "a.pdf"}])


# ===================================================================
# Messages and deletion
# ===================================================================

class TestMessagesAndDeletion:

    def test_messages_in_order(self, manager, buyer_session, house):
        purchase, _, _ = manager.initiate(buyer_session, house.id)
        manager.append_message(buyer_session, purchase.id, "Bonjour")
        manager.append_message(buyer_session, purchase.id, "  Une question  ")

        messages = manager.list_messages(buyer_session, purchase.id)

        assert [m.message for m in messages] == ["Bonjour", "Une question"]

    def test_blank_message(self, manager, buyer_session, house):
        purchase, _, _ = manager.initiate(buyer_session, house.id)

        with pytest.raises(ValidationFailedError):
            manager.append_message(buyer_session, purchase.id, "   ")

    def test_completed_purchase_cannot_be_deleted(self, db_session, manager, buyer_session, house):
        purchase, _, _ = manager.initiate(buyer_session, house.id)
        set_status(db_session, purchase, "completed")

        with pytest.raises(PurchaseNotDeletableError):
            manager.delete_purchase(buyer_session, purchase.id)

        assert db_session.get(PropertyPurchase, purchase.id) is not None

    def test_pending_payment_deletion_removes_messages(self, db_session, manager, buyer_session, house):
        purchase, _, _ = manager.initiate(buyer_session, house.id)
        set_status(db_session, purchase, "pending_payment")
        manager.append_message(buyer_session, purchase.id, "Bonjour")
        purchase_id = purchase.id

        manager.delete_purchase(buyer_session, purchase_id)

        assert db_session.get(PropertyPurchase, purchase_id) is None
        remaining = db_session.scalar(
            select(func.count(PurchaseMessage.id)).where(PurchaseMessage.purchase_id == purchase_id)
        )
        assert remaining == 0

    def test_other_user_cannot_delete(self, manager, buyer_session, other_session, house):
        purchase, _, _ = manager.initiate(buyer_session, house.id)

        with pytest.raises(NotFoundError):
            manager.delete_purchase(other_session, purchase.id)
