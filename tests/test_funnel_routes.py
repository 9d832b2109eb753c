"""
End-to-end funnel flow through the HTTP API.
"""
from model.profiles.buyer import UserProfile
from model.purchase import PropertyPurchase

PERSONAL = {"last_name": "Diallo", "first_name": "Amadou", "country": "ML", "phone": "+22370000000"}
PROFESSIONAL = {"professional_activity": "Entrepreneur", "revenue_range": "Plus de 5 000 000 FCFA"}


def profile_row(db_session, user):
    db_session.expire_all()
    return db_session.query(UserProfile).filter_by(user_id=user.id).one_or_none()


class TestFunnelFlow:
    """A new buyer walks the funnel."""

    def test_new_buyer_without_property(self, client, db_session, buyer, auth_headers):
        """Personal -> professional -> (residency skipped) -> KYC -> profile."""
        assert profile_row(db_session, buyer) is None

        resp = client.post("/v1/funnel/personal", json=PERSONAL, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["redirect_to"] == "/purchase/professional"
        profile = profile_row(db_session, buyer)
        assert profile is not None
        assert profile.country == "ML"

        resp = client.post("/v1/funnel/professional", json=PROFESSIONAL, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["redirect_to"] == "/purchase/kyc"

        resp = client.post("/v1/funnel/kyc/documents-submitted", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["redirect_to"] == "/profile"
        assert resp.json()["purchase_id"] is None
        assert profile_row(db_session, buyer).kyc_verified is True

    def test_european_buyer_gets_residency(self, client, auth_headers):
        client.post("/v1/funnel/personal", json={**PERSONAL, "phone": "+33612345678"}, headers=auth_headers)

        resp = client.post("/v1/funnel/professional", json=PROFESSIONAL, headers=auth_headers)
        assert resp.json()["redirect_to"] == "/purchase/residency"

        resp = client.post("/v1/funnel/residency", json={"has_eu_residency": True}, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["redirect_to"] == "/purchase/kyc"

    def test_purchase_through_funnel(self, client, db_session, buyer, auth_headers, house):
        """Entering the funnel for a property ends on that purchase, ready for payment."""
        resp = client.post(f"/v1/properties/{house.id}/purchase", headers=auth_headers)
        assert resp.status_code == 201
        initiated = resp.json()
        assert initiated["status"] == "pending_kyc"
        assert initiated["redirect_to"] == f"/purchase/personal?property_id={house.id}"

        params = {"property_id": house.id}
        resp = client.post("/v1/funnel/personal", json=PERSONAL, params=params, headers=auth_headers)
        assert resp.json()["redirect_to"] == f"/purchase/professional?property_id={house.id}"
        resp = client.post("/v1/funnel/professional", json=PROFESSIONAL, params=params, headers=auth_headers)
        assert resp.json()["redirect_to"] == f"/purchase/kyc?property_id={house.id}"

        resp = client.get("/v1/funnel/kyc", params=params, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["purchase_id"] == initiated["purchase_id"]

        resp = client.post(
            "/v1/funnel/kyc/documents-submitted", json={"property_id": house.id}, headers=auth_headers,
        )
        body = resp.json()
        assert body["purchase_id"] == initiated["purchase_id"]
        assert body["redirect_to"] == f"/purchases/{initiated['purchase_id']}"

        db_session.expire_all()
        purchase = db_session.get(PropertyPurchase, initiated["purchase_id"])
        assert purchase.status == "pending_payment"

    def test_kyc_visit_binds_single_purchase(self, client, db_session, auth_headers, house):
        client.post("/v1/funnel/personal", json=PERSONAL, headers=auth_headers)
        client.post("/v1/funnel/professional", json=PROFESSIONAL, headers=auth_headers)

        first = client.get("/v1/funnel/kyc", params={"property_id": house.id}, headers=auth_headers).json()
        second = client.get("/v1/funnel/kyc", params={"property_id": house.id}, headers=auth_headers).json()

        assert first["purchase_id"] == second["purchase_id"]
        assert db_session.query(PropertyPurchase).count() == 1


class TestFunnelLoad:
    """Step page loads."""

    def test_state_for_new_buyer(self, client, auth_headers):
        resp = client.get("/v1/funnel/state", headers=auth_headers)

        body = resp.json()
        assert resp.status_code == 200
        assert body["current_step"] == "personal"
        assert body["editable"] is True
        assert [s["step"] for s in body["steps"]] == ["personal", "professional", "residency", "kyc"]

    def test_professional_without_profile_redirects(self, client, auth_headers):
        resp = client.get("/v1/funnel/professional", headers=auth_headers)

        assert resp.json()["redirect_to"] == "/purchase/personal"

    def test_unknown_step(self, client, auth_headers):
        resp = client.get("/v1/funnel/payment", headers=auth_headers)

        assert resp.status_code == 422

    def test_requires_authentication(self, client):
        resp = client.get("/v1/funnel/state")

        assert resp.status_code == 401
        assert resp.headers["www-authenticate"] == "Bearer"


class TestFunnelSequencing:
    """KYC cannot be reached before the earlier steps are answered."""

    def test_kyc_load_redirects_to_current_step(self, client, buyer, make_profile, auth_headers, house):
        make_profile(buyer)

        resp = client.get("/v1/funnel/kyc", params={"property_id": house.id}, headers=auth_headers)

        body = resp.json()
        assert body["current_step"] == "professional"
        assert body["editable"] is False
        assert body["redirect_to"] == f"/purchase/professional?property_id={house.id}"
        assert body["purchase_id"] is None

    def test_documents_submitted_before_professional(self, client, db_session, buyer, make_profile, auth_headers, house):
        make_profile(buyer)
        purchase_id = client.post(f"/v1/properties/{house.id}/purchase", headers=auth_headers).json()["purchase_id"]

        resp = client.post(
            "/v1/funnel/kyc/documents-submitted", json={"property_id": house.id}, headers=auth_headers,
        )

        assert resp.status_code == 403
        assert resp.json()["message"]["redirect_to"] == f"/purchase/professional?property_id={house.id}"
        assert profile_row(db_session, buyer).kyc_verified is None
        assert db_session.get(PropertyPurchase, purchase_id).status == "pending_kyc"

    def test_documents_submitted_before_residency(self, client, db_session, buyer, make_profile, auth_headers):
        make_profile(buyer, phone="+33612345678", professional_activity="Entrepreneur", revenue_range="Autre")

        resp = client.post("/v1/funnel/kyc/documents-submitted", headers=auth_headers)

        assert resp.status_code == 403
        assert resp.json()["message"]["redirect_to"] == "/purchase/residency"
        assert profile_row(db_session, buyer).kyc_verified is None


class TestFunnelLocking:
    """Profile steps are read-only once KYC started."""

    def test_verified_profile_is_read_only(self, client, buyer, make_profile, auth_headers):
        make_profile(buyer, professional_activity="Entrepreneur", revenue_range="Autre", kyc_verified=True)

        resp = client.get("/v1/funnel/personal", headers=auth_headers)
        body = resp.json()
        assert body["editable"] is False
        assert body["notice"]
        assert all(step["disabled"] for step in body["steps"])

    def test_verified_profile_refuses_submission(self, client, db_session, buyer, make_profile, auth_headers):
        make_profile(buyer, kyc_verified=True)

        resp = client.post("/v1/funnel/personal", json={**PERSONAL, "first_name": "Moussa"}, headers=auth_headers)

        assert resp.status_code == 403
        assert resp.json()["message"]["redirect_to"] == "/profile"
        assert profile_row(db_session, buyer).first_name == "Amadou"

    def test_in_progress_profile_refuses_residency(self, client, buyer, make_profile, auth_headers):
        make_profile(buyer, phone="+33612345678", kyc_verified=False)

        resp = client.post("/v1/funnel/residency", json={"has_eu_residency": False}, headers=auth_headers)

        assert resp.status_code == 403

    def test_invalid_phone(self, client, auth_headers):
        resp = client.post("/v1/funnel/personal", json={**PERSONAL, "phone": "70000000"}, headers=auth_headers)

        assert resp.status_code == 422
        assert resp.json()["code"] == "validation_error"

    def test_professional_before_personal(self, client, auth_headers):
        resp = client.post("/v1/funnel/professional", json=PROFESSIONAL, headers=auth_headers)

        assert resp.status_code == 404
