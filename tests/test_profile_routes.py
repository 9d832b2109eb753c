"""Tests for the profile overview."""


class TestProfileOverview:

    def test_without_profile(self, client, buyer, auth_headers):
        body = client.get("/v1/profile", headers=auth_headers).json()

        assert body["email"] == buyer.email
        assert body["profile"] is None
        assert body["completion_percent"] == 0
        assert body["kyc_status"] == "not_started"
        assert body["latest_purchase"] is None

    def test_partial_profile(self, client, buyer, make_profile, auth_headers):
        make_profile(buyer)

        body = client.get("/v1/profile", headers=auth_headers).json()

        assert body["completion_percent"] == 67
        assert body["country_name"] == "Mali"
        assert body["kyc_label"] == "Vérification non commencée"

    def test_verified_with_open_purchase(self, client, buyer, make_profile, auth_headers, house):
        make_profile(buyer, professional_activity="Commerçant", revenue_range="Autre", kyc_verified=True)
        purchase_id = client.post(f"/v1/properties/{house.id}/purchase", headers=auth_headers).json()["purchase_id"]

        body = client.get("/v1/profile", headers=auth_headers).json()

        assert body["completion_percent"] == 100
        assert body["kyc_status"] == "verified"
        assert body["kyc_label"] == "Vérification complétée"
        assert body["latest_purchase"]["id"] == purchase_id
        assert body["latest_purchase"]["status"] == "pending_payment"
        assert body["latest_purchase"]["property"]["title"] == "Villa Bamako"
