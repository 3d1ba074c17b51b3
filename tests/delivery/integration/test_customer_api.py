"""Integration tests for customer registration, profile and KYC endpoints."""


class TestRegisterCustomer:
    def test_register(self, client, admin_system):
        response = client.post(
            "/customers", json={"name": "Meera Joshi", "email": "meera@example.com", "phone": "+91-98200-00003"}
        )
        assert response.status_code == 201
        body = response.json()
        assert body["role"] == "customer"
        assert body["kyc_status"] == "not_submitted"
        assert body["admin_notified"] is True

    def test_malformed_email(self, client):
        response = client.post("/customers", json={"name": "Meera Joshi", "email": "not-an-email"})
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_payload"

    def test_duplicate_email(self, client, customer):
        response = client.post("/customers", json={"name": "Asha Again", "email": "asha@example.com"})
        assert response.status_code == 400


class TestProfile:
    def test_me(self, client, as_customer, customer):
        response = client.get("/customers/me", headers=as_customer)
        assert response.status_code == 200
        assert response.json()["customer_id"] == str(customer.id)

    def test_me_requires_header(self, client):
        assert client.get("/customers/me").status_code == 401


class TestKyc:
    def test_submit_documents(self, client, as_customer, admin, admin_system):
        response = client.put("/customers/me/kyc", json={"documents": {"pan": "kyc/pan.pdf"}}, headers=as_customer)
        assert response.status_code == 200
        assert response.json()["kyc_status"] == "submitted"
        assert admin_system.events("kyc-submission")[0]["document_types"] == ["pan"]

    def test_empty_documents_rejected(self, client, as_customer):
        response = client.put("/customers/me/kyc", json={"documents": {}}, headers=as_customer)
        assert response.status_code == 400
