"""
Customer API tests: CRUD, uniqueness, delete policy.
"""

from datetime import date

from optica.models import Appointment, Customer, Prescription
from optica.services import sales_service


class TestCustomerCrud:

    def test_create_and_get(self, client, staff_headers):
        resp = client.post(
            "/api/customers",
            json={"name": "  Bruno Lima ", "email": "bruno@example.com", "birth_date": "1990-04-12"},
            headers=staff_headers,
        )

        assert resp.status_code == 201
        created = resp.get_json()
        assert created["name"] == "Bruno Lima"
        assert created["birth_date"] == "1990-04-12"

        resp = client.get(f"/api/customers/{created['id']}", headers=staff_headers)
        assert resp.status_code == 200
        assert resp.get_json()["prescriptions"] == []

    def test_name_required(self, client, staff_headers):
        resp = client.post("/api/customers", json={"email": "x@example.com"}, headers=staff_headers)

        assert resp.status_code == 400
        assert "name" in resp.get_json()["message"]

    def test_unknown_field_rejected(self, client, staff_headers):
        resp = client.post("/api/customers", json={"name": "X", "id": 5}, headers=staff_headers)
        assert resp.status_code == 400

    def test_duplicate_email(self, client, staff_headers, customer):
        resp = client.post(
            "/api/customers",
            json={"name": "Other", "email": "ana@example.com"},
            headers=staff_headers,
        )

        assert resp.status_code == 409
        assert resp.get_json()["details"]["field"] == "email"

    def test_duplicate_cpf(self, client, staff_headers, customer):
        resp = client.post(
            "/api/customers",
            json={"name": "Other", "cpf": "123.456.789-00"},
            headers=staff_headers,
        )

        assert resp.status_code == 409
        assert resp.get_json()["details"]["field"] == "cpf"

    def test_partial_update(self, client, staff_headers, customer):
        resp = client.patch(
            f"/api/customers/{customer.id}",
            json={"phone": "11 98888-1111"},
            headers=staff_headers,
        )

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["phone"] == "11 98888-1111"
        assert body["email"] == "ana@example.com"

    def test_update_keeps_own_email(self, client, staff_headers, customer):
        resp = client.patch(
            f"/api/customers/{customer.id}",
            json={"email": "ana@example.com", "city": "Campinas"},
            headers=staff_headers,
        )
        assert resp.status_code == 200

    def test_blank_name_rejected_on_update(self, client, staff_headers, customer):
        resp = client.patch(f"/api/customers/{customer.id}", json={"name": "   "}, headers=staff_headers)
        assert resp.status_code == 400

    def test_unknown_customer(self, client, staff_headers):
        assert client.get("/api/customers/999999", headers=staff_headers).status_code == 404
        assert client.patch("/api/customers/999999", json={"name": "X"}, headers=staff_headers).status_code == 404
        assert client.delete("/api/customers/999999", headers=staff_headers).status_code == 404

    def test_out_of_range_id(self, client, staff_headers):
        huge = 2 ** 64
        assert client.get(f"/api/customers/{huge}", headers=staff_headers).status_code == 404
        assert client.patch(f"/api/customers/{huge}", json={"name": "X"}, headers=staff_headers).status_code == 404
        assert client.delete(f"/api/customers/{huge}", headers=staff_headers).status_code == 404


class TestCustomerListing:

    def test_ordered_by_name(self, client, staff_headers, db_session):
        db_session.add_all([Customer(name="Carla"), Customer(name="Alice"), Customer(name="Bruno")])
        db_session.commit()

        resp = client.get("/api/customers", headers=staff_headers)

        assert resp.status_code == 200
        assert [c["name"] for c in resp.get_json()["items"]] == ["Alice", "Bruno", "Carla"]

    def test_pagination(self, client, staff_headers, db_session):
        db_session.add_all([Customer(name=f"Customer {i:02d}") for i in range(25)])
        db_session.commit()

        resp = client.get("/api/customers?page=2&per_page=10", headers=staff_headers)

        body = resp.get_json()
        assert body["count"] == 10
        assert body["items"][0]["name"] == "Customer 10"
        assert body["pagination"]["total"] == 25
        assert body["pagination"]["total_pages"] == 3
        assert body["pagination"]["has_next"] is True

    def test_page_beyond_range_is_empty(self, client, staff_headers, customer):
        resp = client.get(f"/api/customers?page={10 ** 20}&per_page=10", headers=staff_headers)

        assert resp.status_code == 200
        assert resp.get_json()["items"] == []

    def test_search(self, client, staff_headers, customer, db_session):
        db_session.add(Customer(name="Bruno Lima"))
        db_session.commit()

        resp = client.get("/api/customers?search=souza", headers=staff_headers)

        assert [c["name"] for c in resp.get_json()["items"]] == ["Ana Souza"]


class TestCustomerDelete:

    def test_cascades_prescriptions(self, client, staff_headers, customer, db_session):
        customer_id = customer.id
        db_session.add(Prescription(customer_id=customer_id, prescription_date=date(2024, 3, 1)))
        db_session.commit()

        resp = client.delete(f"/api/customers/{customer_id}", headers=staff_headers)

        assert resp.status_code == 200
        db_session.expire_all()
        assert db_session.get(Customer, customer_id) is None
        assert db_session.query(Prescription).count() == 0

    def test_blocked_by_sales(self, client, staff_headers, customer, frame, db_session):
        customer_id = customer.id
        sales_service.create_sale(customer_id, [{"product_id": frame.id, "quantity": 1}])

        resp = client.delete(f"/api/customers/{customer_id}", headers=staff_headers)

        assert resp.status_code == 409
        assert resp.get_json()["details"]["sales"] == 1
        db_session.expire_all()
        assert db_session.get(Customer, customer_id) is not None

    def test_blocked_by_appointments(self, client, staff_headers, customer, db_session):
        customer_id = customer.id
        db_session.add(Appointment(
            customer_id=customer_id,
            appointment_date=date(2024, 3, 1),
            appointment_time="09:00",
            appointment_type="Consultation",
        ))
        db_session.commit()

        resp = client.delete(f"/api/customers/{customer_id}", headers=staff_headers)

        assert resp.status_code == 409
