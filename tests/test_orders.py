import re

import pytest

from ayurweda.core.config import settings
from ayurweda.core.security import UserRole
from ayurweda.models.medicine import Medicine
from ayurweda.services.order_service import generate_order_number

def place_order(client, headers, *lines, **extra):
    payload = {
        "items": [{"medicine_id": m.id, "quantity": q} for m, q in lines],
        **extra
    }
    return client.post("/api/v1/medicine/orders", headers=headers, json=payload)

def stock_of(db, medicine):
    db.expire_all()
    return db.get(Medicine, medicine.id).stock_quantity

class TestOrderNumber:

    def test_format(self):
        assert re.match(r"^ORD-\d{13}-[A-Z0-9]{5}$", generate_order_number())

    def test_unique(self):
        assert len({generate_order_number() for _ in range(50)}) == 50

class TestPlaceOrder:

    def test_place_order(self, client, db, patient, make_medicine, auth_headers):
        triphala = make_medicine(name="Triphala Churna", price=450, stock_quantity=10)
        brahmi = make_medicine(name="Brahmi Vati", price=300, stock_quantity=5, is_prescription_required=True)

        response = place_order(client, auth_headers(patient), (triphala, 2), (brahmi, 1))
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "pending"
        assert data["total_amount"] == 1200
        assert data["item_count"] == 2
        assert data["patient_name"] == "Pat Patient"
        # Falls back to the patient's own address
        assert data["delivery_address"] == "12 Temple Road, Kandy"

        lines = {item["medicine_name"]: item for item in data["items"]}
        assert lines["Brahmi Vati"]["prescription_required"] is True
        assert lines["Triphala Churna"]["total_price"] == 900

        assert stock_of(db, triphala) == 8
        assert stock_of(db, brahmi) == 4

    def test_repeated_lines_are_merged(self, client, db, patient, make_medicine, auth_headers):
        medicine = make_medicine(price=100, stock_quantity=10)
        response = place_order(client, auth_headers(patient), (medicine, 2), (medicine, 3))
        assert response.status_code == 200
        [line] = response.json()["items"]
        assert line["quantity"] == 5
        assert stock_of(db, medicine) == 5

    def test_explicit_delivery_address(self, client, patient, make_medicine, auth_headers):
        medicine = make_medicine()
        response = place_order(client, auth_headers(patient), (medicine, 1),
                               delivery_address="45 Lake Drive, Colombo",
                               delivery_instructions="Leave at gate")
        assert response.json()["delivery_address"] == "45 Lake Drive, Colombo"
        assert response.json()["delivery_instructions"] == "Leave at gate"

    def test_ordered_medicines_leave_cart(self, client, patient, make_medicine, auth_headers):
        ordered = make_medicine(name="Ordered")
        kept = make_medicine(name="Kept")
        headers = auth_headers(patient)
        client.post("/api/v1/medicine/cart", headers=headers, json={"medicine_id": ordered.id})
        client.post("/api/v1/medicine/cart", headers=headers, json={"medicine_id": kept.id})

        place_order(client, headers, (ordered, 1))

        cart = client.get("/api/v1/medicine/cart", headers=headers).json()
        assert [item["name"] for item in cart["items"]] == ["Kept"]

    def test_insufficient_stock(self, client, db, patient, make_medicine, auth_headers):
        plenty = make_medicine(name="Plenty", stock_quantity=50)
        scarce = make_medicine(name="Scarce", stock_quantity=1)

        response = place_order(client, auth_headers(patient), (plenty, 2), (scarce, 2))
        assert response.status_code == 400
        assert response.json()["detail"] == "Insufficient stock for Scarce"
        # Nothing is taken when the order fails
        assert stock_of(db, plenty) == 50

    def test_inactive_medicine(self, client, patient, make_medicine, auth_headers):
        medicine = make_medicine(is_active=False)
        response = place_order(client, auth_headers(patient), (medicine, 1))
        assert response.status_code == 400
        assert response.json()["detail"] == f"Medicine {medicine.id} is not available"

    def test_empty_order(self, client, patient, auth_headers):
        response = client.post("/api/v1/medicine/orders", headers=auth_headers(patient), json={"items": []})
        assert response.status_code == 422

    def test_ordering_switched_off(self, client, patient, make_medicine, auth_headers, monkeypatch):
        monkeypatch.setattr(settings, "MEDICINE_ORDERING_ENABLED", False)
        medicine = make_medicine()
        response = place_order(client, auth_headers(patient), (medicine, 1))
        assert response.status_code == 403
        assert response.json()["detail"] == "This feature is currently disabled"

    def test_only_patients_order(self, client, student, make_medicine, auth_headers):
        medicine = make_medicine()
        response = place_order(client, auth_headers(student), (medicine, 1))
        assert response.status_code == 403

class TestPatientOrders:

    def test_list_and_filter(self, client, patient, make_medicine, auth_headers):
        medicine = make_medicine()
        headers = auth_headers(patient)
        first = place_order(client, headers, (medicine, 1)).json()
        second = place_order(client, headers, (medicine, 1)).json()
        client.put(f"/api/v1/medicine/orders/{first['id']}/cancel", headers=headers)

        response = client.get("/api/v1/medicine/orders", headers=headers)
        assert [o["id"] for o in response.json()] == [second["id"], first["id"]]

        response = client.get("/api/v1/medicine/orders", headers=headers, params={"status": "cancelled"})
        assert [o["id"] for o in response.json()] == [first["id"]]

    def test_orders_are_private(self, client, patient, make_user, make_medicine, auth_headers):
        medicine = make_medicine()
        order = place_order(client, auth_headers(patient), (medicine, 1)).json()
        other = make_user(UserRole.PATIENT)

        response = client.get(f"/api/v1/medicine/orders/{order['id']}", headers=auth_headers(other))
        assert response.status_code == 404
        assert client.get("/api/v1/medicine/orders", headers=auth_headers(other)).json() == []

    def test_cancel_restores_stock(self, client, db, patient, make_medicine, auth_headers):
        medicine = make_medicine(stock_quantity=10)
        headers = auth_headers(patient)
        order = place_order(client, headers, (medicine, 4)).json()
        assert stock_of(db, medicine) == 6

        response = client.put(f"/api/v1/medicine/orders/{order['id']}/cancel", headers=headers)
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert stock_of(db, medicine) == 10

    def test_cannot_cancel_once_processing(self, client, admin, patient, make_medicine, auth_headers):
        medicine = make_medicine()
        headers = auth_headers(patient)
        order = place_order(client, headers, (medicine, 1)).json()
        for next_status in ("confirmed", "processing"):
            client.put(f"/api/v1/admin/orders/{order['id']}/status", headers=auth_headers(admin),
                       json={"status": next_status})

        response = client.put(f"/api/v1/medicine/orders/{order['id']}/cancel", headers=headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Order cannot be cancelled at this stage"

class TestAdminOrders:

    def test_list_with_pagination(self, client, admin, patient, make_medicine, auth_headers):
        medicine = make_medicine()
        for _ in range(3):
            place_order(client, auth_headers(patient), (medicine, 1))

        response = client.get("/api/v1/admin/orders", headers=auth_headers(admin), params={"limit": 2})
        assert response.status_code == 200
        data = response.json()
        assert len(data["orders"]) == 2
        assert data["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
        assert data["orders"][0]["patient_email"] == "patient@example.com"

        response = client.get("/api/v1/admin/orders", headers=auth_headers(admin), params={"page": 2, "limit": 2})
        assert len(response.json()["orders"]) == 1

    def test_filter_by_status(self, client, admin, patient, make_medicine, auth_headers):
        medicine = make_medicine()
        place_order(client, auth_headers(patient), (medicine, 1))

        response = client.get("/api/v1/admin/orders", headers=auth_headers(admin),
                              params={"status": "delivered"})
        assert response.json()["orders"] == []

        response = client.get("/api/v1/admin/orders", headers=auth_headers(admin),
                              params={"status": "shipped"})
        assert response.status_code == 422

    def test_full_workflow(self, client, admin, patient, make_medicine, auth_headers):
        medicine = make_medicine()
        order = place_order(client, auth_headers(patient), (medicine, 1)).json()
        url = f"/api/v1/admin/orders/{order['id']}/status"

        for next_status in ("confirmed", "processing", "ready", "delivered"):
            response = client.put(url, headers=auth_headers(admin), json={"status": next_status})
            assert response.status_code == 200
            assert response.json()["status"] == next_status

        response = client.put(url, headers=auth_headers(admin), json={"status": "cancelled"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Cannot change order status from delivered to cancelled"

    @pytest.mark.parametrize("target", ["processing", "ready", "delivered", "pending"])
    def test_cannot_skip_steps(self, client, admin, patient, make_medicine, auth_headers, target):
        medicine = make_medicine()
        order = place_order(client, auth_headers(patient), (medicine, 1)).json()
        response = client.put(f"/api/v1/admin/orders/{order['id']}/status",
                              headers=auth_headers(admin), json={"status": target})
        assert response.status_code == 400

    def test_admin_cancel_restores_stock(self, client, db, admin, patient, make_medicine, auth_headers):
        medicine = make_medicine(stock_quantity=10)
        order = place_order(client, auth_headers(patient), (medicine, 3)).json()
        url = f"/api/v1/admin/orders/{order['id']}/status"
        client.put(url, headers=auth_headers(admin), json={"status": "confirmed"})
        client.put(url, headers=auth_headers(admin), json={"status": "processing"})

        response = client.put(url, headers=auth_headers(admin),
                              json={"status": "cancelled", "notes": "Out of delivery range"})
        assert response.status_code == 200
        assert response.json()["notes"] == "Out of delivery range"
        assert stock_of(db, medicine) == 10

    def test_get_order(self, client, admin, patient, make_medicine, auth_headers):
        medicine = make_medicine()
        order = place_order(client, auth_headers(patient), (medicine, 2)).json()

        response = client.get(f"/api/v1/admin/orders/{order['id']}", headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["order_number"] == order["order_number"]
        assert client.get("/api/v1/admin/orders/999", headers=auth_headers(admin)).status_code == 404

    def test_stats(self, client, admin, patient, make_medicine, auth_headers):
        medicine = make_medicine(price=100)
        headers = auth_headers(patient)
        place_order(client, headers, (medicine, 2))
        place_order(client, headers, (medicine, 4))
        cancelled = place_order(client, headers, (medicine, 10)).json()
        client.put(f"/api/v1/medicine/orders/{cancelled['id']}/cancel", headers=headers)

        response = client.get("/api/v1/admin/orders/stats", headers=auth_headers(admin))
        assert response.status_code == 200
        data = response.json()
        assert data["period_days"] == 30
        assert data["total_orders"] == 3
        assert data["by_status"]["pending"] == 2
        assert data["by_status"]["cancelled"] == 1
        # Cancelled orders bring no revenue
        assert data["total_revenue"] == 600
        assert data["average_order_value"] == 300

    def test_requires_admin(self, client, patient, auth_headers):
        response = client.get("/api/v1/admin/orders", headers=auth_headers(patient))
        assert response.status_code == 403
