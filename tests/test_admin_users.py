from fastapi import HTTPException

from ayurweda.core.security import UserRole
from ayurweda.models.appointment import Appointment, AppointmentStatus
from ayurweda.models.doctor import Doctor
from ayurweda.models.order import Order, OrderStatus
from ayurweda.models.user import User
from ayurweda.services.user_service import UserService

class TestAdminUsers:

    def test_requires_admin(self, client, patient, auth_headers):
        response = client.get("/api/v1/admin/users", headers=auth_headers(patient))
        assert response.status_code == 403

    def test_create_student(self, client, admin, auth_headers):
        response = client.post("/api/v1/admin/users", headers=auth_headers(admin), json={
            "name": "New Student",
            "email": "new.student@example.com",
            "password": "secret123",
            "role": "student"
        })
        assert response.status_code == 200
        assert response.json()["role"] == "student"

    def test_create_doctor_gets_doctor_profile(self, client, db, admin, auth_headers):
        response = client.post("/api/v1/admin/users", headers=auth_headers(admin), json={
            "name": "Dr. New",
            "email": "dr.new@example.com",
            "password": "secret123",
            "role": "doctor"
        })
        assert response.status_code == 200

        doctor = db.query(Doctor).filter(Doctor.user_id == response.json()["id"]).first()
        assert doctor is not None
        assert doctor.specialization == "General Medicine"
        assert float(doctor.consultation_fee) == 1000.0

    def test_failed_doctor_profile_leaves_no_account(self, client, db, admin, auth_headers, monkeypatch):
        def broken_profile(self, user):
            raise HTTPException(status_code=400, detail="Invalid doctor profile")

        monkeypatch.setattr(UserService, "ensure_doctor_row", broken_profile)
        response = client.post("/api/v1/admin/users", headers=auth_headers(admin), json={
            "name": "Dr. Half",
            "email": "dr.half@example.com",
            "password": "secret123",
            "role": "doctor"
        })
        assert response.status_code == 400
        assert db.query(User).filter(User.email == "dr.half@example.com").count() == 0

    def test_create_rejects_other_roles(self, client, admin, auth_headers):
        response = client.post("/api/v1/admin/users", headers=auth_headers(admin), json={
            "name": "Another Admin",
            "email": "another@example.com",
            "password": "secret123",
            "role": "admin"
        })
        assert response.status_code == 400
        assert response.json()["detail"] == "Role must be either student or doctor"

    def test_list_users_filters_and_paginates(self, client, admin, patient, student, make_user, auth_headers):
        for _ in range(3):
            make_user(UserRole.PATIENT)
        headers = auth_headers(admin)

        response = client.get("/api/v1/admin/users", headers=headers, params={"role": "patient", "limit": 2})
        assert response.status_code == 200
        data = response.json()
        assert len(data["users"]) == 2
        assert data["pagination"] == {"page": 1, "limit": 2, "total": 4, "pages": 2}

        response = client.get("/api/v1/admin/users", headers=headers, params={"search": "Sam"})
        assert [u["email"] for u in response.json()["users"]] == ["student@example.com"]

    def test_user_stats(self, client, admin, patient, student, auth_headers):
        client.patch(f"/api/v1/admin/users/{student.id}/status", headers=auth_headers(admin),
                     json={"is_active": False})

        response = client.get("/api/v1/admin/users/stats", headers=auth_headers(admin))
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert data["active"] == 2
        assert data["inactive"] == 1
        assert data["by_role"] == {"admin": 1, "doctor": 0, "patient": 1, "student": 1}

    def test_get_missing_user(self, client, admin, auth_headers):
        response = client.get("/api/v1/admin/users/9999", headers=auth_headers(admin))
        assert response.status_code == 404
        assert response.json()["detail"] == "User not found"

    def test_update_user(self, client, admin, patient, auth_headers):
        response = client.put(f"/api/v1/admin/users/{patient.id}", headers=auth_headers(admin),
                              json={"name": "Renamed"})
        assert response.status_code == 200
        assert response.json()["name"] == "Renamed"

    def test_update_user_trims_name(self, client, admin, patient, auth_headers):
        headers = auth_headers(admin)
        response = client.put(f"/api/v1/admin/users/{patient.id}", headers=headers, json={"name": "  Renamed "})
        assert response.json()["name"] == "Renamed"

        response = client.put(f"/api/v1/admin/users/{patient.id}", headers=headers, json={"name": "  "})
        assert response.status_code == 422

    def test_update_user_requires_a_field(self, client, admin, patient, auth_headers):
        response = client.put(f"/api/v1/admin/users/{patient.id}", headers=auth_headers(admin), json={})
        assert response.status_code == 422

    def test_update_user_duplicate_email(self, client, admin, patient, student, auth_headers):
        response = client.put(f"/api/v1/admin/users/{patient.id}", headers=auth_headers(admin),
                              json={"email": student.email})
        assert response.status_code == 400

    def test_change_role_to_doctor(self, client, db, admin, student, auth_headers):
        response = client.put(f"/api/v1/admin/users/{student.id}/role", headers=auth_headers(admin),
                              json={"role": "doctor"})
        assert response.status_code == 200
        assert response.json()["role"] == "doctor"
        assert db.query(Doctor).filter(Doctor.user_id == student.id).count() == 1

    def test_deactivated_user_cannot_login(self, client, admin, patient, auth_headers):
        response = client.patch(f"/api/v1/admin/users/{patient.id}/status",
                                headers=auth_headers(admin), json={"is_active": False})
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        response = client.post("/api/v1/auth/login", json={
            "email": patient.email, "password": "password123"
        })
        assert response.status_code == 403

    def test_settings(self, client, admin, auth_headers):
        response = client.get("/api/v1/admin/settings", headers=auth_headers(admin))
        assert response.status_code == 200
        data = response.json()
        assert data["appointment_booking_enabled"] is True
        assert data["slot_minutes"] == 30

class TestDeleteUser:

    def test_delete_user(self, client, admin, patient, auth_headers):
        headers = auth_headers(admin)
        response = client.delete(f"/api/v1/admin/users/{patient.id}", headers=headers)
        assert response.status_code == 200
        assert client.get(f"/api/v1/admin/users/{patient.id}", headers=headers).status_code == 404

    def test_cannot_delete_self(self, client, admin, auth_headers):
        response = client.delete(f"/api/v1/admin/users/{admin.id}", headers=auth_headers(admin))
        assert response.status_code == 400
        assert response.json()["detail"] == "You cannot delete your own account"

    def test_confirmed_appointment_blocks_delete(self, client, db, admin, patient, doctor, tomorrow, auth_headers):
        db.add(Appointment(
            patient_id=patient.id,
            doctor_id=doctor.id,
            appointment_date=tomorrow,
            appointment_time=doctor.schedules[0].start_time,
            status=AppointmentStatus.CONFIRMED,
        ))
        db.commit()

        response = client.delete(f"/api/v1/admin/users/{patient.id}", headers=auth_headers(admin))
        assert response.status_code == 400
        assert response.json()["detail"] == "Cannot delete user with confirmed appointments"

        response = client.delete(f"/api/v1/admin/users/{doctor.user_id}", headers=auth_headers(admin))
        assert response.status_code == 400

    def test_open_order_blocks_delete(self, client, db, admin, patient, auth_headers):
        db.add(Order(
            order_number="ORD-1-ABCDE",
            patient_id=patient.id,
            total_amount=100,
            status=OrderStatus.PENDING,
        ))
        db.commit()

        response = client.delete(f"/api/v1/admin/users/{patient.id}", headers=auth_headers(admin))
        assert response.status_code == 400
        assert "orders" in response.json()["detail"]
