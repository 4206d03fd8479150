from datetime import date, time, timedelta

import pytest

from ayurweda.core.config import settings
from ayurweda.core.security import UserRole
from ayurweda.models.doctor import WEEKDAY_ORDER
from ayurweda.services.appointment_service import generate_slots

def book(client, headers, doctor, on_date, at="09:00", **extra):
    payload = {
        "doctor_id": doctor.id,
        "appointment_date": on_date.isoformat(),
        "appointment_time": at,
        **extra
    }
    return client.post("/api/v1/appointments/book", headers=headers, json=payload)

class TestSlotGeneration:

    def test_half_hour_slots(self):
        assert generate_slots(time(9, 0), time(11, 0)) == ["09:00", "09:30", "10:00", "10:30"]

    def test_booked_slots_are_skipped(self):
        slots = generate_slots(time(9, 0), time(10, 30), booked=[time(9, 30)])
        assert slots == ["09:00", "10:00"]

    def test_slot_must_fit_before_end(self):
        assert generate_slots(time(9, 0), time(9, 45)) == ["09:00", "09:30"]

    def test_empty_window(self):
        assert generate_slots(time(9, 0), time(9, 0)) == []

class TestDoctorDirectory:

    def test_list_available_doctors(self, client, patient, doctor, make_doctor, auth_headers):
        make_doctor(name="Dr. Away", is_available=False)
        response = client.get("/api/v1/appointments/doctors", headers=auth_headers(patient))
        assert response.status_code == 200
        assert [d["name"] for d in response.json()] == ["Dr. Test"]

    def test_requires_login(self, client, doctor):
        response = client.get("/api/v1/appointments/doctors")
        assert response.status_code == 401

    def test_doctor_with_schedule(self, client, patient, doctor, auth_headers):
        response = client.get(f"/api/v1/appointments/doctors/{doctor.id}", headers=auth_headers(patient))
        assert response.status_code == 200
        data = response.json()
        assert data["consultation_fee"] == 2000
        assert len(data["schedules"]) == 7
        assert data["schedules"][0]["day_of_week"] == "monday"

    def test_available_slots(self, client, patient, doctor, tomorrow, auth_headers):
        headers = auth_headers(patient)
        book(client, headers, doctor, tomorrow, "10:00")

        response = client.get(f"/api/v1/appointments/doctors/{doctor.id}/available-slots",
                              headers=headers, params={"date": tomorrow.isoformat()})
        assert response.status_code == 200
        data = response.json()
        assert data["date"] == tomorrow.isoformat()
        assert data["slots"] == ["09:00", "09:30", "10:30", "11:00", "11:30"]

    def test_no_slots_without_schedule(self, client, patient, make_doctor, tomorrow, auth_headers):
        other_days = [d for d in WEEKDAY_ORDER if d != WEEKDAY_ORDER[tomorrow.weekday()]]
        doctor = make_doctor(days=other_days)
        response = client.get(f"/api/v1/appointments/doctors/{doctor.id}/available-slots",
                              headers=auth_headers(patient), params={"date": tomorrow.isoformat()})
        assert response.status_code == 200
        assert response.json()["slots"] == []

    def test_slots_for_missing_doctor(self, client, patient, tomorrow, auth_headers):
        response = client.get("/api/v1/appointments/doctors/404/available-slots",
                              headers=auth_headers(patient), params={"date": tomorrow.isoformat()})
        assert response.status_code == 404

class TestBooking:

    def test_book_appointment(self, client, patient, doctor, tomorrow, auth_headers):
        response = book(client, auth_headers(patient), doctor, tomorrow, "09:30",
                        consultation_type="video", symptoms="Headache")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "pending"
        assert data["appointment_time"] == "09:30"
        assert data["consultation_type"] == "video"
        assert data["doctor_name"] == "Dr. Test"
        assert data["consultation_fee"] == 2000

    def test_only_patients_book(self, client, student, doctor, tomorrow, auth_headers):
        response = book(client, auth_headers(student), doctor, tomorrow)
        assert response.status_code == 403

    def test_slot_taken(self, client, patient, doctor, make_user, tomorrow, auth_headers):
        assert book(client, auth_headers(patient), doctor, tomorrow).status_code == 200

        other = make_user(UserRole.PATIENT)
        response = book(client, auth_headers(other), doctor, tomorrow)
        assert response.status_code == 400
        assert response.json()["detail"] == "This time slot is already booked"

    def test_cancelled_slot_can_be_rebooked(self, client, patient, doctor, tomorrow, auth_headers):
        headers = auth_headers(patient)
        appointment_id = book(client, headers, doctor, tomorrow).json()["id"]
        client.put(f"/api/v1/appointments/{appointment_id}/cancel", headers=headers)

        assert book(client, headers, doctor, tomorrow).status_code == 200

    def test_past_date(self, client, patient, doctor, auth_headers):
        yesterday = date.today() - timedelta(days=1)
        response = book(client, auth_headers(patient), doctor, yesterday)
        assert response.status_code == 400
        assert response.json()["detail"] == "Cannot book an appointment in the past"

    def test_doctor_unavailable(self, client, patient, make_doctor, tomorrow, auth_headers):
        doctor = make_doctor(is_available=False)
        response = book(client, auth_headers(patient), doctor, tomorrow)
        assert response.status_code == 400
        assert response.json()["detail"] == "Doctor is not available for appointments"

    def test_day_without_schedule(self, client, patient, make_doctor, tomorrow, auth_headers):
        doctor = make_doctor(days=[])
        response = book(client, auth_headers(patient), doctor, tomorrow)
        assert response.status_code == 400
        assert response.json()["detail"] == "Doctor is not available on this day"

    @pytest.mark.parametrize("at", ["08:30", "12:00", "09:15"])
    def test_time_outside_slots(self, client, patient, doctor, tomorrow, auth_headers, at):
        response = book(client, auth_headers(patient), doctor, tomorrow, at)
        assert response.status_code == 400
        assert "not a valid slot" in response.json()["detail"]

    def test_malformed_time(self, client, patient, doctor, tomorrow, auth_headers):
        response = book(client, auth_headers(patient), doctor, tomorrow, "9 o'clock")
        assert response.status_code == 422

    def test_daily_cap(self, client, patient, doctor, tomorrow, auth_headers, monkeypatch):
        monkeypatch.setattr(settings, "MAX_APPOINTMENTS_PER_DAY", 1)
        headers = auth_headers(patient)
        assert book(client, headers, doctor, tomorrow, "09:00").status_code == 200

        response = book(client, headers, doctor, tomorrow, "09:30")
        assert response.status_code == 400
        assert response.json()["detail"] == "Doctor is fully booked for this day"

    def test_booking_switched_off(self, client, patient, doctor, tomorrow, auth_headers, monkeypatch):
        monkeypatch.setattr(settings, "APPOINTMENT_BOOKING_ENABLED", False)
        response = book(client, auth_headers(patient), doctor, tomorrow)
        assert response.status_code == 403
        assert response.json()["detail"] == "This feature is currently disabled"

class TestMyAppointments:

    def test_newest_first(self, client, patient, doctor, tomorrow, auth_headers):
        headers = auth_headers(patient)
        book(client, headers, doctor, tomorrow, "09:00")
        book(client, headers, doctor, tomorrow + timedelta(days=1), "11:00")
        book(client, headers, doctor, tomorrow, "10:00")

        response = client.get("/api/v1/appointments/my-appointments", headers=headers)
        assert response.status_code == 200
        listed = [(a["appointment_date"], a["appointment_time"]) for a in response.json()]
        assert listed == [
            ((tomorrow + timedelta(days=1)).isoformat(), "11:00"),
            (tomorrow.isoformat(), "10:00"),
            (tomorrow.isoformat(), "09:00"),
        ]

    def test_cancel_pending(self, client, patient, doctor, tomorrow, auth_headers):
        headers = auth_headers(patient)
        appointment_id = book(client, headers, doctor, tomorrow).json()["id"]

        response = client.put(f"/api/v1/appointments/{appointment_id}/cancel", headers=headers)
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

        # Cancelling twice is refused
        response = client.put(f"/api/v1/appointments/{appointment_id}/cancel", headers=headers)
        assert response.status_code == 400

    def test_cannot_cancel_confirmed(self, client, patient, doctor, tomorrow, auth_headers):
        headers = auth_headers(patient)
        appointment_id = book(client, headers, doctor, tomorrow).json()["id"]
        client.put(f"/api/v1/doctors/appointments/{appointment_id}/status",
                   headers=auth_headers(doctor.user), json={"status": "confirmed"})

        response = client.put(f"/api/v1/appointments/{appointment_id}/cancel", headers=headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Appointment not found or cannot be cancelled"

    def test_cannot_cancel_someone_elses(self, client, patient, doctor, make_user, tomorrow, auth_headers):
        appointment_id = book(client, auth_headers(patient), doctor, tomorrow).json()["id"]
        other = make_user(UserRole.PATIENT)

        response = client.put(f"/api/v1/appointments/{appointment_id}/cancel", headers=auth_headers(other))
        assert response.status_code == 400
