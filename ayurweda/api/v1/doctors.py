from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional, List

from ...core.database import get_db
from ...api.deps import get_doctor_user
from ...services.appointment_service import AppointmentService
from ...services.doctor_service import DoctorService
from ...schemas.appointment import (
    AppointmentResponse, AppointmentStatusUpdate, ConsultationNoteUpsert,
    ConsultationNoteResponse, PatientSummary, PatientHistoryEntry, DoctorDashboardStats
)
from ...schemas.doctor import (
    DoctorDetail, DoctorProfileUpdate, ScheduleCreate, ScheduleUpdate, ScheduleResponse
)
from ...models.appointment import AppointmentStatus
from ...models.user import User

router = APIRouter(prefix="/doctors", tags=["Doctor Portal"])

@router.get("/profile", response_model=DoctorDetail)
async def get_profile(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_doctor_user)
):
    doctor_service = DoctorService(db)
    doctor = doctor_service.get_doctor_for_user(current_user, create=True)
    return doctor_service.doctor_detail(doctor)

@router.put("/profile", response_model=DoctorDetail)
async def update_profile(
    profile_data: DoctorProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_doctor_user)
):
    doctor_service = DoctorService(db)
    doctor = doctor_service.update_profile(current_user, profile_data)
    return doctor_service.doctor_detail(doctor)

# Schedule

@router.get("/schedule", response_model=List[ScheduleResponse])
async def get_schedule(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_doctor_user)
):
    doctor_service = DoctorService(db)
    doctor = doctor_service.get_doctor_for_user(current_user)
    return doctor_service.list_schedules(doctor.id)

@router.post("/schedule", response_model=ScheduleResponse)
async def add_schedule(
    schedule_data: ScheduleCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_doctor_user)
):
    doctor_service = DoctorService(db)
    doctor = doctor_service.get_doctor_for_user(current_user)
    return doctor_service.create_schedule(doctor.id, schedule_data)

@router.put("/schedule/{schedule_id}", response_model=ScheduleResponse)
async def update_schedule(
    schedule_id: int,
    schedule_data: ScheduleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_doctor_user)
):
    doctor_service = DoctorService(db)
    doctor = doctor_service.get_doctor_for_user(current_user)
    return doctor_service.update_schedule(doctor.id, schedule_id, schedule_data)

# Appointments

@router.get("/appointments", response_model=List[AppointmentResponse])
async def list_appointments(
    status: Optional[AppointmentStatus] = None,
    on_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_doctor_user)
):
    doctor = DoctorService(db).get_doctor_for_user(current_user)
    return AppointmentService(db).doctor_appointments(doctor, status, on_date)

@router.get("/appointments/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_doctor_user)
):
    doctor = DoctorService(db).get_doctor_for_user(current_user)
    return AppointmentService(db).get_for_doctor(doctor, appointment_id)

@router.put("/appointments/{appointment_id}/status", response_model=AppointmentResponse)
async def update_appointment_status(
    appointment_id: int,
    status_data: AppointmentStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_doctor_user)
):
    doctor = DoctorService(db).get_doctor_for_user(current_user)
    return AppointmentService(db).update_status(doctor, appointment_id, status_data)

@router.post("/appointments/{appointment_id}/notes", response_model=ConsultationNoteResponse)
async def save_consultation_notes(
    appointment_id: int,
    note_data: ConsultationNoteUpsert,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_doctor_user)
):
    """Create or replace the consultation notes of an appointment."""
    doctor = DoctorService(db).get_doctor_for_user(current_user)
    return AppointmentService(db).upsert_notes(doctor, appointment_id, note_data)

@router.get("/appointments/{appointment_id}/notes", response_model=Optional[ConsultationNoteResponse])
async def get_consultation_notes(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_doctor_user)
):
    doctor = DoctorService(db).get_doctor_for_user(current_user)
    return AppointmentService(db).get_notes(doctor, appointment_id)

# Patients

@router.get("/patients", response_model=List[PatientSummary])
async def list_patients(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_doctor_user)
):
    doctor = DoctorService(db).get_doctor_for_user(current_user)
    return AppointmentService(db).doctor_patients(doctor)

@router.get("/patients/{patient_id}/history", response_model=List[PatientHistoryEntry])
async def patient_history(
    patient_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_doctor_user)
):
    doctor = DoctorService(db).get_doctor_for_user(current_user)
    return AppointmentService(db).patient_history(doctor, patient_id)

@router.get("/dashboard/stats", response_model=DoctorDashboardStats)
async def dashboard_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_doctor_user)
):
    doctor = DoctorService(db).get_doctor_for_user(current_user)
    return AppointmentService(db).dashboard_stats(doctor)
