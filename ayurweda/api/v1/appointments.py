from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date
from typing import List

from ...core.database import get_db
from ...api.deps import get_current_user, get_patient_user, require_feature
from ...services.appointment_service import AppointmentService
from ...services.doctor_service import DoctorService
from ...schemas.appointment import AppointmentCreate, AppointmentResponse, AvailableSlots
from ...schemas.doctor import DoctorResponse, DoctorDetail
from ...models.user import User

router = APIRouter(prefix="/appointments", tags=["Appointments"])

@router.get("/doctors", response_model=List[DoctorResponse])
async def list_available_doctors(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Doctors currently accepting appointments."""
    return DoctorService(db).list_available()

@router.get("/doctors/{doctor_id}", response_model=DoctorDetail)
async def get_doctor_with_schedule(
    doctor_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    doctor_service = DoctorService(db)
    doctor = doctor_service.get_doctor(doctor_id)
    return doctor_service.doctor_detail(doctor, available_only=True)

@router.get("/doctors/{doctor_id}/available-slots", response_model=AvailableSlots)
async def available_slots(
    doctor_id: int,
    on_date: date = Query(..., alias="date"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Free 30-minute slots for a doctor on the given date."""
    slots = AppointmentService(db).available_slots(doctor_id, on_date)
    return {"doctor_id": doctor_id, "date": on_date, "slots": slots}

@router.post(
    "/book",
    response_model=AppointmentResponse,
    dependencies=[Depends(require_feature("APPOINTMENT_BOOKING_ENABLED"))]
)
async def book_appointment(
    appointment_data: AppointmentCreate,
    db: Session = Depends(get_db),
    patient: User = Depends(get_patient_user)
):
    return AppointmentService(db).book(patient, appointment_data)

@router.get("/my-appointments", response_model=List[AppointmentResponse])
async def my_appointments(
    db: Session = Depends(get_db),
    patient: User = Depends(get_patient_user)
):
    return AppointmentService(db).patient_appointments(patient)

@router.put("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    patient: User = Depends(get_patient_user)
):
    """Cancel one of your pending appointments."""
    return AppointmentService(db).cancel_by_patient(patient, appointment_id)
