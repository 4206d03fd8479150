from datetime import date, datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field

from ..models.appointment import AppointmentStatus, ConsultationType
from .common import ClockTime

class AppointmentCreate(BaseModel):
    doctor_id: int
    appointment_date: date
    appointment_time: ClockTime
    consultation_type: ConsultationType = ConsultationType.IN_PERSON
    symptoms: Optional[str] = Field(None, max_length=2000)

class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus
    notes: Optional[str] = Field(None, max_length=2000)

class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    doctor_id: int
    appointment_date: date
    appointment_time: ClockTime
    consultation_type: ConsultationType
    status: AppointmentStatus
    symptoms: Optional[str] = None
    notes: Optional[str] = None
    doctor_name: Optional[str] = None
    specialization: Optional[str] = None
    consultation_fee: Optional[float] = None
    patient_name: Optional[str] = None
    patient_email: Optional[str] = None
    patient_phone: Optional[str] = None
    created_at: Optional[datetime] = None

class AvailableSlots(BaseModel):
    doctor_id: int
    date: date
    slots: List[str]

class ConsultationNoteUpsert(BaseModel):
    diagnosis: Optional[str] = None
    prescription: Optional[str] = None
    treatment_plan: Optional[str] = None
    follow_up_date: Optional[date] = None
    notes: Optional[str] = None

class ConsultationNoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    appointment_id: int
    diagnosis: Optional[str] = None
    prescription: Optional[str] = None
    treatment_plan: Optional[str] = None
    follow_up_date: Optional[date] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class PatientHistoryEntry(AppointmentResponse):
    diagnosis: Optional[str] = None
    prescription: Optional[str] = None
    treatment_plan: Optional[str] = None
    follow_up_date: Optional[date] = None

class PatientSummary(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    total_appointments: int
    last_appointment_date: Optional[date] = None
    last_interaction: Optional[datetime] = None

class DoctorDashboardStats(BaseModel):
    total_appointments: int
    pending_appointments: int
    confirmed_appointments: int
    completed_appointments: int
    today_appointments: int

class PrescriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    doctor_id: Optional[int] = None
    doctor_name: Optional[str] = None
    appointment_id: Optional[int] = None
    medicines: str
    instructions: Optional[str] = None
    prescription_date: Optional[date] = None
    is_active: bool
