from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from ..models.doctor import DayOfWeek
from .auth import check_name
from .common import ClockTime

class DoctorCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: Optional[str] = Field(None, max_length=20)
    specialization: Optional[str] = Field(None, max_length=100)
    experience_years: int = Field(0, ge=0)
    consultation_fee: Optional[float] = Field(None, ge=0)
    is_available: bool = True

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        return check_name(v)

class DoctorUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6)
    phone: Optional[str] = Field(None, max_length=20)
    specialization: Optional[str] = Field(None, max_length=100)
    experience_years: Optional[int] = Field(None, ge=0)
    consultation_fee: Optional[float] = Field(None, ge=0)
    is_available: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        return check_name(v)

class DoctorProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = Field(None, max_length=255)
    specialization: Optional[str] = Field(None, max_length=100)
    experience_years: Optional[int] = Field(None, ge=0)
    consultation_fee: Optional[float] = Field(None, ge=0)
    is_available: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        return check_name(v)

class AvailabilityUpdate(BaseModel):
    is_available: bool

class ScheduleCreate(BaseModel):
    day_of_week: DayOfWeek
    start_time: ClockTime
    end_time: ClockTime
    is_available: bool = True

    @model_validator(mode="after")
    def check_window(self):
        if self.start_time >= self.end_time:
            raise ValueError("Start time must be before end time")
        return self

class ScheduleUpdate(BaseModel):
    day_of_week: Optional[DayOfWeek] = None
    start_time: Optional[ClockTime] = None
    end_time: Optional[ClockTime] = None
    is_available: Optional[bool] = None

class ScheduleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    doctor_id: int
    day_of_week: DayOfWeek
    start_time: ClockTime
    end_time: ClockTime
    is_available: bool

class DoctorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    specialization: str
    experience_years: int
    consultation_fee: float
    is_available: bool
    created_at: Optional[datetime] = None

class DoctorListItem(DoctorResponse):
    appointment_count: int = 0
    patient_count: int = 0

class DoctorDetail(DoctorResponse):
    schedules: List[ScheduleResponse] = []

class DoctorStats(BaseModel):
    total_doctors: int
    available_doctors: int
    unavailable_doctors: int
    todays_appointments: int
    monthly_revenue: float

class EarningsBreakdown(BaseModel):
    total_appointments: int
    completed_appointments: int
    cancelled_appointments: int
    pending_appointments: int
    confirmed_appointments: int
    earnings: float

class DoctorEarnings(BaseModel):
    doctor_id: int
    doctor_name: Optional[str] = None
    consultation_fee: float
    period: str
    earnings: EarningsBreakdown

class DoctorEarningsRow(BaseModel):
    doctor_id: int
    doctor_name: Optional[str] = None
    specialization: str
    consultation_fee: float
    is_available: bool
    total_appointments: int
    completed_appointments: int
    confirmed_appointments: int
    pending_appointments: int
    earnings: float
    avg_earnings_per_appointment: float

class EarningsSummary(BaseModel):
    period: str
    total_doctors: int
    total_appointments: int
    completed_appointments: int
    non_cancelled_appointments: int
    total_earnings: float
    avg_earnings_per_doctor: float
    avg_earnings_per_appointment: float
    doctors: List[DoctorEarningsRow]
