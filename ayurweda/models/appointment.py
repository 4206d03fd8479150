from sqlalchemy import (
    Column, Integer, ForeignKey, DateTime, Date, Time, Boolean, Text,
    Enum as SQLEnum
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from datetime import date
import enum

from ..core.database import Base

class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class ConsultationType(str, enum.Enum):
    IN_PERSON = "in-person"
    VIDEO = "video"
    PHONE = "phone"

APPOINTMENT_TRANSITIONS = {
    AppointmentStatus.PENDING: {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED},
    AppointmentStatus.CONFIRMED: {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED},
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.CANCELLED: set(),
}

class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)

    # Relationships
    patient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False, index=True)

    # Appointment details
    appointment_date = Column(Date, nullable=False, index=True)
    appointment_time = Column(Time, nullable=False)
    consultation_type = Column(SQLEnum(ConsultationType), default=ConsultationType.IN_PERSON)
    status = Column(SQLEnum(AppointmentStatus), default=AppointmentStatus.PENDING, index=True)
    symptoms = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    # Tracking
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    patient = relationship("User")
    doctor = relationship("Doctor", back_populates="appointments")
    consultation_note = relationship(
        "ConsultationNote", back_populates="appointment", uselist=False,
        cascade="all, delete-orphan"
    )

    @property
    def doctor_name(self):
        return self.doctor.name if self.doctor else None

    @property
    def specialization(self):
        return self.doctor.specialization if self.doctor else None

    @property
    def consultation_fee(self):
        return self.doctor.consultation_fee if self.doctor else None

    @property
    def patient_name(self):
        return self.patient.name if self.patient else None

    @property
    def patient_email(self):
        return self.patient.email if self.patient else None

    @property
    def patient_phone(self):
        return self.patient.phone if self.patient else None

    def __repr__(self):
        return f"<Appointment(id={self.id}, patient_id={self.patient_id}, doctor_id={self.doctor_id}, date='{self.appointment_date}')>"

class ConsultationNote(Base):
    __tablename__ = "consultation_notes"

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(
        Integer, ForeignKey("appointments.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    diagnosis = Column(Text, nullable=True)
    prescription = Column(Text, nullable=True)
    treatment_plan = Column(Text, nullable=True)
    follow_up_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    appointment = relationship("Appointment", back_populates="consultation_note")

class Prescription(Base):
    __tablename__ = "prescriptions"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    appointment_id = Column(
        Integer, ForeignKey("appointments.id", ondelete="SET NULL"), unique=True, nullable=True
    )
    medicines = Column(Text, nullable=False)
    instructions = Column(Text, nullable=True)
    prescription_date = Column(Date, default=date.today)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, server_default=func.now())

    patient = relationship("User", foreign_keys=[patient_id])
    doctor = relationship("User", foreign_keys=[doctor_id])

    @property
    def doctor_name(self):
        return self.doctor.name if self.doctor else None

    def __repr__(self):
        return f"<Prescription(id={self.id}, patient_id={self.patient_id})>"
