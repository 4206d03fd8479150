from sqlalchemy.orm import Session
from sqlalchemy import func
from fastapi import HTTPException, status
from datetime import date, datetime, time, timedelta
from typing import Optional, List, Iterable
import logging

from ..models.user import User
from ..models.doctor import Doctor, DoctorSchedule, WEEKDAY_ORDER
from ..models.appointment import (
    Appointment, AppointmentStatus, ConsultationNote, Prescription, APPOINTMENT_TRANSITIONS
)
from ..core.config import settings
from ..core.security import UserRole
from ..schemas.appointment import (
    AppointmentCreate, AppointmentStatusUpdate, AppointmentResponse, ConsultationNoteUpsert
)
from .doctor_service import DoctorService

logger = logging.getLogger(__name__)

def generate_slots(
    start: time,
    end: time,
    step_minutes: int = 30,
    booked: Iterable[time] = ()
) -> List[str]:
    """Cut a schedule window into HH:MM start times, skipping booked ones."""
    taken = {t.strftime("%H:%M") for t in booked}
    anchor = date(2000, 1, 1)
    current = datetime.combine(anchor, start)
    stop = datetime.combine(anchor, end)

    slots = []
    while current < stop:
        label = current.strftime("%H:%M")
        if label not in taken:
            slots.append(label)
        current += timedelta(minutes=step_minutes)
    return slots

class AppointmentService:
    def __init__(self, db: Session):
        self.db = db

    # Slots and booking

    def _schedule_for(self, doctor_id: int, day: date) -> Optional[DoctorSchedule]:
        return self.db.query(DoctorSchedule).filter(
            DoctorSchedule.doctor_id == doctor_id,
            DoctorSchedule.day_of_week == WEEKDAY_ORDER[day.weekday()],
            DoctorSchedule.is_available == True
        ).first()

    def _booked_times(self, doctor_id: int, day: date) -> List[time]:
        rows = self.db.query(Appointment.appointment_time).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date == day,
            Appointment.status != AppointmentStatus.CANCELLED
        ).all()
        return [row[0] for row in rows]

    def available_slots(self, doctor_id: int, day: date) -> List[str]:
        DoctorService(self.db).get_doctor(doctor_id)

        schedule = self._schedule_for(doctor_id, day)
        if schedule is None:
            return []

        return generate_slots(
            schedule.start_time,
            schedule.end_time,
            settings.SLOT_MINUTES,
            self._booked_times(doctor_id, day),
        )

    def book(self, patient: User, data: AppointmentCreate) -> Appointment:
        doctor = DoctorService(self.db).get_doctor(data.doctor_id)
        if not doctor.is_available:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Doctor is not available for appointments"
            )

        now = datetime.now()
        if datetime.combine(data.appointment_date, data.appointment_time) <= now:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot book an appointment in the past"
            )

        schedule = self._schedule_for(doctor.id, data.appointment_date)
        if schedule is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Doctor is not available on this day"
            )

        requested = data.appointment_time.strftime("%H:%M")
        booked = self._booked_times(doctor.id, data.appointment_date)
        if requested in {t.strftime("%H:%M") for t in booked}:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="This time slot is already booked"
            )

        all_slots = generate_slots(schedule.start_time, schedule.end_time, settings.SLOT_MINUTES)
        if requested not in all_slots:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Selected time is not a valid slot in the doctor's schedule"
            )

        if len(booked) >= settings.MAX_APPOINTMENTS_PER_DAY:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Doctor is fully booked for this day"
            )

        appointment = Appointment(
            patient_id=patient.id,
            doctor_id=doctor.id,
            appointment_date=data.appointment_date,
            appointment_time=data.appointment_time,
            consultation_type=data.consultation_type,
            symptoms=data.symptoms or "",
            status=AppointmentStatus.PENDING,
        )
        self.db.add(appointment)
        self.db.commit()
        self.db.refresh(appointment)

        logger.info(f"Appointment {appointment.id} booked by patient {patient.id} with doctor {doctor.id}")
        return appointment

    def patient_appointments(self, patient: User) -> List[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.patient_id == patient.id
        ).order_by(
            Appointment.appointment_date.desc(), Appointment.appointment_time.desc()
        ).all()

    def cancel_by_patient(self, patient: User, appointment_id: int) -> Appointment:
        appointment = self.db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.patient_id == patient.id
        ).first()
        if not appointment or appointment.status != AppointmentStatus.PENDING:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Appointment not found or cannot be cancelled"
            )

        appointment.status = AppointmentStatus.CANCELLED
        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    # Doctor portal

    def doctor_appointments(
        self,
        doctor: Doctor,
        status_filter: Optional[AppointmentStatus] = None,
        on_date: Optional[date] = None
    ) -> List[Appointment]:
        query = self.db.query(Appointment).filter(Appointment.doctor_id == doctor.id)
        if status_filter is not None:
            query = query.filter(Appointment.status == status_filter)
        if on_date is not None:
            query = query.filter(Appointment.appointment_date == on_date)
        return query.order_by(
            Appointment.appointment_date.asc(), Appointment.appointment_time.asc()
        ).all()

    def get_for_doctor(self, doctor: Doctor, appointment_id: int) -> Appointment:
        appointment = self.db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.doctor_id == doctor.id
        ).first()
        if not appointment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Appointment not found"
            )
        return appointment

    def update_status(self, doctor: Doctor, appointment_id: int, data: AppointmentStatusUpdate) -> Appointment:
        appointment = self.get_for_doctor(doctor, appointment_id)

        if data.status not in APPOINTMENT_TRANSITIONS[appointment.status]:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot change appointment status from {appointment.status.value} to {data.status.value}"
            )

        appointment.status = data.status
        if data.notes:
            appointment.notes = data.notes
        self.db.commit()
        self.db.refresh(appointment)

        logger.info(f"Appointment {appointment.id} set to {data.status.value} by doctor {doctor.id}")
        return appointment

    def upsert_notes(self, doctor: Doctor, appointment_id: int, data: ConsultationNoteUpsert) -> ConsultationNote:
        appointment = self.get_for_doctor(doctor, appointment_id)

        note = appointment.consultation_note
        if note is None:
            note = ConsultationNote(appointment_id=appointment.id)
            self.db.add(note)

        for field, value in data.model_dump().items():
            setattr(note, field, value)

        if data.prescription and data.prescription.strip():
            self._upsert_prescription(doctor, appointment, data)

        self.db.commit()
        self.db.refresh(note)
        return note

    def get_notes(self, doctor: Doctor, appointment_id: int) -> Optional[ConsultationNote]:
        return self.get_for_doctor(doctor, appointment_id).consultation_note

    def _upsert_prescription(self, doctor: Doctor, appointment: Appointment, data: ConsultationNoteUpsert):
        prescription = self.db.query(Prescription).filter(
            Prescription.appointment_id == appointment.id
        ).first()
        if prescription is None:
            prescription = Prescription(
                patient_id=appointment.patient_id,
                doctor_id=doctor.user_id,
                appointment_id=appointment.id,
            )
            self.db.add(prescription)

        prescription.medicines = data.prescription.strip()
        prescription.instructions = data.treatment_plan
        prescription.is_active = True

    def doctor_patients(self, doctor: Doctor) -> List[dict]:
        last_interaction = func.max(Appointment.created_at)
        rows = self.db.query(
            User,
            func.count(Appointment.id),
            func.max(Appointment.appointment_date),
            last_interaction,
        ).join(Appointment, Appointment.patient_id == User.id).filter(
            Appointment.doctor_id == doctor.id,
            User.role == UserRole.PATIENT
        ).group_by(User.id).order_by(last_interaction.desc()).all()

        return [
            {
                "id": user.id,
                "name": user.name,
                "email": user.email,
                "phone": user.phone,
                "total_appointments": total,
                "last_appointment_date": last_date,
                "last_interaction": last_seen,
            }
            for user, total, last_date, last_seen in rows
        ]

    def patient_history(self, doctor: Doctor, patient_id: int) -> List[dict]:
        appointments = self.db.query(Appointment).filter(
            Appointment.patient_id == patient_id,
            Appointment.doctor_id == doctor.id
        ).order_by(
            Appointment.appointment_date.desc(), Appointment.appointment_time.desc()
        ).all()

        history = []
        for appointment in appointments:
            entry = AppointmentResponse.model_validate(appointment).model_dump()
            note = appointment.consultation_note
            entry.update({
                "diagnosis": note.diagnosis if note else None,
                "prescription": note.prescription if note else None,
                "treatment_plan": note.treatment_plan if note else None,
                "follow_up_date": note.follow_up_date if note else None,
            })
            history.append(entry)
        return history

    def dashboard_stats(self, doctor: Doctor) -> dict:
        rows = self.db.query(Appointment.status, func.count(Appointment.id)).filter(
            Appointment.doctor_id == doctor.id
        ).group_by(Appointment.status).all()
        counts = {s: 0 for s in AppointmentStatus}
        for appointment_status, count in rows:
            counts[appointment_status] = count

        today = self.db.query(Appointment).filter(
            Appointment.doctor_id == doctor.id,
            Appointment.appointment_date == date.today()
        ).count()

        return {
            "total_appointments": sum(counts.values()),
            "pending_appointments": counts[AppointmentStatus.PENDING],
            "confirmed_appointments": counts[AppointmentStatus.CONFIRMED],
            "completed_appointments": counts[AppointmentStatus.COMPLETED],
            "today_appointments": today,
        }

    # Patient prescriptions

    def patient_prescriptions(self, patient: User) -> List[Prescription]:
        return self.db.query(Prescription).filter(
            Prescription.patient_id == patient.id,
            Prescription.is_active == True
        ).order_by(Prescription.prescription_date.desc(), Prescription.id.desc()).all()

    def get_prescription(self, patient: User, prescription_id: int) -> Prescription:
        prescription = self.db.query(Prescription).filter(
            Prescription.id == prescription_id,
            Prescription.patient_id == patient.id
        ).first()
        if not prescription:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Prescription not found"
            )
        return prescription
