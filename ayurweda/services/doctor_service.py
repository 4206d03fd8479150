from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func, distinct, extract
from fastapi import HTTPException, status
from datetime import date, timedelta
from typing import Optional, List
import calendar
import logging

from ..models.user import User
from ..models.doctor import Doctor, DoctorSchedule, WEEKDAY_ORDER
from ..models.appointment import Appointment, AppointmentStatus
from ..core.config import settings
from ..core.security import UserRole, get_password_hash
from ..schemas.doctor import (
    DoctorCreate, DoctorUpdate, DoctorProfileUpdate, ScheduleCreate, ScheduleUpdate
)
from .auth_service import AuthService
from .user_service import UserService

logger = logging.getLogger(__name__)

EARNINGS_PERIODS = ("all", "year", "month", "current_month", "current_year", "last_30_days")
SUMMARY_PERIODS = ("current_month", "current_year", "last_30_days", "last_6_months")

def _month_bounds(day: date):
    start = day.replace(day=1)
    next_month = (start + timedelta(days=32)).replace(day=1)
    return start, next_month - timedelta(days=1)

def _months_ago(day: date, months: int) -> date:
    year, month = divmod(day.year * 12 + day.month - 1 - months, 12)
    last_day = calendar.monthrange(year, month + 1)[1]
    return date(year, month + 1, min(day.day, last_day))

def period_filters(period: str, year: Optional[int] = None, month: Optional[int] = None) -> list:
    """SQL filters on Appointment.appointment_date for a reporting period."""
    today = date.today()
    column = Appointment.appointment_date

    if period == "year" and year:
        return [extract("year", column) == year]
    if period == "month" and year and month:
        return [extract("year", column) == year, extract("month", column) == month]
    if period == "current_month":
        start, end = _month_bounds(today)
        return [column >= start, column <= end]
    if period == "current_year":
        return [column >= date(today.year, 1, 1), column <= date(today.year, 12, 31)]
    if period == "last_30_days":
        return [column >= today - timedelta(days=30)]
    if period == "last_6_months":
        return [column >= _months_ago(today, 6)]
    return []

class DoctorService:
    def __init__(self, db: Session):
        self.db = db

    def get_doctor(self, doctor_id: int) -> Doctor:
        doctor = self.db.query(Doctor).options(joinedload(Doctor.user)) \
            .filter(Doctor.id == doctor_id).first()
        if not doctor:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Doctor not found"
            )
        return doctor

    def get_doctor_for_user(self, user: User, create: bool = False) -> Doctor:
        """Doctor row of the logged-in doctor."""
        doctor = self.db.query(Doctor).filter(Doctor.user_id == user.id).first()
        if doctor is None and create:
            doctor = UserService(self.db).ensure_doctor_row(user)
            self.db.commit()
            self.db.refresh(doctor)
        if doctor is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Doctor profile not found"
            )
        return doctor

    # Patient-facing directory

    def list_available(self) -> List[Doctor]:
        return self.db.query(Doctor).join(User).filter(
            Doctor.is_available == True,
            User.is_active == True
        ).order_by(User.name).all()

    def doctor_detail(self, doctor: Doctor, available_only: bool = False) -> dict:
        schedules = self.list_schedules(doctor.id)
        if available_only:
            schedules = [s for s in schedules if s.is_available]
        return {**self._doctor_fields(doctor), "schedules": schedules}

    # Administration

    def list_doctors(self) -> List[dict]:
        rows = self.db.query(
            Doctor,
            func.count(distinct(Appointment.id)),
            func.count(distinct(Appointment.patient_id)),
        ).join(User).outerjoin(Appointment, Appointment.doctor_id == Doctor.id) \
            .group_by(Doctor.id, User.id).order_by(User.name).all()

        result = []
        for doctor, appointment_count, patient_count in rows:
            result.append({
                **self._doctor_fields(doctor),
                "appointment_count": appointment_count,
                "patient_count": patient_count,
            })
        return result

    def stats(self) -> dict:
        total = self.db.query(Doctor).count()
        available = self.db.query(Doctor).filter(Doctor.is_available == True).count()

        today = date.today()
        todays = self.db.query(Appointment).filter(
            Appointment.appointment_date == today
        ).count()

        month_start, month_end = _month_bounds(today)
        revenue = self.db.query(func.coalesce(func.sum(Doctor.consultation_fee), 0)) \
            .join(Appointment, Appointment.doctor_id == Doctor.id).filter(
                Appointment.appointment_date >= month_start,
                Appointment.appointment_date <= month_end,
                Appointment.status != AppointmentStatus.CANCELLED
            ).scalar()

        return {
            "total_doctors": total,
            "available_doctors": available,
            "unavailable_doctors": total - available,
            "todays_appointments": todays,
            "monthly_revenue": float(revenue or 0),
        }

    def create_doctor(self, data: DoctorCreate) -> Doctor:
        user = AuthService(self.db).create_user(
            name=data.name,
            email=data.email,
            password=data.password,
            role=UserRole.DOCTOR,
            phone=data.phone,
            commit=False,
        )

        doctor = Doctor(
            user_id=user.id,
            specialization=data.specialization or settings.DEFAULT_SPECIALIZATION,
            experience_years=data.experience_years,
            consultation_fee=data.consultation_fee
            if data.consultation_fee is not None else settings.DEFAULT_CONSULTATION_FEE,
            is_available=data.is_available,
        )
        self.db.add(doctor)
        self.db.commit()
        self.db.refresh(doctor)

        logger.info(f"Doctor {doctor.id} created for user {user.id}")
        return doctor

    def update_doctor(self, doctor_id: int, data: DoctorUpdate) -> Doctor:
        doctor = self.get_doctor(doctor_id)
        user = doctor.user
        updates = data.model_dump(exclude_unset=True)

        if "email" in updates and updates["email"] != user.email:
            UserService(self.db).ensure_email_available(updates["email"], exclude_user_id=user.id)
        for field in ("name", "email", "phone"):
            if updates.get(field) is not None:
                setattr(user, field, updates[field])
        if updates.get("password"):
            user.password_hash = get_password_hash(updates["password"])

        for field in ("specialization", "experience_years", "consultation_fee", "is_available"):
            if updates.get(field) is not None:
                setattr(doctor, field, updates[field])

        self.db.commit()
        self.db.refresh(doctor)
        return doctor

    def set_availability(self, doctor_id: int, is_available: bool) -> Doctor:
        doctor = self.get_doctor(doctor_id)
        doctor.is_available = is_available
        self.db.commit()
        self.db.refresh(doctor)
        return doctor

    def delete_doctor(self, doctor_id: int) -> None:
        doctor = self.get_doctor(doctor_id)
        # The user row cascades to the doctor row, its schedules and appointments
        self.db.delete(doctor.user)
        self.db.commit()
        logger.info(f"Doctor {doctor_id} deleted")

    def earnings(
        self,
        doctor_id: int,
        period: str = "all",
        year: Optional[int] = None,
        month: Optional[int] = None
    ) -> dict:
        if period not in EARNINGS_PERIODS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid period. Use one of: {', '.join(EARNINGS_PERIODS)}"
            )

        doctor = self.get_doctor(doctor_id)
        counts = self._status_counts(doctor.id, period_filters(period, year, month))
        fee = float(doctor.consultation_fee or 0)

        return {
            "doctor_id": doctor.id,
            "doctor_name": doctor.name,
            "consultation_fee": fee,
            "period": period,
            "earnings": {
                "total_appointments": sum(counts.values()),
                "completed_appointments": counts[AppointmentStatus.COMPLETED],
                "cancelled_appointments": counts[AppointmentStatus.CANCELLED],
                "pending_appointments": counts[AppointmentStatus.PENDING],
                "confirmed_appointments": counts[AppointmentStatus.CONFIRMED],
                "earnings": counts[AppointmentStatus.COMPLETED] * fee,
            },
        }

    def earnings_summary(self, period: str = "current_month") -> dict:
        if period not in SUMMARY_PERIODS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid period. Use one of: {', '.join(SUMMARY_PERIODS)}"
            )

        filters = period_filters(period)
        rows = []
        non_cancelled_total = 0
        for doctor in self.db.query(Doctor).join(User).order_by(User.name).all():
            counts = self._status_counts(doctor.id, filters)
            fee = float(doctor.consultation_fee or 0)
            completed = counts[AppointmentStatus.COMPLETED]
            non_cancelled = sum(counts.values()) - counts[AppointmentStatus.CANCELLED]
            earned = completed * fee
            non_cancelled_total += non_cancelled
            rows.append({
                "doctor_id": doctor.id,
                "doctor_name": doctor.name,
                "specialization": doctor.specialization,
                "consultation_fee": fee,
                "is_available": doctor.is_available,
                "total_appointments": sum(counts.values()),
                "completed_appointments": completed,
                "confirmed_appointments": counts[AppointmentStatus.CONFIRMED],
                "pending_appointments": counts[AppointmentStatus.PENDING],
                "earnings": earned,
                "avg_earnings_per_appointment": round(earned / non_cancelled, 2) if non_cancelled else 0.0,
            })

        rows.sort(key=lambda r: (r["earnings"], r["completed_appointments"]), reverse=True)
        total_earnings = sum(r["earnings"] for r in rows)

        return {
            "period": period,
            "total_doctors": len(rows),
            "total_appointments": sum(r["total_appointments"] for r in rows),
            "completed_appointments": sum(r["completed_appointments"] for r in rows),
            "non_cancelled_appointments": non_cancelled_total,
            "total_earnings": total_earnings,
            "avg_earnings_per_doctor": total_earnings / len(rows) if rows else 0.0,
            "avg_earnings_per_appointment":
                round(total_earnings / non_cancelled_total, 2) if non_cancelled_total else 0.0,
            "doctors": rows,
        }

    # Schedules

    def list_schedules(self, doctor_id: int) -> List[DoctorSchedule]:
        schedules = self.db.query(DoctorSchedule).filter(
            DoctorSchedule.doctor_id == doctor_id
        ).all()
        return sorted(schedules, key=lambda s: WEEKDAY_ORDER.index(s.day_of_week))

    def create_schedule(self, doctor_id: int, data: ScheduleCreate) -> DoctorSchedule:
        self._ensure_day_free(doctor_id, data.day_of_week)

        schedule = DoctorSchedule(
            doctor_id=doctor_id,
            day_of_week=data.day_of_week,
            start_time=data.start_time,
            end_time=data.end_time,
            is_available=data.is_available,
        )
        self.db.add(schedule)
        self.db.commit()
        self.db.refresh(schedule)
        return schedule

    def update_schedule(self, doctor_id: int, schedule_id: int, data: ScheduleUpdate) -> DoctorSchedule:
        schedule = self._get_schedule(doctor_id, schedule_id)
        updates = data.model_dump(exclude_unset=True, exclude_none=True)

        if "day_of_week" in updates and updates["day_of_week"] != schedule.day_of_week:
            self._ensure_day_free(doctor_id, updates["day_of_week"])

        start = updates.get("start_time", schedule.start_time)
        end = updates.get("end_time", schedule.end_time)
        if start >= end:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Start time must be before end time"
            )

        for field, value in updates.items():
            setattr(schedule, field, value)

        self.db.commit()
        self.db.refresh(schedule)
        return schedule

    def delete_schedule(self, doctor_id: int, schedule_id: int) -> None:
        schedule = self._get_schedule(doctor_id, schedule_id)
        self.db.delete(schedule)
        self.db.commit()

    # Doctor's own profile

    def update_profile(self, user: User, data: DoctorProfileUpdate) -> Doctor:
        doctor = self.get_doctor_for_user(user, create=True)
        updates = data.model_dump(exclude_unset=True, exclude_none=True)

        for field in ("name", "phone", "address"):
            if field in updates:
                setattr(user, field, updates[field])
        for field in ("specialization", "experience_years", "consultation_fee", "is_available"):
            if field in updates:
                setattr(doctor, field, updates[field])

        self.db.commit()
        self.db.refresh(doctor)
        return doctor

    def _doctor_fields(self, doctor: Doctor) -> dict:
        return {
            "id": doctor.id,
            "user_id": doctor.user_id,
            "name": doctor.name,
            "email": doctor.email,
            "phone": doctor.phone,
            "specialization": doctor.specialization,
            "experience_years": doctor.experience_years,
            "consultation_fee": float(doctor.consultation_fee or 0),
            "is_available": doctor.is_available,
            "created_at": doctor.created_at,
        }

    def _status_counts(self, doctor_id: int, filters: list) -> dict:
        rows = self.db.query(Appointment.status, func.count(Appointment.id)).filter(
            Appointment.doctor_id == doctor_id, *filters
        ).group_by(Appointment.status).all()

        counts = {s: 0 for s in AppointmentStatus}
        for appointment_status, count in rows:
            counts[appointment_status] = count
        return counts

    def _get_schedule(self, doctor_id: int, schedule_id: int) -> DoctorSchedule:
        schedule = self.db.query(DoctorSchedule).filter(
            DoctorSchedule.id == schedule_id,
            DoctorSchedule.doctor_id == doctor_id
        ).first()
        if not schedule:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Schedule not found"
            )
        return schedule

    def _ensure_day_free(self, doctor_id: int, day_of_week):
        existing = self.db.query(DoctorSchedule).filter(
            DoctorSchedule.doctor_id == doctor_id,
            DoctorSchedule.day_of_week == day_of_week
        ).first()
        if existing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Schedule already exists for this day"
            )
