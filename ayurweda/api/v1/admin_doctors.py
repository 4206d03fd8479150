from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional, List

from ...core.database import get_db
from ...api.deps import get_admin_user
from ...services.doctor_service import DoctorService
from ...schemas.common import MessageResponse
from ...schemas.doctor import (
    DoctorCreate, DoctorUpdate, AvailabilityUpdate, DoctorResponse, DoctorListItem,
    DoctorDetail, DoctorStats, DoctorEarnings, EarningsSummary,
    ScheduleCreate, ScheduleUpdate, ScheduleResponse
)
from ...models.user import User

router = APIRouter(prefix="/admin", tags=["Admin: Doctors"])

@router.get("/doctors", response_model=List[DoctorListItem])
async def list_doctors(
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """All doctors with appointment and patient counts."""
    return DoctorService(db).list_doctors()

@router.get("/doctors/stats", response_model=DoctorStats)
async def doctor_stats(
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return DoctorService(db).stats()

@router.get("/doctors-earnings", response_model=EarningsSummary)
async def doctors_earnings(
    period: str = "current_month",
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return DoctorService(db).earnings_summary(period)

@router.post("/doctors", response_model=DoctorResponse)
async def create_doctor(
    doctor_data: DoctorCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return DoctorService(db).create_doctor(doctor_data)

@router.get("/doctors/{doctor_id}", response_model=DoctorDetail)
async def get_doctor(
    doctor_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    doctor_service = DoctorService(db)
    return doctor_service.doctor_detail(doctor_service.get_doctor(doctor_id))

@router.put("/doctors/{doctor_id}", response_model=DoctorResponse)
async def update_doctor(
    doctor_id: int,
    doctor_data: DoctorUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return DoctorService(db).update_doctor(doctor_id, doctor_data)

@router.put("/doctors/{doctor_id}/availability", response_model=DoctorResponse)
async def set_doctor_availability(
    doctor_id: int,
    availability: AvailabilityUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return DoctorService(db).set_availability(doctor_id, availability.is_available)

@router.delete("/doctors/{doctor_id}", response_model=MessageResponse)
async def delete_doctor(
    doctor_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    DoctorService(db).delete_doctor(doctor_id)
    return {"message": "Doctor deleted successfully"}

@router.get("/doctors/{doctor_id}/earnings", response_model=DoctorEarnings)
async def doctor_earnings(
    doctor_id: int,
    period: str = "all",
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return DoctorService(db).earnings(doctor_id, period, year, month)

# Schedules

@router.get("/doctors/{doctor_id}/schedules", response_model=List[ScheduleResponse])
async def list_doctor_schedules(
    doctor_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    doctor_service = DoctorService(db)
    doctor_service.get_doctor(doctor_id)
    return doctor_service.list_schedules(doctor_id)

@router.post("/doctors/{doctor_id}/schedules", response_model=ScheduleResponse)
async def create_doctor_schedule(
    doctor_id: int,
    schedule_data: ScheduleCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    doctor_service = DoctorService(db)
    doctor_service.get_doctor(doctor_id)
    return doctor_service.create_schedule(doctor_id, schedule_data)

@router.put("/doctors/{doctor_id}/schedules/{schedule_id}", response_model=ScheduleResponse)
async def update_doctor_schedule(
    doctor_id: int,
    schedule_id: int,
    schedule_data: ScheduleUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return DoctorService(db).update_schedule(doctor_id, schedule_id, schedule_data)

@router.delete("/doctors/{doctor_id}/schedules/{schedule_id}", response_model=MessageResponse)
async def delete_doctor_schedule(
    doctor_id: int,
    schedule_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    DoctorService(db).delete_schedule(doctor_id, schedule_id)
    return {"message": "Schedule deleted successfully"}
