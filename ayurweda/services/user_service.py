from sqlalchemy.orm import Session
from sqlalchemy import or_, func
from fastapi import HTTPException, status
from typing import Optional, Tuple, List
import logging

from ..models.user import User
from ..models.doctor import Doctor
from ..models.appointment import Appointment, AppointmentStatus
from ..models.order import Order, OrderStatus
from ..core.config import settings
from ..core.security import UserRole
from ..schemas.auth import ProfileUpdate, ProfilePictureUpdate, Preferences
from ..schemas.user import AdminUserCreate, AdminUserUpdate
from .auth_service import AuthService

logger = logging.getLogger(__name__)

# Roles an admin may create through the registration form
ADMIN_CREATABLE_ROLES = {UserRole.STUDENT, UserRole.DOCTOR}

class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found"
            )
        return user

    def ensure_email_available(self, email: str, exclude_user_id: Optional[int] = None):
        query = self.db.query(User).filter(User.email == email)
        if exclude_user_id is not None:
            query = query.filter(User.id != exclude_user_id)
        if query.first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already in use by another user"
            )

    def ensure_doctor_row(self, user: User) -> Doctor:
        """Attach a doctor profile with default values if the user has none."""
        doctor = self.db.query(Doctor).filter(Doctor.user_id == user.id).first()
        if doctor is None:
            doctor = Doctor(
                user_id=user.id,
                specialization=settings.DEFAULT_SPECIALIZATION,
                experience_years=0,
                consultation_fee=settings.DEFAULT_CONSULTATION_FEE,
                is_available=True,
            )
            self.db.add(doctor)
        return doctor

    # Own profile

    def update_profile(self, user: User, data: ProfileUpdate) -> User:
        self.ensure_email_available(data.email, exclude_user_id=user.id)

        user.name = data.name.strip()
        user.email = data.email
        user.phone = data.phone
        user.address = data.address
        self.db.commit()
        self.db.refresh(user)
        return user

    def update_profile_picture(self, user: User, data: ProfilePictureUpdate) -> User:
        user.profile_picture = data.profile_picture
        self.db.commit()
        self.db.refresh(user)
        return user

    def update_preferences(self, user: User, data: Preferences) -> User:
        user.notifications_enabled = data.notifications_enabled
        user.email_updates = data.email_updates
        user.theme = data.theme
        self.db.commit()
        self.db.refresh(user)
        return user

    def list_contacts(self, user: User) -> List[User]:
        """Other active users that can be added to a conversation."""
        return self.db.query(User).filter(
            User.id != user.id,
            User.is_active == True
        ).order_by(User.name).all()

    # Administration

    def admin_register(self, data: AdminUserCreate) -> User:
        if data.role not in ADMIN_CREATABLE_ROLES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Role must be either student or doctor"
            )

        user = AuthService(self.db).create_user(
            name=data.name,
            email=data.email,
            password=data.password,
            role=data.role,
            phone=data.phone,
            commit=False,
        )
        if user.role == UserRole.DOCTOR:
            self.ensure_doctor_row(user)
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"Admin created {user.role.value} account {user.id}")
        return user

    def list_users(
        self,
        role: Optional[UserRole] = None,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[User], int]:
        query = self.db.query(User)

        if role is not None:
            query = query.filter(User.role == role)
        if is_active is not None:
            query = query.filter(User.is_active == is_active)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                User.name.ilike(pattern),
                User.email.ilike(pattern),
                User.phone.ilike(pattern),
            ))

        total = query.count()
        users = query.order_by(User.created_at.desc(), User.id.desc()) \
            .offset((page - 1) * limit).limit(limit).all()
        return users, total

    def update_user(self, user_id: int, data: AdminUserUpdate) -> User:
        user = self.get_user(user_id)

        if data.email is not None:
            self.ensure_email_available(data.email, exclude_user_id=user.id)
            user.email = data.email
        if data.name is not None:
            user.name = data.name.strip()
        if data.role is not None:
            self._apply_role(user, data.role)

        self.db.commit()
        self.db.refresh(user)
        return user

    def change_role(self, user_id: int, role: UserRole) -> User:
        user = self.get_user(user_id)
        self._apply_role(user, role)
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"User {user.id} role changed to {role.value}")
        return user

    def change_status(self, user_id: int, is_active: bool) -> User:
        user = self.get_user(user_id)
        user.is_active = is_active
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"User {user.id} {'activated' if is_active else 'deactivated'}")
        return user

    def delete_user(self, admin: User, user_id: int) -> None:
        if admin.id == user_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot delete your own account"
            )

        user = self.get_user(user_id)

        confirmed = self.db.query(Appointment).outerjoin(Doctor).filter(
            or_(Appointment.patient_id == user.id, Doctor.user_id == user.id),
            Appointment.status == AppointmentStatus.CONFIRMED
        ).count()
        if confirmed:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot delete user with confirmed appointments"
            )

        open_orders = self.db.query(Order).filter(
            Order.patient_id == user.id,
            Order.status.in_([OrderStatus.PENDING, OrderStatus.PROCESSING])
        ).count()
        if open_orders:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot delete user with pending or processing orders"
            )

        self.db.delete(user)
        self.db.commit()
        logger.info(f"User {user_id} deleted by admin {admin.id}")

    def stats(self) -> dict:
        rows = self.db.query(User.role, func.count(User.id)).group_by(User.role).all()
        by_role = {role.value: 0 for role in UserRole}
        for role, count in rows:
            by_role[role.value] = count

        total = sum(by_role.values())
        active = self.db.query(User).filter(User.is_active == True).count()
        return {
            "total": total,
            "active": active,
            "inactive": total - active,
            "by_role": by_role,
        }

    def _apply_role(self, user: User, role: UserRole):
        user.role = role
        if role == UserRole.DOCTOR:
            self.ensure_doctor_row(user)
