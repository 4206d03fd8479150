from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...api.deps import get_current_user, get_doctor_user, rate_limit_check
from ...services.auth_service import AuthService
from ...services.user_service import UserService
from ...services.doctor_service import DoctorService
from ...schemas.auth import (
    UserLogin, UserRegister, TokenResponse, UserResponse, ProfileUpdate,
    PasswordChange, ProfilePictureUpdate, Preferences, ContactList
)
from ...schemas.common import MessageResponse
from ...schemas.doctor import DoctorDetail
from ...models.user import User

router = APIRouter(prefix="/auth", tags=["Authentication"])

@router.post("/register", response_model=UserResponse)
async def register(
    user_data: UserRegister,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Register a new patient account."""
    auth_service = AuthService(db)
    return auth_service.register_user(user_data)

@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: UserLogin,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Authenticate user and return an access token."""
    auth_service = AuthService(db)
    return auth_service.authenticate_user(login_data)

@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current user information."""
    return current_user

@router.put("/profile", response_model=UserResponse)
async def update_profile(
    profile_data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    user_service = UserService(db)
    return user_service.update_profile(current_user, profile_data)

@router.get("/doctor-profile", response_model=DoctorDetail)
async def get_doctor_profile(
    current_user: User = Depends(get_doctor_user),
    db: Session = Depends(get_db)
):
    """Doctor details of the logged-in doctor, with weekly schedule."""
    doctor_service = DoctorService(db)
    doctor = doctor_service.get_doctor_for_user(current_user, create=True)
    return doctor_service.doctor_detail(doctor)

@router.put("/change-password", response_model=MessageResponse)
async def change_password(
    password_data: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    auth_service = AuthService(db)
    auth_service.change_password(current_user, password_data)
    return {"message": "Password updated successfully"}

@router.put("/profile-picture", response_model=UserResponse)
async def update_profile_picture(
    picture_data: ProfilePictureUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    user_service = UserService(db)
    return user_service.update_profile_picture(current_user, picture_data)

@router.get("/preferences", response_model=Preferences)
async def get_preferences(
    current_user: User = Depends(get_current_user)
):
    return current_user

@router.put("/preferences", response_model=Preferences)
async def update_preferences(
    preferences: Preferences,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    user_service = UserService(db)
    return user_service.update_preferences(current_user, preferences)

@router.get("/contacts", response_model=ContactList)
async def list_contacts(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Users that can be added to a conversation."""
    user_service = UserService(db)
    return {"contacts": user_service.list_contacts(current_user)}
