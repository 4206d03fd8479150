from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from ...core.config import settings
from ...core.database import get_db
from ...core.security import UserRole
from ...api.deps import get_admin_user
from ...services.user_service import UserService
from ...schemas.auth import UserResponse
from ...schemas.common import MessageResponse, page_meta
from ...schemas.user import (
    AdminUserCreate, AdminUserUpdate, RoleUpdate, StatusUpdate, UserList, UserStats
)
from ...models.user import User

router = APIRouter(prefix="/admin", tags=["Admin: Users"])

@router.post("/users", response_model=UserResponse)
async def admin_register(
    user_data: AdminUserCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """Create a student or doctor account."""
    user_service = UserService(db)
    return user_service.admin_register(user_data)

@router.get("/users", response_model=UserList)
async def list_users(
    role: Optional[UserRole] = None,
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    user_service = UserService(db)
    users, total = user_service.list_users(role, search, is_active, page, limit)
    return {"users": users, "pagination": page_meta(page, limit, total)}

@router.get("/users/stats", response_model=UserStats)
async def user_stats(
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return UserService(db).stats()

@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return UserService(db).get_user(user_id)

@router.put("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    user_data: AdminUserUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return UserService(db).update_user(user_id, user_data)

@router.put("/users/{user_id}/role", response_model=UserResponse)
async def change_user_role(
    user_id: int,
    role_data: RoleUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return UserService(db).change_role(user_id, role_data.role)

@router.patch("/users/{user_id}/status", response_model=UserResponse)
async def update_user_status(
    user_id: int,
    status_data: StatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """Activate or deactivate a user account."""
    return UserService(db).change_status(user_id, status_data.is_active)

@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    UserService(db).delete_user(admin, user_id)
    return {"message": "User deleted successfully"}

@router.get("/settings")
async def get_feature_settings(
    admin: User = Depends(get_admin_user)
):
    """Effective feature switches and limits."""
    return settings.feature_flags()
