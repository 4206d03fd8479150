from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from datetime import datetime, timedelta
import logging

from ..models.user import User
from ..core.config import settings
from ..core.security import (
    verify_password, get_password_hash, create_access_token, UserRole
)
from ..schemas.auth import (
    UserLogin, UserRegister, TokenResponse, UserResponse, PasswordChange
)

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def register_user(self, user_data: UserRegister) -> User:
        """Register a new patient account."""
        return self.create_user(
            name=user_data.name,
            email=user_data.email,
            password=user_data.password,
            role=UserRole.PATIENT,
        )

    def create_user(self, name: str, email: str, password: str, role: UserRole,
                    commit: bool = True, **extra) -> User:
        """Create a user of any role, refusing duplicate emails.

        With commit=False the row is only flushed so the caller can write
        related rows and commit them together.
        """
        existing_user = self.db.query(User).filter(User.email == email).first()
        if existing_user:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered"
            )

        extra.setdefault("is_active", True)
        new_user = User(
            name=name,
            email=email,
            password_hash=get_password_hash(password),
            role=role,
            **extra
        )

        self.db.add(new_user)
        if not commit:
            self.db.flush()
            return new_user
        self.db.commit()
        self.db.refresh(new_user)

        logger.info(f"Created {role.value} account {new_user.id}")
        return new_user

    def authenticate_user(self, login_data: UserLogin) -> TokenResponse:
        """Authenticate user and return an access token."""
        user = self.db.query(User).filter(
            User.email == login_data.email
        ).first()

        if not user:
            logger.warning(f"Login attempt for unknown email {login_data.email}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid credentials"
            )

        # Check account lockout
        if user.locked_until and user.locked_until > datetime.utcnow():
            raise HTTPException(
                status_code=status.HTTP_423_LOCKED,
                detail="Account is temporarily locked due to multiple failed login attempts"
            )

        if not verify_password(login_data.password, user.password_hash):
            self._handle_failed_login(user)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid credentials"
            )

        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Account is deactivated"
            )

        # Reset failed login attempts
        user.failed_login_attempts = 0
        user.locked_until = None
        user.last_login = datetime.utcnow()
        self.db.commit()
        self.db.refresh(user)

        token = create_access_token(user.id, user.name, user.role)

        return TokenResponse(
            token=token,
            access_token=token,
            token_type="bearer",
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            role=user.role,
            name=user.name,
            user=UserResponse.model_validate(user)
        )

    def change_password(self, user: User, data: PasswordChange) -> None:
        if not verify_password(data.current_password, user.password_hash):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Current password is incorrect"
            )

        user.password_hash = get_password_hash(data.new_password)
        self.db.commit()
        logger.info(f"Password changed for user {user.id}")

    def _handle_failed_login(self, user: User):
        """Count a failed attempt and lock the account once the limit is reached."""
        user.failed_login_attempts = (user.failed_login_attempts or 0) + 1

        if user.failed_login_attempts >= settings.MAX_FAILED_LOGIN_ATTEMPTS:
            user.locked_until = datetime.utcnow() + timedelta(
                minutes=settings.ACCOUNT_LOCKOUT_MINUTES
            )
            user.failed_login_attempts = 0
            logger.warning(f"Account {user.id} locked after repeated failed logins")
        else:
            logger.warning(f"Failed login for user {user.id} ({user.failed_login_attempts} attempts)")

        self.db.commit()
