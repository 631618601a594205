import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from dabus.auth.identity import IdentityProvider
from dabus.auth.schemas import AuthResponse, LoginRequest, Role, User as UserSchema, UserCreate
from dabus.database import storage_guard
from dabus.exceptions import DaBusError, NotFoundError, ValidationError
from dabus.models import User

logger = logging.getLogger(__name__)

class UserService:
    @staticmethod
    def get_user_by_id(db: Session, user_id: str) -> Optional[User]:
        """Get user profile by ID"""
        with storage_guard(db, commit=False):
            return db.get(User, user_id)

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        """Get user profile by email"""
        with storage_guard(db, commit=False):
            return db.execute(
                select(User).where(func.lower(User.email) == email.lower())
            ).scalar_one_or_none()

    @staticmethod
    def create_profile(db: Session, user_id: str, email: str, full_name: str, phone: str, role: Role = Role.STUDENT) -> User:
        profile = User(
            id=user_id,
            email=email.lower(),
            full_name=full_name,
            phone=phone,
            role=role.value
        )
        with storage_guard(db):
            db.add(profile)
        return profile

    @staticmethod
    def register(db: Session, user: UserCreate) -> AuthResponse:
        """Create credentials and a student profile, then sign the user in"""
        if UserService.get_user_by_email(db, user.email):
            raise ValidationError("Email already registered")

        identity = IdentityProvider(db)
        user_id = identity.create_user(
            user.email,
            user.password,
            {"full_name": user.full_name, "phone": user.phone}
        )

        try:
            profile = UserService.create_profile(db, user_id, user.email, user.full_name, user.phone)
        except DaBusError:
            # Do not leave orphaned credentials behind
            identity.delete_user(user_id)
            raise

        session = identity.sign_in(user.email, user.password)
        logger.info("Registered user %s", user_id)
        return AuthResponse(user=UserSchema.model_validate(profile), token=session.access_token)

    @staticmethod
    def login(db: Session, login_data: LoginRequest) -> AuthResponse:
        session = IdentityProvider(db).sign_in(login_data.email, login_data.password)

        profile = UserService.get_user_by_id(db, session.user_id)
        if profile is None:
            raise NotFoundError("User not found")

        return AuthResponse(user=UserSchema.model_validate(profile), token=session.access_token)

    @staticmethod
    def set_role(db: Session, user_id: str, role: Role) -> User:
        with storage_guard(db):
            profile = db.get(User, user_id)
            if profile is None:
                raise NotFoundError("User not found")
            profile.role = role.value
        logger.info("User %s now has role %s", user_id, role.value)
        return profile
