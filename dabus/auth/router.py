from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from dabus.auth.dependencies import get_current_user
from dabus.auth.schemas import AuthResponse, LoginRequest, User, UserCreate
from dabus.auth.service import UserService
from dabus.database import get_db
from dabus.models import User as UserModel
from dabus.schemas import ApiResponse

router = APIRouter()

@router.post("/register", response_model=ApiResponse[AuthResponse], status_code=status.HTTP_201_CREATED)
def register_user(user: UserCreate, db: Session = Depends(get_db)):
    """Register a new student account"""
    return ApiResponse(data=UserService.register(db, user))

@router.post("/login", response_model=ApiResponse[AuthResponse])
def login(login_data: LoginRequest, db: Session = Depends(get_db)):
    """Sign in with email and password"""
    return ApiResponse(data=UserService.login(db, login_data))

@router.get("/me", response_model=ApiResponse[User])
def read_users_me(current_user: UserModel = Depends(get_current_user)):
    """Get current user profile"""
    return ApiResponse(data=User.model_validate(current_user))
