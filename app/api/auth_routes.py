from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from typing import Dict

from app.services.auth_service import auth_service
from app.schemas import UserCreate, UserResponse, Token, RefreshRequest
from app.core.auth_dependencies import get_current_user

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"]
)

# Registers a new client account
@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(user_data: UserCreate) -> UserResponse:
    created_user = await auth_service.register_user(user_data)
    return UserResponse(**created_user)

# Authenticates user credentials and returns access and refresh tokens
@router.post("/login", response_model=Token, status_code=status.HTTP_200_OK)
async def login_user(form_data: OAuth2PasswordRequestForm = Depends()) -> Token:
    token_data = await auth_service.login_user(form_data.username, form_data.password)
    return Token(
        access_token=token_data["access_token"],
        refresh_token=token_data["refresh_token"],
        token_type=token_data["token_type"]
    )

# Exchanges a refresh token for a new token pair
@router.post("/refresh", response_model=Token, status_code=status.HTTP_200_OK)
async def refresh_token(payload: RefreshRequest) -> Token:
    token_data = await auth_service.refresh_user_token(payload.refresh_token)
    return Token(
        access_token=token_data["access_token"],
        refresh_token=token_data["refresh_token"],
        token_type=token_data["token_type"]
    )

# Invalidates the stored refresh token
@router.post("/logout", status_code=status.HTTP_200_OK)
async def logout_user(current_user: Dict = Depends(get_current_user)) -> Dict:
    await auth_service.logout_user(current_user["id"])
    return {"message": "Logged out successfully"}

# Retrieves the authenticated user's profile information
@router.get("/me", response_model=UserResponse, status_code=status.HTTP_200_OK)
async def get_current_user_info(current_user: Dict = Depends(get_current_user)) -> UserResponse:
    return UserResponse(**current_user)
