"""User authentication and account endpoints."""

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, get_storage
from app.core.security import create_access_token
from app.database import get_db
from app.domains.user.service import UserService
from app.schemas.base import ResponseSchema
from app.schemas.user import (
    AuthResponse,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    ReactivateRequest,
    ResetPasswordRequest,
    UserLoginRequest,
    UserProfile,
    UserRegisterRequest,
    UserResponse,
    UserUpdateRequest,
)
from app.services.storage_service import StorageService
from models.user import User

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _auth_payload(user: User) -> dict:
    return AuthResponse(
        user=UserResponse.model_validate(user), token=create_access_token(user)
    ).model_dump(mode="json")


def _user_payload(user: User) -> dict:
    return UserResponse.model_validate(user).model_dump(mode="json")


@router.post("/register", response_model=ResponseSchema, status_code=status.HTTP_201_CREATED)
async def register(data: UserRegisterRequest, db: AsyncSession = Depends(get_db)):
    """Register a new account.

    A verification link is emailed to the address; the returned token can be
    used immediately.
    """
    user = await UserService(db).register(data)
    return ResponseSchema(
        status="success", message="User registered successfully", data=_auth_payload(user)
    )


@router.post("/login", response_model=ResponseSchema)
async def login(data: UserLoginRequest, db: AsyncSession = Depends(get_db)):
    """Authenticate with email and password and receive a bearer token."""
    user = await UserService(db).login(data.email, data.password)
    return ResponseSchema(status="success", message="Login successful", data=_auth_payload(user))


@router.get("/verify-email/{token}", response_model=ResponseSchema)
async def verify_email(token: str, db: AsyncSession = Depends(get_db)):
    user = await UserService(db).verify_email(token)
    return ResponseSchema(
        status="success", message="Email verified successfully", data=_user_payload(user)
    )


@router.post("/resend-verification", response_model=ResponseSchema)
async def resend_verification(
    current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)
):
    await UserService(db).resend_verification(current_user)
    return ResponseSchema(status="success", message="Verification email sent", data=None)


@router.post("/forgot-password", response_model=ResponseSchema)
async def forgot_password(data: ForgotPasswordRequest, db: AsyncSession = Depends(get_db)):
    await UserService(db).forgot_password(data.email)
    return ResponseSchema(status="success", message="Password reset token sent to email", data=None)


@router.post("/reset-password/{token}", response_model=ResponseSchema)
async def reset_password(
    token: str, data: ResetPasswordRequest, db: AsyncSession = Depends(get_db)
):
    user = await UserService(db).reset_password(token, data.password)
    return ResponseSchema(
        status="success", message="Password reset successful", data=_auth_payload(user)
    )


@router.get("/me", response_model=ResponseSchema)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user information."""
    return ResponseSchema(
        status="success", message="User retrieved successfully", data=_user_payload(current_user)
    )


@router.patch("/me", response_model=ResponseSchema)
async def update_me(
    update_data: UserUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await UserService(db).update_user(current_user, update_data)
    return ResponseSchema(
        status="success", message="User updated successfully", data=_user_payload(user)
    )


@router.patch("/update-profile", response_model=ResponseSchema)
async def update_profile(
    profile: UserProfile,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await UserService(db).update_profile(current_user, profile)
    return ResponseSchema(
        status="success", message="Profile updated successfully", data=_user_payload(user)
    )


@router.patch("/change-password", response_model=ResponseSchema)
async def change_password(
    data: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Change the password; a fresh token is returned."""
    user = await UserService(db).change_password(
        current_user, data.current_password, data.new_password
    )
    return ResponseSchema(
        status="success", message="Password changed successfully", data=_auth_payload(user)
    )


@router.post("/avatar", response_model=ResponseSchema)
async def upload_avatar(
    avatar: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    user = await UserService(db).update_avatar(current_user, avatar, storage)
    return ResponseSchema(
        status="success", message="Avatar updated successfully", data=_user_payload(user)
    )


@router.delete("/deactivate", response_model=ResponseSchema)
async def deactivate(
    current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)
):
    await UserService(db).deactivate(current_user)
    return ResponseSchema(status="success", message="Account deactivated successfully", data=None)


@router.post("/reactivate", response_model=ResponseSchema)
async def reactivate(data: ReactivateRequest, db: AsyncSession = Depends(get_db)):
    user = await UserService(db).reactivate(data.email, data.password)
    return ResponseSchema(
        status="success", message="Account reactivated successfully", data=_auth_payload(user)
    )
