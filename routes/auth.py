"""
Authentication routes backed by Supabase Auth
"""
import os
from fastapi import APIRouter, HTTPException, status, Depends
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, EmailStr, Field
from typing import Optional, Union
import logging
import asyncio
from asyncio import TimeoutError as AsyncTimeoutError

from auth.middleware import get_auth_middleware
from auth.dependencies import get_current_user, security
from auth.utils import validate_email, validate_password, friendly_auth_error
from models.user import UserProfile
from services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = logging.getLogger(__name__)

AUTH_TIMEOUT_SECONDS = 30

class SignUpRequest(BaseModel):
    email: EmailStr
    password: str
    name: str = Field(..., min_length=1, max_length=100)

class SignInRequest(BaseModel):
    email: EmailStr
    password: str

class SessionResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    user: UserProfile

class SignUpPendingResponse(BaseModel):
    message: str
    user_id: str
    email_confirmation_required: bool = True

class PasswordResetRequest(BaseModel):
    email: EmailStr

class PasswordUpdateRequest(BaseModel):
    new_password: str

SignUpResponse = Union[SessionResponse, SignUpPendingResponse]

@router.post("/signup", response_model=SignUpResponse)
async def sign_up(request: SignUpRequest):
    """
    Register a new user and create their profile
    """
    auth_middleware = get_auth_middleware()

    if not validate_email(request.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid email format"
        )

    is_valid, message = validate_password(request.password)
    if not is_valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=message
        )

    frontend_url = os.getenv("FRONTEND_URL", "http://localhost:5173")
    try:
        auth_response = await asyncio.wait_for(
            asyncio.to_thread(
                auth_middleware.supabase.auth.sign_up,
                {
                    "email": request.email,
                    "password": request.password,
                    "options": {
                        "data": {"name": request.name},
                        "email_redirect_to": f"{frontend_url}/signin"
                    }
                }
            ),
            timeout=AUTH_TIMEOUT_SECONDS
        )
    except AsyncTimeoutError:
        logger.error(f"Sign up timeout for email: {request.email}")
        raise HTTPException(
            status_code=status.HTTP_408_REQUEST_TIMEOUT,
            detail="Sign up request timed out. Please try again."
        )
    except Exception as e:
        logger.error(f"Sign up error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=friendly_auth_error(str(e), "Failed to create account.")
        )

    if auth_response.user is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to create account."
        )

    try:
        user_service = UserService(auth_middleware.supabase)
        profile = await user_service.create_profile(auth_response.user.id, request.name)
    except Exception as e:
        logger.error(f"Profile creation error for {auth_response.user.id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Account created but the profile could not be saved."
        )

    if auth_response.session is None:
        logger.info(f"User signed up, email confirmation pending: {request.email}")
        return SignUpPendingResponse(
            message="Account created. We sent you a confirmation email.",
            user_id=auth_response.user.id,
        )

    logger.info(f"User signed up: {request.email}")
    return SessionResponse(
        access_token=auth_response.session.access_token,
        refresh_token=auth_response.session.refresh_token,
        user=UserProfile(id=auth_response.user.id, email=auth_response.user.email, name=profile.get("name"), bio=profile.get("bio", "")),
    )

@router.post("/signin", response_model=SessionResponse)
async def sign_in(request: SignInRequest):
    """
    Sign in with email and password
    """
    auth_middleware = get_auth_middleware()

    try:
        auth_response = auth_middleware.supabase.auth.sign_in_with_password({
            "email": request.email,
            "password": request.password
        })
    except Exception as e:
        logger.warning(f"Sign in failed for {request.email}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=friendly_auth_error(str(e), "Failed to sign in.")
        )

    if auth_response.user is None or auth_response.session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email address or password."
        )

    profile = await auth_middleware.users.get_profile(auth_response.user.id) or {}

    logger.info(f"User signed in: {request.email}")
    return SessionResponse(
        access_token=auth_response.session.access_token,
        refresh_token=auth_response.session.refresh_token,
        user=UserProfile(
            id=auth_response.user.id,
            email=auth_response.user.email,
            name=profile.get("name"),
            bio=profile.get("bio") or "",
        ),
    )

@router.post("/signout")
async def sign_out(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """
    Revoke the sessions behind the presented access token
    """
    try:
        auth_middleware = get_auth_middleware()
        auth_middleware.supabase.auth.admin.sign_out(credentials.credentials)
        logger.info("User signed out")
    except Exception as e:
        # The token expires on its own; sign out still succeeds for the client
        logger.error(f"Sign out error: {str(e)}")

    return {"message": "Signed out successfully"}

@router.post("/password-reset")
async def request_password_reset(request: PasswordResetRequest):
    """
    Send a password reset email
    """
    frontend_url = os.getenv("FRONTEND_URL", "http://localhost:5173")
    try:
        auth_middleware = get_auth_middleware()
        auth_middleware.supabase.auth.reset_password_email(
            request.email,
            {"redirect_to": f"{frontend_url}/update-password"}
        )
        logger.info(f"Password reset requested for: {request.email}")
    except Exception as e:
        logger.error(f"Password reset error: {str(e)}")

    # Same answer whether or not the account exists
    return {"message": "Password reset email sent if account exists"}

@router.post("/update-password")
async def update_password(
    request: PasswordUpdateRequest,
    current_user: dict = Depends(get_current_user)
):
    """
    Set a new password for the signed-in user
    """
    is_valid, message = validate_password(request.new_password)
    if not is_valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=message
        )

    try:
        auth_middleware = get_auth_middleware()
        auth_middleware.supabase.auth.admin.update_user_by_id(
            current_user["id"],
            {"password": request.new_password}
        )
    except Exception as e:
        logger.error(f"Password update error for {current_user['id']}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update password"
        )

    logger.info(f"Password updated for user {current_user['id']}")
    return {"message": "Password updated successfully"}
