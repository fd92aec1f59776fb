from fastapi import APIRouter, Depends, status

from app.core.auth_service import auth_service
from app.core.dependencies import get_bearer_token
from app.schemas.auth import (
    Credentials,
    SignUpResponse,
    SignInResponse,
    MessageResponse,
    UserResponse,
)

router = APIRouter()


@router.post("/signup", response_model=SignUpResponse, status_code=status.HTTP_201_CREATED)
async def signup(credentials: Credentials):
    """Create an account with the auth provider."""
    user = await auth_service.sign_up(credentials.email, credentials.password)
    return {"message": "User created successfully", "user": user}


@router.post("/signin", response_model=SignInResponse)
async def signin(credentials: Credentials):
    """Exchange email/password for a session (access + refresh token)."""
    session = await auth_service.sign_in(credentials.email, credentials.password)
    return {"message": "Login successful", "user": session.get("user"), "session": session}


@router.post("/signout", response_model=MessageResponse)
async def signout(token: str = Depends(get_bearer_token)):
    """Revoke the caller's session."""
    await auth_service.sign_out(token)
    return {"message": "Logout successful"}


@router.get("/user", response_model=UserResponse)
async def get_user(token: str = Depends(get_bearer_token)):
    """Return the provider's record for the caller."""
    user = await auth_service.get_user(token)
    return {"user": user}
