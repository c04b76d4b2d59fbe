"""Auth API router: register, login, refresh, logout, profile and password."""

from fastapi import APIRouter, Depends, Request, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from footballzone.core.access import Identity
from footballzone.core.rate_limiter import AUTH_LIMIT, limiter
from footballzone.core.security import auth_service, get_current_identity
from footballzone.db.session import get_db
from footballzone.schemas.schemas import (
    ChangePasswordRequest, LoginRequest, LogoutRequest, ProfileUpdate,
    RefreshRequest, RegisterRequest, UserOut,
)

router = APIRouter(prefix="/auth", tags=["auth"])


def _tokens(bundle: dict) -> dict:
    return {
        "accessToken": bundle["access_token"],
        "refreshToken": bundle["refresh_token"],
        "expiresAt": bundle["expires_at"].isoformat(),
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
@limiter.limit(AUTH_LIMIT)
async def register(request: Request, body: RegisterRequest, db: Session = Depends(get_db)):
    """Register a new FREE account and sign it in."""
    user, bundle = await run_in_threadpool(auth_service.register, db, body)
    return {
        "success": True,
        "message": "User registered successfully",
        "data": {"user": UserOut.model_validate(user).to_json(), **_tokens(bundle)},
    }


@router.post("/login")
@limiter.limit(AUTH_LIMIT)
async def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)):
    """Authenticate and return JWT tokens."""
    user, bundle = await run_in_threadpool(auth_service.authenticate, db, body.email, body.password)
    return {
        "success": True,
        "message": "Login successful",
        "data": {"user": UserOut.model_validate(user).to_json(), **_tokens(bundle)},
    }


@router.post("/refresh")
async def refresh(body: RefreshRequest, db: Session = Depends(get_db)):
    """Trade a refresh token for a new token pair."""
    bundle = auth_service.refresh(db, body.refresh_token)
    return {"success": True, "message": "Token refreshed", "data": _tokens(bundle)}


@router.post("/logout")
async def logout(
    body: LogoutRequest = LogoutRequest(),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Client drops its tokens; ``logoutAll`` also revokes every refresh token."""
    auth_service.logout(db, identity.id, logout_all=body.logout_all)
    return {"success": True, "message": "Logged out successfully"}


@router.get("/me")
async def get_me(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Get current user profile."""
    user = auth_service.get_user(db, identity.id)
    return {"success": True, "data": UserOut.model_validate(user).to_json()}


@router.put("/profile")
async def update_profile(
    body: ProfileUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    user = auth_service.update_profile(db, identity.id, body)
    return {
        "success": True,
        "message": "Profile updated successfully",
        "data": UserOut.model_validate(user).to_json(),
    }


@router.post("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Change the caller's password; other sessions lose their refresh tokens."""
    bundle = await run_in_threadpool(
        auth_service.change_password, db, identity.id, body.current_password, body.new_password
    )
    return {"success": True, "message": "Password changed successfully", "data": _tokens(bundle)}
