"""Authentication routes."""
from __future__ import annotations

from fastapi import APIRouter, status

from ..schemas import AuthResponse
from ..services import sign_in_anonymously

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/anonymous", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def anonymous_sign_in() -> AuthResponse:
    """Issue a token for a fresh anonymous viewer."""

    user_id, token = sign_in_anonymously()
    return AuthResponse(access_token=token, user_id=user_id)


__all__ = ["router"]
