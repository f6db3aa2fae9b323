"""Pydantic schemas for authentication endpoints."""
from __future__ import annotations

from pydantic import BaseModel


class AuthResponse(BaseModel):
    access_token: str
    user_id: str
    token_type: str = "bearer"


__all__ = ["AuthResponse"]
