"""Authenticated user as reported by the auth endpoint."""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class AuthUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: UUID
    email: Optional[str] = None
    role: Optional[str] = None
