"""Pydantic schemas for the login route."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Credentials submitted to the login endpoint."""

    email: str = Field(
        ...,
        min_length=1,
        max_length=320,
        description="Account e-mail address (case-insensitive).",
    )
    password: str = Field(
        ...,
        min_length=1,
        max_length=1024,
        description="Account password.",
    )


class LoginResponse(BaseModel):
    status: Literal["authenticated"] = "authenticated"
    account: str = Field(..., description="Normalized account identifier.")
