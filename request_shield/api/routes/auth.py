from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from request_shield.core.client_key import client_address
from request_shield.core.config import settings
from request_shield.core.defense import get_login_service
from request_shield.schemas.auth import LoginRequest, LoginResponse
from request_shield.services.login_service import LoginService

router = APIRouter(tags=["Auth"])


@router.post("/auth/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    request: Request,
    service: Annotated[LoginService, Depends(get_login_service)],
) -> LoginResponse:
    """Authenticate an account.

    The defense middleware has already rejected locked accounts and
    addresses; the service re-checks before verifying credentials, counts
    the failure under the account and address keys when verification fails,
    and clears both on success.

    Raises:
        AccountLockedAppError: 423 if the account became locked in between.
        AuthenticationAppError: 401 on invalid credentials.
    """

    address = client_address(request, trust_forwarded=settings.app.trust_forwarded_headers)
    account = service.login(payload.email, payload.password, address)
    return LoginResponse(account=account)
