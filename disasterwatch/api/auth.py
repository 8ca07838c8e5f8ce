from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Response

from disasterwatch.core.contracts import AuthMessage, LoginRequest, RegisterRequest, UserOut
from disasterwatch.core.errors import bad_request, unauthorized
from disasterwatch.core.settings import settings
from disasterwatch.services.auth import AuthError, AuthService

router = APIRouter(prefix="/api/auth")


def get_auth_service() -> AuthService:
    raise RuntimeError("AuthService must be provided by app dependency override")


def current_user(
    token: Optional[str] = Cookie(default=None, alias=settings.session_cookie_name),
    auth: AuthService = Depends(get_auth_service),
) -> UserOut:
    if not token:
        unauthorized("no_token", "Unauthorized: No token provided")
    user = auth.user_for_token(token)
    if user is None:
        unauthorized("invalid_token", "Unauthorized: Invalid token")
    return user


@router.post("/register", response_model=AuthMessage, status_code=201)
def register(req: RegisterRequest, auth: AuthService = Depends(get_auth_service)) -> AuthMessage:
    try:
        auth.register(name=req.name, email=req.email, password=req.password)
    except AuthError as e:
        bad_request(e.code, e.message)
    return AuthMessage(message="User registered successfully")


@router.post("/login", response_model=AuthMessage)
def login(
    req: LoginRequest,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
) -> AuthMessage:
    try:
        token, user = auth.login(email=req.email, password=req.password)
    except AuthError as e:
        bad_request(e.code, e.message)

    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=auth.ttl_s,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )
    return AuthMessage(message="Login successful", user=user)


@router.post("/logout", response_model=AuthMessage)
def logout(
    response: Response,
    token: Optional[str] = Cookie(default=None, alias=settings.session_cookie_name),
    auth: AuthService = Depends(get_auth_service),
) -> AuthMessage:
    auth.logout(token)
    response.delete_cookie(settings.session_cookie_name, httponly=True, samesite="strict")
    return AuthMessage(message="Logged out successfully")


@router.get("/me", response_model=AuthMessage)
def me(user: UserOut = Depends(current_user)) -> AuthMessage:
    return AuthMessage(message="Authenticated", user=user)
