from typing import Optional
from fastapi import APIRouter, Body, Depends
from ...api.deps import get_auth_service
from ...schemas.auth import (
    CheckEmailIn,
    CheckEmailOut,
    LoginIn,
    LoginOut,
    RegisteredUser,
    RegisterIn,
    RegisterOut,
)
from ...services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])

# ServiceError subclasses raised below are rendered as
# {ok: false, message, detail} by the handler registered in main.py


@router.post("/register", response_model=RegisterOut, status_code=201)
def register(
    payload: Optional[RegisterIn] = Body(default=None),
    svc: AuthService = Depends(get_auth_service),
):
    """
    POST /api/auth/register
    Body: { email, password, nombre_usuario, codigo_preferencia, codigo_rol }
    """
    payload = payload or RegisterIn()
    result = svc.register(
        email=payload.email,
        password=payload.password,
        nombre_usuario=payload.nombre_usuario,
        codigo_preferencia=payload.codigo_preferencia,
        codigo_rol=payload.codigo_rol,
    )
    return RegisterOut(
        user=RegisteredUser(id=result.user_id, email=result.email, nombre_usuario=result.nombre_usuario),
        profile=result.profile,
    )


@router.post("/login", response_model=LoginOut)
def login(
    payload: Optional[LoginIn] = Body(default=None),
    svc: AuthService = Depends(get_auth_service),
):
    """
    POST /api/auth/login
    Body: { email, password }
    Returns the provider session (access_token, refresh_token, ...) and user untouched.
    """
    payload = payload or LoginIn()
    result = svc.login(email=payload.email, password=payload.password)
    return LoginOut(session=result.session, user=result.user)


@router.post("/check-email", response_model=CheckEmailOut)
def check_email(
    payload: Optional[CheckEmailIn] = Body(default=None),
    svc: AuthService = Depends(get_auth_service),
):
    """
    POST /api/auth/check-email
    Body: { "email": "user@example.com" }
    Returns: { "ok": true, "exists": true|false, "userId": "..."|null }
    """
    payload = payload or CheckEmailIn()
    found = svc.email_exists(email=payload.email)
    return CheckEmailOut(exists=found.exists, userId=found.user_id)
