from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict

# Request fields are all optional here: presence is checked by AuthService so
# that a missing field is a 400 with the error envelope, never a 422.


class RegisterIn(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    email: Optional[str] = None
    password: Optional[str] = None
    nombre_usuario: Optional[str] = None
    codigo_preferencia: Optional[str] = None
    codigo_rol: Optional[str] = None


class LoginIn(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    email: Optional[str] = None
    password: Optional[str] = None


class CheckEmailIn(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    email: Optional[str] = None


class RegisteredUser(BaseModel):
    id: str
    email: str
    nombre_usuario: str


class RegisterOut(BaseModel):
    ok: bool = True
    message: str = "Usuario creado correctamente"
    user: RegisteredUser
    profile: Optional[Dict[str, Any]] = None


class LoginOut(BaseModel):
    ok: bool = True
    message: str = "Login exitoso"
    session: Dict[str, Any]
    user: Dict[str, Any]


class CheckEmailOut(BaseModel):
    ok: bool = True
    exists: bool
    userId: Optional[str] = None


class HealthOut(BaseModel):
    ok: bool = True
    time: str
