"""Modelos Pydantic (schemas) para validación de datos de entrada/salida en el Servicio de Autenticación."""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# --- Schemas de Usuario ---

class RegisterRequest(BaseModel):
    """Schema para los datos requeridos al registrar un nuevo usuario."""
    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=6, description="La contraseña debe tener al menos 6 caracteres")


class LoginRequest(BaseModel):
    email: str
    password: str


class UpdateUserRequest(BaseModel):
    """Campos opcionales; solo se actualiza lo que venga informado."""
    username: Optional[str] = Field(None, min_length=3, max_length=50)
    email: Optional[str] = Field(None, min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(..., min_length=6)
    new_password: str = Field(..., min_length=6)


class UserResponse(BaseModel):
    """Public projection of a user. Never carries the password hash."""
    id: int
    username: str
    email: str
    created_at: datetime

    # Configuración de Pydantic v2+ para permitir mapeo desde modelos ORM (SQLAlchemy)
    model_config = ConfigDict(from_attributes=True)


class UserList(BaseModel):
    users: List[UserResponse]
    page: int
    limit: int


# --- Schemas de Token ---

class SessionClaims(BaseModel):
    """Payload of a verified session token."""
    user_id: int
    username: str
    email: str
    iat: int
    nbf: int
    exp: int


class LoginResponse(BaseModel):
    token: str
    user: UserResponse


# --- Sobre de respuesta ---

class ErrorDetail(BaseModel):
    code: str
    message: str
    details: Optional[str] = None


class Envelope(BaseModel):
    success: bool
    message: Optional[str] = None
    data: Optional[Any] = None
    error: Optional[ErrorDetail] = None
