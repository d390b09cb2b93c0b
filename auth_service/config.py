"""Configuración del servicio de autenticación, leída desde variables de entorno (.env)."""

import os
import logging
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

INSECURE_DEFAULT_SECRET = "clave_secreta_insegura_por_defecto_cambiar_urgentemente"


@dataclass(frozen=True)
class Settings:
    """Immutable runtime settings, built once at startup and passed to whoever needs them."""
    database_url: str
    jwt_secret_key: bytes
    jwt_expire_hours: int = 24
    bcrypt_rounds: int = 12

    def __post_init__(self):
        if not self.jwt_secret_key:
            raise ValueError("JWT secret key must not be empty")
        if self.jwt_expire_hours <= 0:
            raise ValueError("JWT_EXPIRE_HOURS must be a positive integer")
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31")


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _database_url_from_env() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    # Lee las credenciales de la base de datos desde el entorno
    db_vars = {name: os.getenv(name) for name in ("DB_USER", "DB_PASS", "DB_HOST", "DB_NAME")}
    missing_vars = [name for name, value in db_vars.items() if not value]
    if missing_vars:
        logger.error(f"Faltan variables de entorno para la base de datos: {', '.join(missing_vars)}")

    return (
        f"mysql+pymysql://{db_vars['DB_USER']}:{db_vars['DB_PASS']}"
        f"@{db_vars['DB_HOST']}/{db_vars['DB_NAME']}"
    )


def load_settings(env_file: Optional[str] = None) -> Settings:
    """
    Loads the settings from the process environment, after reading `.env`.

    Raises:
        ValueError: if a numeric variable is malformed or out of range.
    """
    load_dotenv(env_file)

    secret = os.getenv("JWT_SECRET_KEY")
    if not secret:
        logger.warning("JWT_SECRET_KEY no está definida en las variables de entorno. Usando clave insegura por defecto para desarrollo.")
        secret = INSECURE_DEFAULT_SECRET

    return Settings(
        database_url=_database_url_from_env(),
        jwt_secret_key=secret.encode("utf-8"),
        jwt_expire_hours=_int_from_env("JWT_EXPIRE_HOURS", 24),
        bcrypt_rounds=_int_from_env("BCRYPT_ROUNDS", 12),
    )
